"""In-process API tests against the local JSON backend."""

from __future__ import annotations

from collections.abc import AsyncIterator
from uuid import uuid4

import httpx
import pytest
import pytest_asyncio

from app.core.enums import RequestStatusEnum, RoleEnum
from app.core.persistence import get_persistence_backend
from app.core.security import create_access_token, hash_password
from app.main import app
from app.modules.identity.repository import IdentityRepository

API_PREFIX = "/api/v1"


def _auth_headers(user) -> dict[str, str]:
    token = create_access_token(subject=str(user.id), role=str(user.role))
    return {"Authorization": f"Bearer {token}"}


def _assert_status(response: httpx.Response, expected_status: int) -> None:
    assert response.status_code == expected_status, (
        f"{response.request.method} {response.request.url} -> "
        f"{response.status_code}, body={response.text}"
    )


@pytest_asyncio.fixture()
async def api_client(backend) -> AsyncIterator[httpx.AsyncClient]:
    app.dependency_overrides[get_persistence_backend] = lambda: backend
    transport = httpx.ASGITransport(app=app)
    try:
        async with httpx.AsyncClient(transport=transport, base_url=f"http://testserver{API_PREFIX}") as client:
            yield client
    finally:
        app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_set_password_requires_authentication(api_client) -> None:
    response = await api_client.post("/identity/admin/set-password", json={"userId": str(uuid4())})

    _assert_status(response, 401)
    assert response.json()["error"]["code"] == "http_error"


@pytest.mark.asyncio
async def test_set_password_is_admin_only(api_client, make_user) -> None:
    resident = await make_user()

    response = await api_client.post(
        "/identity/admin/set-password",
        json={"userId": str(resident.id), "password": "secret-1"},
        headers=_auth_headers(resident),
    )

    _assert_status(response, 403)
    assert response.json() == {"error": {"code": "forbidden", "message": "Forbidden: Admin access required"}}


@pytest.mark.asyncio
async def test_set_password_validates_input(api_client, make_user) -> None:
    admin = await make_user(RoleEnum.MANAGEMENT, with_unit=False)
    resident = await make_user()

    missing = await api_client.post(
        "/identity/admin/set-password",
        json={"userId": str(resident.id)},
        headers=_auth_headers(admin),
    )
    short = await api_client.post(
        "/identity/admin/set-password",
        json={"userId": str(resident.id), "password": "abc"},
        headers=_auth_headers(admin),
    )
    unknown = await api_client.post(
        "/identity/admin/set-password",
        json={"userId": str(uuid4()), "password": "secret-1"},
        headers=_auth_headers(admin),
    )

    _assert_status(missing, 400)
    _assert_status(short, 400)
    _assert_status(unknown, 404)


@pytest.mark.asyncio
async def test_set_password_resolves_reset_request(api_client, backend, make_user) -> None:
    admin = await make_user(RoleEnum.APP_ADMIN, with_unit=False)
    resident = await make_user()
    repository = IdentityRepository(backend)
    reset_request = await repository.create_reset_request(resident.id)

    response = await api_client.post(
        "/identity/admin/set-password",
        json={"userId": str(resident.id), "password": "temporary-1", "resetRequestId": str(reset_request.id)},
        headers=_auth_headers(admin),
    )

    _assert_status(response, 200)
    assert response.json() == {"success": True}
    updated = await repository.get_user_by_id(resident.id)
    assert updated.must_change_password is True
    resolved = await repository.get_reset_request(reset_request.id)
    assert resolved.status == RequestStatusEnum.APPROVED
    assert resolved.resolved_by == admin.id


@pytest.mark.asyncio
async def test_login_and_profile_round_trip(api_client, make_user) -> None:
    resident = await make_user(email="asha@societyhub.dev", password_hash=hash_password("Garden#42"))

    bad_login = await api_client.post(
        "/identity/auth/login",
        json={"email": "asha@societyhub.dev", "password": "wrong-password"},
    )
    _assert_status(bad_login, 401)

    login = await api_client.post(
        "/identity/auth/login",
        json={"email": "asha@societyhub.dev", "password": "Garden#42"},
    )
    _assert_status(login, 200)
    token = login.json()["access_token"]

    me = await api_client.get("/identity/users/me", headers={"Authorization": f"Bearer {token}"})
    _assert_status(me, 200)
    assert me.json()["id"] == str(resident.id)
    assert "password_hash" not in me.json()


@pytest.mark.asyncio
async def test_resident_books_and_lists_own_bookings(api_client, frozen_today, make_user, make_facility) -> None:
    resident = await make_user()
    neighbour = await make_user()
    facility = await make_facility()

    created = await api_client.post(
        "/booking",
        json={"facility_id": str(facility.id), "date": "2024-03-05", "start_time": "18:00", "duration_hours": 2},
        headers=_auth_headers(resident),
    )
    _assert_status(created, 201)
    assert created.json()["invoice_id"]

    slots = await api_client.get(
        f"/facilities/{facility.id}/slots",
        params={"date": "2024-03-05"},
        headers=_auth_headers(neighbour),
    )
    _assert_status(slots, 200)
    booked = {slot["time"] for slot in slots.json() if slot["is_booked"]}
    assert booked == {"18:00", "19:00"}

    mine = await api_client.get("/booking/my", headers=_auth_headers(resident))
    theirs = await api_client.get("/booking/my", headers=_auth_headers(neighbour))
    _assert_status(mine, 200)
    assert mine.json()["total"] == 1
    assert theirs.json()["total"] == 0

    listing = await api_client.get("/booking", headers=_auth_headers(resident))
    _assert_status(listing, 403)

    invoices = await api_client.get("/billing/invoices/my", headers=_auth_headers(resident))
    _assert_status(invoices, 200)
    [invoice] = invoices.json()["items"]
    assert invoice["id"] == created.json()["invoice_id"]
    assert invoice["fee_type"] == "facility_booking"
