from __future__ import annotations

import json
from uuid import uuid4

import pytest

from app.core.config import Settings
from app.core.persistence import LocalJsonBackend, build_backend_provider, local_store_key


def test_local_store_keys_follow_client_layout() -> None:
    assert local_store_key("facilities") == "mock_facilities"
    assert local_store_key("bookings") == "mock_bookings"
    assert local_store_key("booking_cancellations") == "mock_cancellations"
    assert local_store_key("booking_modifications") == "mock_modifications"
    assert local_store_key("maintenance_fees") == "mock_maintenance_fees"


@pytest.mark.asyncio
async def test_insert_generates_identity_and_timestamps(tmp_path) -> None:
    backend = LocalJsonBackend(tmp_path / "store.json")

    [row] = await backend.insert("booking_cancellations", [{"booking_id": uuid4(), "status": "pending"}])

    assert row["id"]
    assert row["created_at"] == row["updated_at"]
    stored = json.loads((tmp_path / "store.json").read_text(encoding="utf-8"))
    assert list(stored) == ["mock_cancellations"]
    assert stored["mock_cancellations"][0]["id"] == row["id"]


@pytest.mark.asyncio
async def test_filters_support_equality_membership_and_null(tmp_path) -> None:
    backend = LocalJsonBackend(tmp_path / "store.json")
    group_id = uuid4()
    await backend.insert(
        "bookings",
        [
            {"group_id": group_id, "status": "confirmed", "date": "2024-03-01"},
            {"group_id": group_id, "status": "cancelled", "date": "2024-03-02"},
            {"group_id": None, "status": "confirmed", "date": "2024-03-03"},
        ],
    )

    assert await backend.count("bookings", {"group_id": group_id}) == 2
    assert await backend.count("bookings", {"group_id": None}) == 1
    assert await backend.count("bookings", {"status": ["confirmed", "cancelled"]}) == 3

    rows = await backend.list("bookings", order_by="date", descending=True, limit=2, offset=1)
    assert [row["date"] for row in rows] == ["2024-03-02", "2024-03-01"]


@pytest.mark.asyncio
async def test_update_and_delete_return_affected_rows(tmp_path) -> None:
    backend = LocalJsonBackend(tmp_path / "store.json")
    rows = await backend.insert("facilities", [{"name": "Pool"}, {"name": "Gym"}])

    updated = await backend.update("facilities", {"is_active": False}, {"id": rows[0]["id"]})
    assert [row["name"] for row in updated] == ["Pool"]
    assert updated[0]["is_active"] is False

    assert await backend.delete("facilities", {"name": "Gym"}) == 1
    assert [row["name"] for row in await backend.list("facilities")] == ["Pool"]


@pytest.mark.asyncio
async def test_unfiltered_writes_are_refused(tmp_path) -> None:
    backend = LocalJsonBackend(tmp_path / "store.json")

    with pytest.raises(ValueError):
        await backend.update("facilities", {"is_active": False}, {})
    with pytest.raises(ValueError):
        await backend.delete("facilities", {})


@pytest.mark.asyncio
async def test_missing_or_empty_store_reads_as_empty(tmp_path) -> None:
    path = tmp_path / "store.json"
    backend = LocalJsonBackend(path)

    assert await backend.list("bookings") == []
    path.write_text("", encoding="utf-8")
    assert await backend.list("bookings") == []
    await backend.ping()


@pytest.mark.asyncio
async def test_local_provider_shares_one_store_across_request_and_worker_scopes(tmp_path) -> None:
    settings = Settings(_env_file=None, persistence_backend="local", local_store_path=str(tmp_path / "store.json"))
    provider = build_backend_provider(settings)

    async with provider.unit_of_work() as backend:
        await backend.insert("units", [{"unit_number": "B-204"}])
    async for backend in provider.dependency():
        assert [row["unit_number"] for row in await backend.list("units")] == ["B-204"]
    await provider.ping()
