from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from pathlib import Path
from uuid import uuid4

import pytest

import app.modules.booking.service as booking_service_module
from app.core.enums import PricingTypeEnum, RoleEnum
from app.core.persistence import LocalJsonBackend
from app.modules.audit.repository import AuditRepository
from app.modules.billing.repository import InvoiceRepository
from app.modules.billing.service import InvoiceService
from app.modules.booking.approvals import ApprovalService
from app.modules.booking.repository import BookingRepository
from app.modules.booking.service import BookingService
from app.modules.facilities.repository import FacilityRepository
from app.modules.facilities.schemas import FacilityCreate
from app.modules.facilities.service import FacilityService
from app.modules.identity.repository import IdentityRepository

TODAY = date(2024, 3, 1)


@dataclass
class Services:
    bookings: BookingService
    approvals: ApprovalService
    facilities: FacilityService
    invoices: InvoiceService
    booking_repository: BookingRepository
    invoice_repository: InvoiceRepository
    audit_repository: AuditRepository


@pytest.fixture
def backend(tmp_path: Path) -> LocalJsonBackend:
    return LocalJsonBackend(tmp_path / "store.json")


@pytest.fixture
def frozen_today(monkeypatch: pytest.MonkeyPatch) -> date:
    monkeypatch.setattr(booking_service_module, "utc_today", lambda: TODAY)
    return TODAY


@pytest.fixture
def services(backend: LocalJsonBackend) -> Services:
    booking_repository = BookingRepository(backend)
    facility_repository = FacilityRepository(backend)
    invoice_repository = InvoiceRepository(backend)
    audit_repository = AuditRepository(backend)
    invoices = InvoiceService(invoice_repository, legacy_fuzzy_match=True, match_tolerance=Decimal("5"))
    return Services(
        bookings=BookingService(booking_repository, facility_repository, invoices, audit_repository),
        approvals=ApprovalService(booking_repository, facility_repository, invoices, audit_repository),
        facilities=FacilityService(facility_repository, booking_repository, audit_repository),
        invoices=invoices,
        booking_repository=booking_repository,
        invoice_repository=invoice_repository,
        audit_repository=audit_repository,
    )


@pytest.fixture
def make_user(backend: LocalJsonBackend):
    repository = IdentityRepository(backend)

    async def _make_user(
        role: RoleEnum = RoleEnum.RESIDENT,
        *,
        with_unit: bool = True,
        email: str | None = None,
        password_hash: str = "not-a-real-hash",
    ):
        unit_id = None
        if with_unit:
            unit = await repository.create_unit(f"A-{uuid4().hex[:6]}")
            unit_id = unit.id
        return await repository.create_user(
            email=email or f"member-{uuid4().hex[:8]}@societyhub.dev",
            full_name="Society Member",
            password_hash=password_hash,
            role=role,
            unit_id=unit_id,
        )

    return _make_user


@pytest.fixture
def make_facility(backend: LocalJsonBackend):
    repository = FacilityRepository(backend)

    async def _make_facility(**overrides):
        payload = {
            "name": "Tennis Court",
            "pricing_type": PricingTypeEnum.HOURLY,
            "hourly_rate": Decimal("200"),
            "open_time": "06:00",
            "close_time": "22:00",
            **overrides,
        }
        return await repository.create_facility(FacilityCreate(**payload))

    return _make_facility
