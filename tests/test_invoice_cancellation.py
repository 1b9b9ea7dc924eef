from __future__ import annotations

from datetime import date, time
from decimal import Decimal
from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest

from app.core.enums import FeeTypeEnum, PaymentStatusEnum, PricingTypeEnum
from app.modules.billing.repository import InvoiceRepository
from app.modules.billing.schemas import InvoiceDraft
from app.modules.billing.service import InvoiceService, cancelled_description
from app.modules.facilities.schemas import FacilityRead

FACILITY = FacilityRead(
    id=uuid4(),
    name="Clubhouse Hall",
    pricing_type=PricingTypeEnum.PER_SLOT,
    hourly_rate=Decimal("0"),
)


def _booking(amount: str, invoice_id: UUID | None = None) -> SimpleNamespace:
    return SimpleNamespace(
        id=uuid4(),
        date=date(2024, 3, 4),
        start_time=time(17),
        total_amount=Decimal(amount),
        invoice_id=invoice_id,
    )


async def _invoice(
    repository: InvoiceRepository,
    unit_id: UUID,
    amount: str,
    description: str,
    payment_status: PaymentStatusEnum = PaymentStatusEnum.PENDING,
):
    return await repository.create_invoice(
        InvoiceDraft(
            unit_id=unit_id,
            amount=Decimal(amount),
            total_amount=Decimal(amount),
            fee_type=FeeTypeEnum.FACILITY_BOOKING,
            description=description,
            due_date=date(2024, 3, 4),
            payment_status=payment_status,
        ),
    )


@pytest.mark.asyncio
async def test_linked_invoice_is_cancelled_by_exact_id(backend) -> None:
    repository = InvoiceRepository(backend)
    service = InvoiceService(repository, legacy_fuzzy_match=True, match_tolerance=Decimal("5"))
    unit_id = uuid4()
    linked = await _invoice(repository, unit_id, "4000", "Hall deposit, already paid", PaymentStatusEnum.PAID)
    decoy = await _invoice(repository, unit_id, "4000", "Booking for Clubhouse Hall on 2024-03-04 (17:00)")

    cancelled = await service.cancel_booking_invoice(FACILITY, [_booking("4000", linked.id)], unit_id)

    assert [invoice.id for invoice in cancelled] == [linked.id]
    assert cancelled[0].payment_status == PaymentStatusEnum.CANCELLED
    assert (await repository.get_invoice(decoy.id)).payment_status == PaymentStatusEnum.PENDING


@pytest.mark.asyncio
async def test_missing_linked_invoice_never_falls_back_to_fuzzy_match(backend) -> None:
    repository = InvoiceRepository(backend)
    service = InvoiceService(repository, legacy_fuzzy_match=True, match_tolerance=Decimal("5"))
    unit_id = uuid4()
    decoy = await _invoice(repository, unit_id, "4000", "Booking for Clubhouse Hall on 2024-03-04 (17:00)")

    cancelled = await service.cancel_booking_invoice(FACILITY, [_booking("4000", uuid4())], unit_id)

    assert cancelled == []
    assert (await repository.get_invoice(decoy.id)).payment_status == PaymentStatusEnum.PENDING


@pytest.mark.asyncio
async def test_legacy_booking_matches_pending_invoice_by_name_and_amount(backend) -> None:
    repository = InvoiceRepository(backend)
    service = InvoiceService(repository, legacy_fuzzy_match=True, match_tolerance=Decimal("5"))
    unit_id = uuid4()
    paid = await _invoice(repository, unit_id, "8000", "Booking for CLUBHOUSE HALL", PaymentStatusEnum.PAID)
    far_off = await _invoice(repository, unit_id, "7000", "Booking for clubhouse hall")
    other_facility = await _invoice(repository, unit_id, "8000", "Booking for Tennis Court")
    match = await _invoice(repository, unit_id, "8002", "Booking for clubhouse hall from 2024-03-04 to 2024-03-05")

    cancelled = await service.cancel_booking_invoice(FACILITY, [_booking("4000"), _booking("4000")], unit_id)

    assert [invoice.id for invoice in cancelled] == [match.id]
    assert cancelled[0].description.endswith("(Cancelled)")
    for untouched in (paid, far_off, other_facility):
        stored = await repository.get_invoice(untouched.id)
        assert stored.payment_status == untouched.payment_status


@pytest.mark.asyncio
async def test_fuzzy_matching_can_be_disabled(backend) -> None:
    repository = InvoiceRepository(backend)
    service = InvoiceService(repository, legacy_fuzzy_match=False)
    unit_id = uuid4()
    await _invoice(repository, unit_id, "4000", "Booking for Clubhouse Hall on 2024-03-04 (17:00)")

    assert await service.cancel_booking_invoice(FACILITY, [_booking("4000")], unit_id) == []


def test_cancelled_description_is_appended_once() -> None:
    assert cancelled_description("Booking for Hall") == "Booking for Hall (Cancelled)"
    assert cancelled_description("Booking for Hall (Cancelled)") == "Booking for Hall (Cancelled)"
    assert cancelled_description(None) == "Booking Cancelled"
