"""Billing business logic layer."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date, time
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from fastapi import Depends

from app.core.config import get_settings
from app.core.enums import FeeTypeEnum, PaymentStatusEnum
from app.core.persistence import PersistenceBackend, get_persistence_backend
from app.modules.billing.repository import InvoiceRepository
from app.modules.billing.schemas import InvoiceDraft, InvoiceRead
from app.modules.booking.pricing import effective_gst_rate, tax_on
from app.modules.facilities.schemas import FacilityRead
from app.shared.utils import format_time_of_day, to_money, utc_today

settings = get_settings()
logger = logging.getLogger(__name__)

CANCELLED_SUFFIX = "(Cancelled)"


class BilledBooking(Protocol):
    id: UUID
    date: date
    start_time: time
    total_amount: Decimal
    invoice_id: UUID | None


def booking_invoice_description(facility: FacilityRead, bookings: Sequence[BilledBooking]) -> str:
    """Describe a booking invoice by its date or date range."""
    dates = sorted(booking.date for booking in bookings)
    if len(dates) == 1:
        start = format_time_of_day(bookings[0].start_time)
        return f"Booking for {facility.name} on {dates[0].isoformat()} ({start})"
    return f"Booking for {facility.name} from {dates[0].isoformat()} to {dates[-1].isoformat()}"


def cancelled_description(description: str | None) -> str:
    if not description:
        return "Booking Cancelled"
    if CANCELLED_SUFFIX in description:
        return description
    return f"{description} {CANCELLED_SUFFIX}"


class InvoiceService:
    """Raise and cancel invoices on behalf of the booking workflows."""

    def __init__(
        self,
        repository: InvoiceRepository,
        *,
        legacy_fuzzy_match: bool | None = None,
        match_tolerance: Decimal | None = None,
    ) -> None:
        self.repository = repository
        self.legacy_fuzzy_match = (
            settings.invoice_legacy_fuzzy_match if legacy_fuzzy_match is None else legacy_fuzzy_match
        )
        self.match_tolerance = settings.invoice_match_tolerance if match_tolerance is None else match_tolerance

    async def raise_booking_invoice(
        self,
        unit_id: UUID,
        facility: FacilityRead,
        bookings: Sequence[BilledBooking],
    ) -> InvoiceRead:
        """Raise one invoice covering every booking of a request."""
        amount = to_money(sum((booking.total_amount for booking in bookings), Decimal("0")))
        tax_amount = tax_on(amount, effective_gst_rate(facility)) if facility.gst_applicable else Decimal("0.00")
        invoice = await self.repository.create_invoice(
            InvoiceDraft(
                unit_id=unit_id,
                amount=amount,
                tax_amount=tax_amount,
                total_amount=to_money(amount + tax_amount),
                fee_type=FeeTypeEnum.FACILITY_BOOKING,
                description=booking_invoice_description(facility, bookings),
                due_date=utc_today(),
            ),
        )
        logger.info("Raised booking invoice %s for unit %s (%s)", invoice.id, unit_id, invoice.total_amount)
        return invoice

    async def raise_cancellation_invoice(
        self,
        unit_id: UUID,
        facility: FacilityRead,
        penalty_amount: Decimal,
        apply_gst: bool,
        booking_count: int,
    ) -> InvoiceRead:
        """Raise one penalty invoice for a cancelled booking group."""
        amount = to_money(penalty_amount)
        tax_amount = tax_on(amount, effective_gst_rate(facility)) if apply_gst else Decimal("0.00")
        noun = "booking" if booking_count == 1 else "bookings"
        description = f"Cancellation Penalty for {facility.name} ({booking_count} {noun})"
        if apply_gst:
            description = f"{description} (+ GST)"
        return await self.repository.create_invoice(
            InvoiceDraft(
                unit_id=unit_id,
                amount=amount,
                tax_amount=tax_amount,
                total_amount=to_money(amount + tax_amount),
                fee_type=FeeTypeEnum.CANCELLATION_CHARGE,
                description=description,
                due_date=utc_today(),
            ),
        )

    async def cancel_booking_invoice(
        self,
        facility: FacilityRead,
        bookings: Sequence[BilledBooking],
        unit_id: UUID | None,
    ) -> list[InvoiceRead]:
        """Cancel the invoice raised for a booking group.

        Linked bookings are resolved by exact invoice id only. Bookings created
        before invoices were linked fall back to a pending invoice on the same
        unit whose description names the facility and whose amount is within
        tolerance of the group total; that match is best-effort.
        """
        linked_ids = list(dict.fromkeys(booking.invoice_id for booking in bookings if booking.invoice_id))
        if linked_ids:
            cancelled = []
            for invoice_id in linked_ids:
                invoice = await self.repository.get_invoice(invoice_id)
                if invoice is None:
                    logger.warning("Linked invoice %s not found; no fallback attempted", invoice_id)
                    continue
                updated = await self.repository.mark_cancelled(invoice.id, cancelled_description(invoice.description))
                if updated is not None:
                    cancelled.append(updated)
            return cancelled

        if not self.legacy_fuzzy_match or unit_id is None:
            return []

        match = await self._find_legacy_invoice(facility, bookings, unit_id)
        if match is None:
            return []
        logger.warning("Cancelling invoice %s via legacy fuzzy match", match.id)
        updated = await self.repository.mark_cancelled(match.id, cancelled_description(match.description))
        return [updated] if updated is not None else []

    async def _find_legacy_invoice(
        self,
        facility: FacilityRead,
        bookings: Sequence[BilledBooking],
        unit_id: UUID,
    ) -> InvoiceRead | None:
        group_total = sum((booking.total_amount for booking in bookings), Decimal("0"))
        candidates, _ = await self.repository.list_invoices(
            unit_id=unit_id,
            payment_status=PaymentStatusEnum.PENDING,
        )
        facility_name = facility.name.lower()
        for invoice in candidates:
            if facility_name not in (invoice.description or "").lower():
                continue
            if abs(invoice.amount - group_total) < self.match_tolerance:
                return invoice
        return None

    async def list_unit_invoices(self, unit_id: UUID, limit: int, offset: int) -> tuple[list[InvoiceRead], int]:
        """List invoices charged to a unit."""
        return await self.repository.list_invoices(unit_id=unit_id, limit=limit, offset=offset)

    async def list_invoices(
        self,
        limit: int,
        offset: int,
        unit_id: UUID | None = None,
        payment_status: PaymentStatusEnum | None = None,
    ) -> tuple[list[InvoiceRead], int]:
        """List invoices across units."""
        return await self.repository.list_invoices(
            unit_id=unit_id,
            payment_status=payment_status,
            limit=limit,
            offset=offset,
        )


async def get_invoice_service(
    backend: PersistenceBackend = Depends(get_persistence_backend),
) -> InvoiceService:
    """Dependency provider for invoice service."""
    return InvoiceService(InvoiceRepository(backend))
