"""Booking business logic layer."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date, datetime, time, timedelta
from uuid import UUID, uuid4

from fastapi import Depends

from app.core.config import get_settings
from app.core.enums import BookingStatusEnum, FacilityStatusEnum, PricingTypeEnum
from app.core.persistence import PersistenceBackend, get_persistence_backend
from app.modules.audit.repository import AuditRepository
from app.modules.billing.repository import InvoiceRepository
from app.modules.billing.service import InvoiceService
from app.modules.booking.pricing import PriceSelection, compute_price, find_slot
from app.modules.booking.repository import BookingRepository
from app.modules.booking.schemas import (
    BookingCancellationDraft,
    BookingCreate,
    BookingCreateResult,
    BookingDraft,
    BookingEditRequest,
    BookingModificationDraft,
    BookingRead,
    CancellationRequestCreate,
    CancellationRequestResult,
    ModificationRequestResult,
    WorkflowStepRead,
)
from app.modules.facilities.repository import FacilityRepository
from app.modules.facilities.schemas import FacilityRead
from app.modules.facilities.slots import FULL_DAY, generate_slots, holding_bookings, hourly_windows
from app.modules.identity.permissions import AccessPolicy, default_access_policy
from app.modules.identity.schemas import UserRecord
from app.shared.exceptions import (
    BadRequestException,
    BusinessRuleException,
    ConflictException,
    NotFoundException,
)
from app.shared.utils import format_time_of_day, parse_time_of_day, utc_today
from app.shared.workflow import WorkflowLog

settings = get_settings()
logger = logging.getLogger(__name__)

DAY_CHECK_IN = time(12, 0)
DAY_CHECK_OUT = time(11, 0)
STATUS_CHANGED_EVENT = "booking.status.changed"


def workflow_steps(workflow: WorkflowLog) -> list[WorkflowStepRead]:
    return [WorkflowStepRead.model_validate(step) for step in workflow.steps]


async def publish_status_change(
    audit_repository: AuditRepository,
    bookings: Sequence[BookingRead],
    status: BookingStatusEnum,
) -> None:
    """Queue one change-feed event per affected booking group."""
    groups: dict[str, list[BookingRead]] = {}
    for booking in bookings:
        groups.setdefault(str(booking.group_id or booking.id), []).append(booking)
    for aggregate_id, members in groups.items():
        await audit_repository.create_outbox_event(
            aggregate_type="booking_group",
            aggregate_id=aggregate_id,
            event_type=STATUS_CHANGED_EVENT,
            payload={
                "booking_ids": [str(booking.id) for booking in members],
                "facility_id": str(members[0].facility_id),
                "dates": sorted({booking.date.isoformat() for booking in members}),
                "status": str(status),
            },
        )


class BookingService:
    """Booking domain service for residents' requests."""

    def __init__(
        self,
        booking_repository: BookingRepository,
        facility_repository: FacilityRepository,
        invoice_service: InvoiceService,
        audit_repository: AuditRepository,
        policy: AccessPolicy = default_access_policy,
    ) -> None:
        self.booking_repository = booking_repository
        self.facility_repository = facility_repository
        self.invoice_service = invoice_service
        self.audit_repository = audit_repository
        self.policy = policy

    async def _get_bookable_facility(self, facility_id: UUID) -> FacilityRead:
        facility = await self.facility_repository.get_facility(facility_id)
        if facility is None or not facility.is_active:
            raise NotFoundException("Facility not found")
        return facility

    def _validate_date(self, facility: FacilityRead, day: date) -> None:
        if day < utc_today():
            raise BusinessRuleException("Cannot book a date in the past")
        if facility.pricing_type != PricingTypeEnum.PER_DAY:
            horizon = utc_today() + timedelta(days=settings.booking_advance_days)
            if day > horizon:
                raise BusinessRuleException(
                    f"Bookings can be made at most {settings.booking_advance_days} days in advance",
                )

    def _validate_duration(self, facility: FacilityRead, duration_hours: int) -> None:
        max_hours = settings.booking_max_duration_hours
        min_hours = 1
        rules = facility.booking_rules
        if rules is not None:
            if rules.max_hours is not None:
                max_hours = min(max_hours, rules.max_hours)
            if rules.min_hours is not None:
                min_hours = rules.min_hours
        if not min_hours <= duration_hours <= max_hours:
            raise BadRequestException(f"Duration must be between {min_hours} and {max_hours} hours")

    def _resolve_window(
        self,
        facility: FacilityRead,
        start_time: time | None,
        duration_hours: int,
    ) -> tuple[time, time]:
        if facility.pricing_type == PricingTypeEnum.PER_DAY:
            return DAY_CHECK_IN, DAY_CHECK_OUT

        if start_time is None:
            raise BadRequestException("Select a slot or start time")

        if facility.pricing_type == PricingTypeEnum.PER_SLOT:
            slot = find_slot(facility, start_time)
            if slot is None:
                raise BadRequestException("Selected slot does not exist for this facility")
            end = parse_time_of_day(slot.end_time)
            if end is None:
                raise BadRequestException("Selected slot has no end time")
            return start_time, end

        self._validate_duration(facility, duration_hours)
        if start_time.minute or start_time.second or start_time.microsecond:
            raise BadRequestException("Hourly bookings must start on the hour")
        end_at = datetime.combine(date.min, start_time) + timedelta(hours=duration_hours)
        if end_at.date() != date.min:
            raise BadRequestException("Booking cannot extend past midnight")
        end_hour = start_time.hour + duration_hours
        if not any(first <= start_time.hour and end_hour <= last for first, last in hourly_windows(facility)):
            raise BadRequestException(f"{facility.name} is not open for the selected hours")
        return start_time, end_at.time()

    async def _ensure_windows_free(
        self,
        facility: FacilityRead,
        days: Sequence[date],
        start: time,
        end: time,
        editing_booking_id: UUID | None = None,
    ) -> None:
        for day in days:
            existing = await self.booking_repository.list_for_facility_day(facility.id, day)
            if facility.pricing_type == PricingTypeEnum.HOURLY:
                holding = holding_bookings(facility, day, existing, editing_booking_id)
                if any(booking.start_time < end and start < booking.end_time for booking in holding):
                    raise ConflictException(f"{facility.name} is already booked on {day.isoformat()}")
                continue
            options = generate_slots(facility, day, existing, editing_booking_id)
            if facility.pricing_type == PricingTypeEnum.PER_SLOT:
                wanted = {format_time_of_day(start)}
            else:
                wanted = {FULL_DAY}
            if any(option.is_booked and option.time in wanted for option in options):
                raise ConflictException(f"{facility.name} is already booked on {day.isoformat()}")

    async def create_booking(self, payload: BookingCreate, actor: UserRecord) -> BookingCreateResult:
        """Book a facility; one booking per day, all sharing a fresh group id."""
        facility = await self._get_bookable_facility(payload.facility_id)
        if payload.date is None:
            raise BadRequestException("Select a booking date")

        days = [payload.date]
        if facility.pricing_type == PricingTypeEnum.PER_DAY:
            end_date = payload.end_date or payload.date
            if end_date < payload.date:
                raise BadRequestException("End date must not be before start date")
            days = [payload.date + timedelta(days=offset) for offset in range((end_date - payload.date).days + 1)]

        if facility.status != FacilityStatusEnum.AVAILABLE:
            raise BusinessRuleException(f"{facility.name} is currently {facility.status}")
        self._validate_date(facility, payload.date)

        start, end = self._resolve_window(facility, payload.start_time, payload.duration_hours)
        quote = compute_price(
            facility,
            PriceSelection(
                start_time=start,
                duration_hours=payload.duration_hours,
                days=len(days),
                number_of_persons=payload.number_of_persons,
            ),
        )
        if settings.booking_enforce_slot_exclusivity:
            await self._ensure_windows_free(facility, days, start, end)

        group_id = uuid4()
        drafts = [
            BookingDraft(
                facility_id=facility.id,
                user_id=actor.id,
                group_id=group_id,
                date=day,
                start_time=start,
                end_time=end,
                total_amount=quote.per_booking_amount,
                number_of_persons=quote.persons,
            )
            for day in days
        ]

        workflow = WorkflowLog("booking.create", self.booking_repository.backend)
        bookings = await workflow.run("create_bookings", lambda: self.booking_repository.create_bookings(drafts))

        invoice = None
        if actor.unit_id is None:
            workflow.skip(
                "raise_invoice",
                "resident has no unit",
                notice="Booking confirmed, but no invoice was raised because your account has no unit assigned.",
            )
        else:
            invoice = await workflow.attempt(
                "raise_invoice",
                lambda: self.invoice_service.raise_booking_invoice(actor.unit_id, facility, bookings),
                failure_notice="Booking confirmed, but the invoice could not be generated.",
            )
        if invoice is not None:
            linked = await workflow.attempt(
                "link_invoice",
                lambda: self.booking_repository.update_bookings(
                    [booking.id for booking in bookings],
                    {"invoice_id": invoice.id},
                ),
                failure_notice="Invoice raised, but it could not be linked to the booking.",
            )
            if linked:
                bookings = linked

        await publish_status_change(self.audit_repository, bookings, BookingStatusEnum.CONFIRMED)
        await self.audit_repository.record_workflow(workflow, actor.id, "booking_group", str(group_id))

        return BookingCreateResult(
            bookings=sorted(bookings, key=lambda booking: booking.date),
            invoice_id=invoice.id if invoice is not None else None,
            warnings=workflow.warnings,
            steps=workflow_steps(workflow),
        )

    async def _get_owned_booking(self, booking_id: UUID, actor: UserRecord) -> BookingRead:
        booking = await self.booking_repository.get_booking(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found")
        self.policy.ensure_can_manage_booking(actor, booking)
        return booking

    async def edit_booking(
        self,
        booking_id: UUID,
        payload: BookingEditRequest,
        actor: UserRecord,
    ) -> ModificationRequestResult:
        """Propose a new date and window; an administrator applies it."""
        booking = await self._get_owned_booking(booking_id, actor)
        facility = booking.facility or await self._get_bookable_facility(booking.facility_id)

        if facility.pricing_type == PricingTypeEnum.PER_DAY:
            raise BusinessRuleException("Full-day bookings cannot be edited; cancel and book again")
        if booking.status != BookingStatusEnum.CONFIRMED:
            raise ConflictException(f"Only confirmed bookings can be modified (current: {booking.status})")
        if payload.date is None:
            raise BadRequestException("Select a new booking date")
        self._validate_date(facility, payload.date)

        start, end = self._resolve_window(facility, payload.start_time, payload.duration_hours)
        if settings.booking_enforce_slot_exclusivity:
            await self._ensure_windows_free(facility, [payload.date], start, end, editing_booking_id=booking.id)

        modification = await self.booking_repository.create_modification(
            BookingModificationDraft(
                booking_id=booking.id,
                new_date=payload.date,
                new_start_time=start,
                new_end_time=end,
                request_reason=payload.reason,
            ),
        )
        [updated] = await self.booking_repository.update_bookings(
            [booking.id],
            {"status": BookingStatusEnum.MODIFICATION_REQUESTED},
        )
        await publish_status_change(self.audit_repository, [updated], BookingStatusEnum.MODIFICATION_REQUESTED)
        await self.audit_repository.create_audit_log(
            actor_id=actor.id,
            action="booking.modification.request",
            entity_type="booking",
            entity_id=str(booking.id),
            payload={
                "modification_id": str(modification.id),
                "new_date": payload.date.isoformat(),
                "new_start_time": format_time_of_day(start),
                "new_end_time": format_time_of_day(end),
            },
        )
        return ModificationRequestResult(modification=modification, booking=updated)

    async def request_cancellation(
        self,
        booking_id: UUID,
        payload: CancellationRequestCreate,
        actor: UserRecord,
    ) -> CancellationRequestResult:
        """Request cancellation of a booking together with its confirmed siblings."""
        reason = (payload.reason or "").strip()
        if not reason:
            raise BadRequestException("A cancellation reason is required")

        booking = await self._get_owned_booking(booking_id, actor)
        if booking.status != BookingStatusEnum.CONFIRMED:
            raise ConflictException(f"Only confirmed bookings can be cancelled (current: {booking.status})")

        if booking.group_id is not None:
            siblings = await self.booking_repository.list_group(booking.group_id, BookingStatusEnum.CONFIRMED)
        else:
            siblings = [booking]

        cancellations = await self.booking_repository.create_cancellations(
            [
                BookingCancellationDraft(booking_id=sibling.id, request_reason=reason, requested_by=actor.id)
                for sibling in siblings
            ],
        )
        updated = await self.booking_repository.update_bookings(
            [sibling.id for sibling in siblings],
            {"status": BookingStatusEnum.CANCELLATION_REQUESTED},
        )
        await publish_status_change(self.audit_repository, updated, BookingStatusEnum.CANCELLATION_REQUESTED)
        await self.audit_repository.create_audit_log(
            actor_id=actor.id,
            action="booking.cancellation.request",
            entity_type="booking_group",
            entity_id=str(booking.group_id or booking.id),
            payload={"booking_ids": [str(sibling.id) for sibling in siblings], "reason": reason},
        )
        return CancellationRequestResult(cancellations=cancellations, bookings=updated)

    async def get_booking(self, booking_id: UUID, actor: UserRecord) -> BookingRead:
        """Return one booking visible to the actor."""
        return await self._get_owned_booking(booking_id, actor)

    async def list_my_bookings(
        self,
        actor: UserRecord,
        limit: int,
        offset: int,
    ) -> tuple[list[BookingRead], int]:
        """List the actor's own bookings, newest date first."""
        return await self.booking_repository.list_bookings({"user_id": actor.id}, limit=limit, offset=offset)

    async def list_bookings(
        self,
        limit: int,
        offset: int,
        facility_id: UUID | None = None,
        status: BookingStatusEnum | None = None,
        day: date | None = None,
    ) -> tuple[list[BookingRead], int]:
        """List bookings across residents."""
        filters: dict = {}
        if facility_id is not None:
            filters["facility_id"] = facility_id
        if status is not None:
            filters["status"] = status
        if day is not None:
            filters["date"] = day
        return await self.booking_repository.list_bookings(filters, limit=limit, offset=offset)


async def get_booking_service(
    backend: PersistenceBackend = Depends(get_persistence_backend),
) -> BookingService:
    """Dependency provider for booking service."""
    return BookingService(
        booking_repository=BookingRepository(backend),
        facility_repository=FacilityRepository(backend),
        invoice_service=InvoiceService(InvoiceRepository(backend)),
        audit_repository=AuditRepository(backend),
    )
