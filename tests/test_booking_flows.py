from __future__ import annotations

from datetime import date, time
from uuid import uuid4
from decimal import Decimal

import pytest

import app.modules.booking.service as booking_service_module
from app.core.enums import (
    BookingStatusEnum,
    FacilityStatusEnum,
    FeeTypeEnum,
    PricingTypeEnum,
    RoleEnum,
    ScheduleTypeEnum,
    WorkflowStepStatusEnum,
)
from app.modules.booking.schemas import BookingCreate, BookingDraft, BookingEditRequest
from app.modules.facilities.schemas import BookingRules, FacilitySlot
from app.shared.exceptions import (
    BadRequestException,
    BusinessRuleException,
    ConflictException,
    NotFoundException,
    UnauthorizedException,
)


@pytest.mark.asyncio
async def test_hourly_booking_and_slot_query(frozen_today, services, make_user, make_facility) -> None:
    resident = await make_user()
    facility = await make_facility(hourly_rate=Decimal("200"))

    result = await services.bookings.create_booking(
        BookingCreate(facility_id=facility.id, date=date(2024, 3, 10), start_time=time(10), duration_hours=2),
        resident,
    )

    [booking] = result.bookings
    assert booking.start_time == time(10)
    assert booking.end_time == time(12)
    assert booking.total_amount == Decimal("400")
    assert booking.status == BookingStatusEnum.CONFIRMED

    slots = await services.facilities.get_slots(facility.id, date(2024, 3, 10))
    options = {option.time: option.is_booked for option in slots}
    assert options["10:00"] is True
    assert options["11:00"] is True
    assert options["09:00"] is False
    assert options["12:00"] is False


@pytest.mark.asyncio
async def test_per_day_range_creates_group_and_one_invoice(frozen_today, services, make_user, make_facility) -> None:
    resident = await make_user()
    facility = await make_facility(
        name="Guest Suite",
        pricing_type=PricingTypeEnum.PER_DAY,
        hourly_rate=Decimal("1000"),
        gst_applicable=True,
        gst_rate=Decimal("18"),
    )

    result = await services.bookings.create_booking(
        BookingCreate(facility_id=facility.id, date=date(2024, 4, 1), end_date=date(2024, 4, 3)),
        resident,
    )

    assert [booking.date for booking in result.bookings] == [date(2024, 4, 1), date(2024, 4, 2), date(2024, 4, 3)]
    assert len({booking.group_id for booking in result.bookings}) == 1
    assert all(booking.total_amount == Decimal("1000") for booking in result.bookings)
    assert all(booking.invoice_id == result.invoice_id for booking in result.bookings)

    invoice = await services.invoice_repository.get_invoice(result.invoice_id)
    assert invoice.unit_id == resident.unit_id
    assert invoice.fee_type == FeeTypeEnum.FACILITY_BOOKING
    assert invoice.amount == Decimal("3000")
    assert invoice.tax_amount == Decimal("540")
    assert invoice.total_amount == Decimal("3540")
    assert invoice.description == "Booking for Guest Suite from 2024-04-01 to 2024-04-03"


@pytest.mark.asyncio
async def test_group_ids_are_unique_across_requests(frozen_today, services, make_user, make_facility) -> None:
    resident = await make_user()
    facility = await make_facility(pricing_type=PricingTypeEnum.PER_DAY, hourly_rate=Decimal("500"))

    first = await services.bookings.create_booking(
        BookingCreate(facility_id=facility.id, date=date(2024, 3, 5), end_date=date(2024, 3, 6)),
        resident,
    )
    second = await services.bookings.create_booking(
        BookingCreate(facility_id=facility.id, date=date(2024, 3, 8), end_date=date(2024, 3, 9)),
        resident,
    )

    assert {booking.group_id for booking in first.bookings} != {booking.group_id for booking in second.bookings}


@pytest.mark.asyncio
async def test_single_slot_invoice_names_date_and_start(frozen_today, services, make_user, make_facility) -> None:
    resident = await make_user()
    facility = await make_facility(
        name="Clubhouse Hall",
        pricing_type=PricingTypeEnum.PER_SLOT,
        slots=[FacilitySlot(name="Evening", start_time="17:00", end_time="22:00", price=Decimal("4000"))],
    )

    result = await services.bookings.create_booking(
        BookingCreate(facility_id=facility.id, date=date(2024, 3, 4), start_time=time(17)),
        resident,
    )

    assert result.bookings[0].end_time == time(22)
    invoice = await services.invoice_repository.get_invoice(result.invoice_id)
    assert invoice.description == "Booking for Clubhouse Hall on 2024-03-04 (17:00)"


@pytest.mark.asyncio
async def test_resident_without_unit_still_books_with_warning(frozen_today, services, make_user, make_facility) -> None:
    resident = await make_user(with_unit=False)
    facility = await make_facility()

    result = await services.bookings.create_booking(
        BookingCreate(facility_id=facility.id, date=date(2024, 3, 2), start_time=time(7)),
        resident,
    )

    assert len(result.bookings) == 1
    assert result.invoice_id is None
    assert result.warnings
    assert [(step.name, step.status) for step in result.steps] == [
        ("create_bookings", WorkflowStepStatusEnum.SUCCEEDED),
        ("raise_invoice", WorkflowStepStatusEnum.SKIPPED),
    ]


@pytest.mark.asyncio
async def test_invoice_failure_keeps_bookings_and_records_partial_workflow(
    frozen_today,
    services,
    make_user,
    make_facility,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    resident = await make_user()
    facility = await make_facility()

    async def _broken_invoice(*_args, **_kwargs):
        raise RuntimeError("billing store unavailable")

    monkeypatch.setattr(services.invoices, "raise_booking_invoice", _broken_invoice)

    result = await services.bookings.create_booking(
        BookingCreate(facility_id=facility.id, date=date(2024, 3, 2), start_time=time(7)),
        resident,
    )

    assert result.invoice_id is None
    assert result.warnings == ["Booking confirmed, but the invoice could not be generated."]
    stored = await services.booking_repository.get_booking(result.bookings[0].id)
    assert stored.status == BookingStatusEnum.CONFIRMED
    assert stored.invoice_id is None

    logs, _ = await services.audit_repository.list_audit_logs(limit=10, offset=0, action="booking.create")
    assert logs[0].partial is True
    assert logs[0].payload["steps"][1] == {
        "name": "raise_invoice",
        "status": "failed",
        "detail": "billing store unavailable",
    }


@pytest.mark.asyncio
async def test_status_change_is_queued_on_change_feed(frozen_today, services, make_user, make_facility) -> None:
    resident = await make_user()
    facility = await make_facility()

    result = await services.bookings.create_booking(
        BookingCreate(facility_id=facility.id, date=date(2024, 3, 2), start_time=time(7)),
        resident,
    )

    [event] = await services.audit_repository.list_pending_outbox(limit=10)
    assert event.event_type == "booking.status.changed"
    assert event.aggregate_id == str(result.bookings[0].group_id)
    assert event.payload["status"] == "confirmed"


@pytest.mark.asyncio
async def test_booking_validation_errors(frozen_today, services, make_user, make_facility) -> None:
    resident = await make_user()
    facility = await make_facility()

    with pytest.raises(BadRequestException):
        await services.bookings.create_booking(BookingCreate(facility_id=facility.id, start_time=time(7)), resident)
    with pytest.raises(BadRequestException):
        await services.bookings.create_booking(BookingCreate(facility_id=facility.id, date=date(2024, 3, 2)), resident)
    with pytest.raises(BusinessRuleException):
        await services.bookings.create_booking(
            BookingCreate(facility_id=facility.id, date=date(2024, 2, 28), start_time=time(7)),
            resident,
        )
    with pytest.raises(BadRequestException):
        await services.bookings.create_booking(
            BookingCreate(facility_id=facility.id, date=date(2024, 3, 2), start_time=time(20), duration_hours=5),
            resident,
        )


@pytest.mark.asyncio
async def test_unavailable_or_inactive_facility_cannot_be_booked(
    frozen_today,
    services,
    make_user,
    make_facility,
) -> None:
    resident = await make_user()
    closed = await make_facility(status=FacilityStatusEnum.MAINTENANCE)
    inactive = await make_facility(is_active=False)

    with pytest.raises(BusinessRuleException):
        await services.bookings.create_booking(
            BookingCreate(facility_id=closed.id, date=date(2024, 3, 2), start_time=time(7)),
            resident,
        )
    with pytest.raises(NotFoundException):
        await services.bookings.create_booking(
            BookingCreate(facility_id=inactive.id, date=date(2024, 3, 2), start_time=time(7)),
            resident,
        )


@pytest.mark.asyncio
async def test_double_booking_allowed_unless_exclusivity_enforced(
    frozen_today,
    services,
    make_user,
    make_facility,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    resident = await make_user()
    facility = await make_facility()
    payload = BookingCreate(facility_id=facility.id, date=date(2024, 3, 2), start_time=time(9), duration_hours=2)

    await services.bookings.create_booking(payload, resident)
    await services.bookings.create_booking(payload, resident)

    monkeypatch.setattr(booking_service_module.settings, "booking_enforce_slot_exclusivity", True)
    with pytest.raises(ConflictException):
        await services.bookings.create_booking(
            BookingCreate(facility_id=facility.id, date=date(2024, 3, 2), start_time=time(10)),
            resident,
        )


@pytest.mark.asyncio
async def test_residents_cannot_see_each_others_bookings(frozen_today, services, make_user, make_facility) -> None:
    owner = await make_user()
    neighbour = await make_user()
    admin = await make_user(RoleEnum.MANAGEMENT, with_unit=False)
    facility = await make_facility()

    result = await services.bookings.create_booking(
        BookingCreate(facility_id=facility.id, date=date(2024, 3, 2), start_time=time(7)),
        owner,
    )
    booking_id = result.bookings[0].id

    with pytest.raises(UnauthorizedException):
        await services.bookings.get_booking(booking_id, neighbour)
    assert (await services.bookings.get_booking(booking_id, admin)).id == booking_id


@pytest.mark.asyncio
async def test_hourly_booking_must_fit_opening_hours(frozen_today, services, make_user, make_facility) -> None:
    resident = await make_user()
    facility = await make_facility()

    for start_time, duration_hours in ((time(3), 2), (time(10, 30), 1), (time(21), 2), (time(5), 2)):
        with pytest.raises(BadRequestException):
            await services.bookings.create_booking(
                BookingCreate(
                    facility_id=facility.id,
                    date=date(2024, 3, 2),
                    start_time=start_time,
                    duration_hours=duration_hours,
                ),
                resident,
            )

    result = await services.bookings.create_booking(
        BookingCreate(facility_id=facility.id, date=date(2024, 3, 2), start_time=time(20), duration_hours=2),
        resident,
    )
    assert result.bookings[0].end_time == time(22)


@pytest.mark.asyncio
async def test_split_schedule_booking_stays_inside_one_window(
    frozen_today,
    services,
    make_user,
    make_facility,
) -> None:
    resident = await make_user()
    facility = await make_facility(
        booking_rules=BookingRules(
            schedule_type=ScheduleTypeEnum.SPLIT,
            morning_start="06:00",
            morning_end="10:00",
            evening_start="16:00",
            evening_end="22:00",
        ),
    )

    for start_time in (time(9), time(12)):
        with pytest.raises(BadRequestException):
            await services.bookings.create_booking(
                BookingCreate(facility_id=facility.id, date=date(2024, 3, 2), start_time=start_time, duration_hours=2),
                resident,
            )

    result = await services.bookings.create_booking(
        BookingCreate(facility_id=facility.id, date=date(2024, 3, 2), start_time=time(16), duration_hours=2),
        resident,
    )
    assert result.bookings[0].start_time == time(16)


@pytest.mark.asyncio
async def test_edit_request_must_fit_opening_hours(frozen_today, services, make_user, make_facility) -> None:
    resident = await make_user()
    facility = await make_facility()
    result = await services.bookings.create_booking(
        BookingCreate(facility_id=facility.id, date=date(2024, 3, 2), start_time=time(7)),
        resident,
    )

    with pytest.raises(BadRequestException):
        await services.bookings.edit_booking(
            result.bookings[0].id,
            BookingEditRequest(date=date(2024, 3, 3), start_time=time(4)),
            resident,
        )


@pytest.mark.asyncio
async def test_exclusivity_detects_overlap_with_mid_hour_booking(
    frozen_today,
    services,
    make_user,
    make_facility,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    resident = await make_user()
    facility = await make_facility()
    await services.booking_repository.create_bookings(
        [
            BookingDraft(
                facility_id=facility.id,
                user_id=resident.id,
                group_id=uuid4(),
                date=date(2024, 3, 2),
                start_time=time(10, 30),
                end_time=time(11, 30),
                total_amount=Decimal("200"),
            ),
        ],
    )
    monkeypatch.setattr(booking_service_module.settings, "booking_enforce_slot_exclusivity", True)

    with pytest.raises(ConflictException):
        await services.bookings.create_booking(
            BookingCreate(facility_id=facility.id, date=date(2024, 3, 2), start_time=time(10)),
            resident,
        )

    result = await services.bookings.create_booking(
        BookingCreate(facility_id=facility.id, date=date(2024, 3, 2), start_time=time(12)),
        resident,
    )
    assert result.bookings[0].start_time == time(12)
