from __future__ import annotations

from datetime import date, time
from decimal import Decimal

import pytest

from app.core.enums import (
    BookingStatusEnum,
    FeeTypeEnum,
    PaymentStatusEnum,
    PricingTypeEnum,
    RequestStatusEnum,
    ReviewDecisionEnum,
    RoleEnum,
    WorkflowStepStatusEnum,
)
from app.modules.booking.schemas import (
    BookingCreate,
    BookingEditRequest,
    CancellationRequestCreate,
    CancellationReview,
    ModificationReview,
)
from app.shared.exceptions import BadRequestException, BusinessRuleException, ConflictException


async def _book_hourly(services, resident, facility, day=date(2024, 3, 10), hour=10, duration=2):
    result = await services.bookings.create_booking(
        BookingCreate(facility_id=facility.id, date=day, start_time=time(hour), duration_hours=duration),
        resident,
    )
    return result


async def _book_range(services, resident, facility):
    return await services.bookings.create_booking(
        BookingCreate(facility_id=facility.id, date=date(2024, 4, 1), end_date=date(2024, 4, 3)),
        resident,
    )


@pytest.mark.asyncio
async def test_approved_cancellation_cancels_invoice_and_raises_penalty(
    frozen_today,
    services,
    make_user,
    make_facility,
) -> None:
    resident = await make_user()
    admin = await make_user(RoleEnum.APP_ADMIN, with_unit=False)
    facility = await make_facility(gst_applicable=True, gst_rate=Decimal("18"))
    created = await _book_hourly(services, resident, facility)
    booking = created.bookings[0]

    requested = await services.bookings.request_cancellation(
        booking.id,
        CancellationRequestCreate(reason="change of plans"),
        resident,
    )
    [cancellation] = requested.cancellations
    assert cancellation.status == RequestStatusEnum.PENDING
    assert cancellation.request_reason == "change of plans"
    assert requested.bookings[0].status == BookingStatusEnum.CANCELLATION_REQUESTED

    review = await services.approvals.review_cancellation(
        cancellation.id,
        CancellationReview(
            decision=ReviewDecisionEnum.APPROVE,
            penalty_amount=Decimal("500"),
            apply_gst=True,
            cancel_original_invoice=True,
        ),
        admin,
    )

    assert [item.status for item in review.bookings] == [BookingStatusEnum.CANCELLED]
    [original] = review.cancelled_invoices
    assert original.id == created.invoice_id
    assert original.payment_status == PaymentStatusEnum.CANCELLED
    assert original.description.endswith("(Cancelled)")

    penalty = review.penalty_invoice
    assert penalty.fee_type == FeeTypeEnum.CANCELLATION_CHARGE
    assert penalty.unit_id == resident.unit_id
    assert penalty.amount == Decimal("500")
    assert penalty.tax_amount == Decimal("90")
    assert penalty.total_amount == Decimal("590")
    assert penalty.description == "Cancellation Penalty for Tennis Court (1 booking) (+ GST)"
    assert review.warnings == []


@pytest.mark.asyncio
async def test_cancellation_request_covers_whole_group(frozen_today, services, make_user, make_facility) -> None:
    resident = await make_user()
    facility = await make_facility(pricing_type=PricingTypeEnum.PER_DAY, hourly_rate=Decimal("1000"))
    created = await _book_range(services, resident, facility)
    middle = created.bookings[1]

    requested = await services.bookings.request_cancellation(
        middle.id,
        CancellationRequestCreate(reason="trip cancelled"),
        resident,
    )

    assert len(requested.cancellations) == 3
    group = await services.booking_repository.list_group(middle.group_id)
    assert {booking.status for booking in group} == {BookingStatusEnum.CANCELLATION_REQUESTED}


@pytest.mark.asyncio
async def test_rejecting_one_request_reverts_entire_group(frozen_today, services, make_user, make_facility) -> None:
    resident = await make_user()
    admin = await make_user(RoleEnum.ADMINISTRATION, with_unit=False)
    facility = await make_facility(pricing_type=PricingTypeEnum.PER_DAY, hourly_rate=Decimal("1000"))
    created = await _book_range(services, resident, facility)
    requested = await services.bookings.request_cancellation(
        created.bookings[0].id,
        CancellationRequestCreate(reason="trip cancelled"),
        resident,
    )

    review = await services.approvals.review_cancellation(
        requested.cancellations[2].id,
        CancellationReview(decision=ReviewDecisionEnum.REJECT, admin_response="dates are final"),
        admin,
    )

    assert {request.status for request in review.cancellations} == {RequestStatusEnum.REJECTED}
    assert len(review.cancellations) == 3
    group = await services.booking_repository.list_group(created.bookings[0].group_id)
    assert {booking.status for booking in group} == {BookingStatusEnum.CONFIRMED}
    assert await services.approvals.list_pending_cancellations() == []


@pytest.mark.asyncio
async def test_penalty_is_charged_once_per_group(frozen_today, services, make_user, make_facility) -> None:
    resident = await make_user()
    admin = await make_user(RoleEnum.APP_ADMIN, with_unit=False)
    facility = await make_facility(pricing_type=PricingTypeEnum.PER_DAY, hourly_rate=Decimal("1000"))
    created = await _book_range(services, resident, facility)
    requested = await services.bookings.request_cancellation(
        created.bookings[0].id,
        CancellationRequestCreate(reason="trip cancelled"),
        resident,
    )
    selected = requested.cancellations[0]

    review = await services.approvals.review_cancellation(
        selected.id,
        CancellationReview(decision=ReviewDecisionEnum.APPROVE, penalty_amount=Decimal("300"), apply_gst=False),
        admin,
    )

    charges = {request.id: request.cancellation_charges for request in review.cancellations}
    assert charges.pop(selected.id) == Decimal("300")
    assert set(charges.values()) == {Decimal("0")}
    assert {booking.status for booking in review.bookings} == {BookingStatusEnum.CANCELLED}
    assert len(review.bookings) == 3
    assert review.penalty_invoice.tax_amount == Decimal("0")
    assert review.penalty_invoice.description == "Cancellation Penalty for Tennis Court (3 bookings)"

    [invoice] = review.cancelled_invoices
    assert invoice.id == created.invoice_id


@pytest.mark.asyncio
async def test_cancelled_bookings_stay_cancelled(frozen_today, services, make_user, make_facility) -> None:
    resident = await make_user()
    admin = await make_user(RoleEnum.APP_ADMIN, with_unit=False)
    facility = await make_facility()
    created = await _book_hourly(services, resident, facility)
    booking = created.bookings[0]
    requested = await services.bookings.request_cancellation(
        booking.id,
        CancellationRequestCreate(reason="no longer needed"),
        resident,
    )
    await services.approvals.review_cancellation(
        requested.cancellations[0].id,
        CancellationReview(decision=ReviewDecisionEnum.APPROVE),
        admin,
    )

    with pytest.raises(ConflictException):
        await services.bookings.request_cancellation(booking.id, CancellationRequestCreate(reason="again"), resident)
    with pytest.raises(ConflictException):
        await services.bookings.edit_booking(
            booking.id,
            BookingEditRequest(date=date(2024, 3, 12), start_time=time(8)),
            resident,
        )
    with pytest.raises(ConflictException):
        await services.approvals.review_cancellation(
            requested.cancellations[0].id,
            CancellationReview(decision=ReviewDecisionEnum.REJECT),
            admin,
        )

    stored = await services.booking_repository.get_booking(booking.id)
    assert stored.status == BookingStatusEnum.CANCELLED


@pytest.mark.asyncio
async def test_cancellation_requires_reason(frozen_today, services, make_user, make_facility) -> None:
    resident = await make_user()
    facility = await make_facility()
    created = await _book_hourly(services, resident, facility)

    with pytest.raises(BadRequestException):
        await services.bookings.request_cancellation(
            created.bookings[0].id,
            CancellationRequestCreate(reason="   "),
            resident,
        )


@pytest.mark.asyncio
async def test_penalty_skipped_when_resident_has_no_unit(frozen_today, services, make_user, make_facility) -> None:
    resident = await make_user(with_unit=False)
    admin = await make_user(RoleEnum.APP_ADMIN, with_unit=False)
    facility = await make_facility()
    created = await _book_hourly(services, resident, facility)
    requested = await services.bookings.request_cancellation(
        created.bookings[0].id,
        CancellationRequestCreate(reason="no longer needed"),
        resident,
    )

    review = await services.approvals.review_cancellation(
        requested.cancellations[0].id,
        CancellationReview(decision=ReviewDecisionEnum.APPROVE, penalty_amount=Decimal("100")),
        admin,
    )

    assert review.bookings[0].status == BookingStatusEnum.CANCELLED
    assert review.penalty_invoice is None
    steps = {step.name: step.status for step in review.steps}
    assert steps["raise_penalty_invoice"] == WorkflowStepStatusEnum.SKIPPED
    assert review.warnings


@pytest.mark.asyncio
async def test_rejected_modification_leaves_booking_unchanged(
    frozen_today,
    services,
    make_user,
    make_facility,
) -> None:
    resident = await make_user()
    admin = await make_user(RoleEnum.MANAGEMENT, with_unit=False)
    facility = await make_facility()
    booking = (await _book_hourly(services, resident, facility)).bookings[0]

    requested = await services.bookings.edit_booking(
        booking.id,
        BookingEditRequest(date=date(2024, 3, 12), start_time=time(14), duration_hours=1, reason="guests arrive late"),
        resident,
    )
    assert requested.booking.status == BookingStatusEnum.MODIFICATION_REQUESTED
    assert requested.modification.new_start_time == time(14)
    assert requested.modification.new_end_time == time(15)

    review = await services.approvals.review_modification(
        requested.modification.id,
        ModificationReview(decision=ReviewDecisionEnum.REJECT),
        admin,
    )

    assert review.modification.status == RequestStatusEnum.REJECTED
    stored = await services.booking_repository.get_booking(booking.id)
    assert stored.status == BookingStatusEnum.CONFIRMED
    assert (stored.date, stored.start_time, stored.end_time) == (booking.date, booking.start_time, booking.end_time)


@pytest.mark.asyncio
async def test_approved_modification_overwrites_window(frozen_today, services, make_user, make_facility) -> None:
    resident = await make_user()
    admin = await make_user(RoleEnum.MANAGEMENT, with_unit=False)
    facility = await make_facility()
    booking = (await _book_hourly(services, resident, facility)).bookings[0]
    requested = await services.bookings.edit_booking(
        booking.id,
        BookingEditRequest(date=date(2024, 3, 12), start_time=time(14), duration_hours=1),
        resident,
    )

    review = await services.approvals.review_modification(
        requested.modification.id,
        ModificationReview(decision=ReviewDecisionEnum.APPROVE),
        admin,
    )

    assert review.modification.status == RequestStatusEnum.APPROVED
    assert review.booking.status == BookingStatusEnum.CONFIRMED
    assert (review.booking.date, review.booking.start_time, review.booking.end_time) == (
        date(2024, 3, 12),
        time(14),
        time(15),
    )
    with pytest.raises(ConflictException):
        await services.approvals.review_modification(
            requested.modification.id,
            ModificationReview(decision=ReviewDecisionEnum.REJECT),
            admin,
        )


@pytest.mark.asyncio
async def test_full_day_bookings_cannot_be_edited(frozen_today, services, make_user, make_facility) -> None:
    resident = await make_user()
    facility = await make_facility(pricing_type=PricingTypeEnum.PER_DAY, hourly_rate=Decimal("1000"))
    created = await _book_range(services, resident, facility)

    with pytest.raises(BusinessRuleException):
        await services.bookings.edit_booking(
            created.bookings[0].id,
            BookingEditRequest(date=date(2024, 4, 10)),
            resident,
        )
