"""Offerable time windows of a facility on a given date."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, time
from typing import Protocol
from uuid import UUID

from app.core.enums import BookingStatusEnum, PricingTypeEnum, ScheduleTypeEnum
from app.modules.facilities.schemas import FacilityRead, SlotOption
from app.shared.utils import format_time_of_day, parse_leading_hour, parse_time_of_day

DEFAULT_OPEN_HOUR = 6
DEFAULT_CLOSE_HOUR = 22
FULL_DAY = "Full Day"

# Bookings in these states no longer hold their window.
RELEASED_STATUSES = frozenset({BookingStatusEnum.CANCELLED, BookingStatusEnum.CANCELLATION_REQUESTED})


class OccupyingBooking(Protocol):
    id: UUID
    facility_id: UUID
    date: date
    start_time: time
    end_time: time
    status: BookingStatusEnum


def holding_bookings(
    facility: FacilityRead,
    day: date,
    bookings: Iterable[OccupyingBooking],
    editing_booking_id: UUID | None,
) -> list[OccupyingBooking]:
    return [
        booking
        for booking in bookings
        if booking.facility_id == facility.id
        and booking.date == day
        and booking.status not in RELEASED_STATUSES
        and booking.id != editing_booking_id
    ]


def _window_hours(start: str | None, end: str | None) -> tuple[int, int]:
    first = parse_leading_hour(start, DEFAULT_OPEN_HOUR)
    last = parse_leading_hour(end, DEFAULT_CLOSE_HOUR)
    return first, min(last, 24)


def _opening_windows(facility: FacilityRead) -> list[tuple[str | None, str | None]]:
    rules = facility.booking_rules
    if rules is not None and rules.schedule_type == ScheduleTypeEnum.SPLIT:
        windows = []
        if rules.morning_start and rules.morning_end:
            windows.append((rules.morning_start, rules.morning_end))
        if rules.evening_start and rules.evening_end:
            windows.append((rules.evening_start, rules.evening_end))
        return windows
    return [(facility.open_time, facility.close_time)]


def hourly_windows(facility: FacilityRead) -> list[tuple[int, int]]:
    """Opening windows of an hourly facility as (first hour, closing hour) pairs."""
    return [_window_hours(start, end) for start, end in _opening_windows(facility)]


def generate_slots(
    facility: FacilityRead,
    day: date,
    bookings: Iterable[OccupyingBooking],
    editing_booking_id: UUID | None = None,
) -> list[SlotOption]:
    """List offerable windows for a facility on a date, flagging booked ones."""
    holding = holding_bookings(facility, day, bookings, editing_booking_id)

    if facility.pricing_type == PricingTypeEnum.PER_DAY:
        return [
            SlotOption(
                time=FULL_DAY,
                label="Full Day Booking",
                price=facility.hourly_rate,
                is_booked=bool(holding),
            ),
        ]

    if facility.pricing_type == PricingTypeEnum.PER_SLOT:
        options = []
        for slot in facility.slots:
            start = parse_time_of_day(slot.start_time)
            if start is None:
                continue
            options.append(
                SlotOption(
                    time=format_time_of_day(start),
                    label=f"{slot.name} ({slot.start_time}-{slot.end_time})",
                    price=slot.price,
                    is_booked=any(booking.start_time == start for booking in holding),
                ),
            )
        return sorted(options, key=lambda option: option.time)

    options = []
    for first, last in hourly_windows(facility):
        for hour in range(first, last):
            bucket = time(hour=hour)
            options.append(
                SlotOption(
                    time=format_time_of_day(bucket),
                    is_booked=any(booking.start_time <= bucket < booking.end_time for booking in holding),
                ),
            )
    return sorted(options, key=lambda option: option.time)
