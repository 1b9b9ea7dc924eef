"""Facility price computation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from decimal import Decimal

from app.core.config import get_settings
from app.core.enums import PricingTypeEnum
from app.modules.facilities.schemas import FacilityRead, FacilitySlot
from app.shared.exceptions import BadRequestException
from app.shared.utils import parse_time_of_day, to_money

settings = get_settings()


@dataclass(frozen=True, slots=True)
class PriceSelection:
    """What the resident picked: a slot start, a duration or a number of days."""

    start_time: time | None = None
    duration_hours: int = 1
    days: int = 1
    number_of_persons: int = 1


@dataclass(frozen=True, slots=True)
class PriceQuote:
    per_booking_amount: Decimal
    base_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    persons: int
    days: int


def effective_gst_rate(facility: FacilityRead, default_rate: Decimal | None = None) -> Decimal:
    """Return the facility GST rate, falling back to the configured default."""
    if facility.gst_rate is not None:
        return facility.gst_rate
    return default_rate if default_rate is not None else settings.default_gst_rate


def tax_on(amount: Decimal, rate: Decimal) -> Decimal:
    return to_money(amount * rate / Decimal(100))


def find_slot(facility: FacilityRead, start_time: time | None) -> FacilitySlot | None:
    """Return the defined slot starting at the given time."""
    if start_time is None:
        return None
    for slot in facility.slots:
        if parse_time_of_day(slot.start_time) == start_time:
            return slot
    return None


def compute_price(
    facility: FacilityRead,
    selection: PriceSelection,
    default_gst_rate: Decimal | None = None,
) -> PriceQuote:
    """Price a selection; per-day quotes carry one day's amount per booking."""
    persons = max(selection.number_of_persons, 1) if facility.per_person_applicable else 1
    days = 1

    if facility.pricing_type == PricingTypeEnum.PER_SLOT:
        slot = find_slot(facility, selection.start_time)
        if slot is None:
            raise BadRequestException("Selected slot does not exist for this facility")
        unit_price = slot.price
    elif facility.pricing_type == PricingTypeEnum.PER_DAY:
        days = max(selection.days, 1)
        unit_price = facility.hourly_rate
    else:
        unit_price = facility.hourly_rate * selection.duration_hours

    per_booking_amount = to_money(unit_price * persons)
    base_amount = to_money(per_booking_amount * days)
    tax_amount = Decimal("0.00")
    if facility.gst_applicable:
        tax_amount = tax_on(base_amount, effective_gst_rate(facility, default_gst_rate))

    return PriceQuote(
        per_booking_amount=per_booking_amount,
        base_amount=base_amount,
        tax_amount=tax_amount,
        total_amount=to_money(base_amount + tax_amount),
        persons=persons,
        days=days,
    )
