"""Facility catalog schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.core.enums import FacilityStatusEnum, PricingTypeEnum, ScheduleTypeEnum
from app.shared.utils import format_time_of_day, parse_time_of_day


def _normalize_time(value: str | None) -> str | None:
    if value is None or value == "":
        return None
    parsed = parse_time_of_day(value)
    if parsed is None:
        raise ValueError("time must use HH:MM format")
    return format_time_of_day(parsed)


class FacilitySlot(BaseModel):
    """Named fixed-price window of a per-slot facility."""

    id: str = Field(default_factory=lambda: uuid4().hex[:12])
    name: str = Field(min_length=1, max_length=128)
    start_time: str | None = None
    end_time: str | None = None
    price: Decimal = Field(default=Decimal("0"), ge=0)


class BookingRules(BaseModel):
    """Opening pattern and duration limits of an hourly facility."""

    schedule_type: ScheduleTypeEnum = ScheduleTypeEnum.CONTINUOUS
    morning_start: str | None = None
    morning_end: str | None = None
    evening_start: str | None = None
    evening_end: str | None = None
    min_hours: int | None = Field(default=None, ge=1)
    max_hours: int | None = Field(default=None, ge=1)


class FacilityBase(BaseModel):
    """Shared facility attributes."""

    name: str = Field(min_length=1, max_length=255)
    description: str = ""
    image_url: str | None = None
    pricing_type: PricingTypeEnum = PricingTypeEnum.HOURLY
    hourly_rate: Decimal = Field(default=Decimal("0"), ge=0)
    open_time: str | None = None
    close_time: str | None = None
    slots: list[FacilitySlot] = Field(default_factory=list)
    booking_rules: BookingRules | None = None
    capacity: int | None = Field(default=None, ge=1)
    status: FacilityStatusEnum = FacilityStatusEnum.AVAILABLE
    is_active: bool = True
    per_person_applicable: bool = False
    gst_applicable: bool = False
    gst_rate: Decimal | None = Field(default=None, ge=0, le=100)
    sac_code: str | None = Field(default=None, max_length=16)


class FacilityCreate(FacilityBase):
    """Create or fully replace a facility definition."""

    @field_validator("open_time", "close_time")
    @classmethod
    def normalize_opening_hours(cls, value: str | None) -> str | None:
        return _normalize_time(value)

    @model_validator(mode="after")
    def validate_pricing(self) -> "FacilityCreate":
        if self.pricing_type == PricingTypeEnum.PER_SLOT:
            if not self.slots:
                raise ValueError("per_slot facilities need at least one slot")
            for slot in self.slots:
                slot.start_time = _normalize_time(slot.start_time)
                slot.end_time = _normalize_time(slot.end_time)
                if slot.start_time is None or slot.end_time is None:
                    raise ValueError(f"slot {slot.name!r} needs start_time and end_time")
        elif self.hourly_rate <= 0:
            raise ValueError("hourly_rate must be positive")
        return self


class FacilityUpdate(BaseModel):
    """Partial facility update; the merged result is validated as a whole."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    image_url: str | None = None
    pricing_type: PricingTypeEnum | None = None
    hourly_rate: Decimal | None = Field(default=None, ge=0)
    open_time: str | None = None
    close_time: str | None = None
    slots: list[FacilitySlot] | None = None
    booking_rules: BookingRules | None = None
    capacity: int | None = Field(default=None, ge=1)
    status: FacilityStatusEnum | None = None
    is_active: bool | None = None
    per_person_applicable: bool | None = None
    gst_applicable: bool | None = None
    gst_rate: Decimal | None = Field(default=None, ge=0, le=100)
    sac_code: str | None = Field(default=None, max_length=16)


class FacilityRead(FacilityBase):
    """Facility response schema and domain record."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SlotOption(BaseModel):
    """One offerable time window for a facility on a date."""

    time: str
    label: str | None = None
    price: Decimal | None = None
    is_booked: bool = False
