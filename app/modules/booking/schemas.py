"""Booking schemas."""

from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.core.enums import BookingStatusEnum, RequestStatusEnum, ReviewDecisionEnum, WorkflowStepStatusEnum
from app.modules.billing.schemas import InvoiceRead
from app.modules.facilities.schemas import FacilityRead


def _nested_id(value: Any) -> Any:
    if isinstance(value, dict):
        return value.get("id")
    return getattr(value, "id", None)


def _derive_ids(data: Any, nested_keys: tuple[str, ...]) -> Any:
    """Prefer ids carried by nested objects over raw foreign keys."""
    if not isinstance(data, dict):
        return data
    data = dict(data)
    for key in nested_keys:
        nested_id = _nested_id(data.get(key))
        if nested_id is not None:
            data[f"{key}_id"] = nested_id
    return data


class BookingUser(BaseModel):
    """Booking owner as shown to administrators."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    full_name: str
    unit_id: UUID | None = None
    unit_number: str | None = None


class BookingDraft(BaseModel):
    """New booking before it is stored."""

    facility_id: UUID
    user_id: UUID
    group_id: UUID
    date: datetime.date
    start_time: datetime.time
    end_time: datetime.time
    status: BookingStatusEnum = BookingStatusEnum.CONFIRMED
    total_amount: Decimal = Field(ge=0)
    number_of_persons: int = Field(default=1, ge=1)
    invoice_id: UUID | None = None


class BookingRead(BaseModel):
    """Booking response schema and domain record."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    facility_id: UUID
    user_id: UUID
    group_id: UUID | None = None
    date: datetime.date
    start_time: datetime.time
    end_time: datetime.time
    status: BookingStatusEnum
    total_amount: Decimal
    number_of_persons: int = 1
    invoice_id: UUID | None = None
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None
    facility: FacilityRead | None = None
    user: BookingUser | None = None

    @model_validator(mode="before")
    @classmethod
    def derive_nested_ids(cls, data: Any) -> Any:
        return _derive_ids(data, ("facility", "user"))


class BookingCancellationDraft(BaseModel):
    """New cancellation request before it is stored."""

    booking_id: UUID
    request_reason: str
    requested_by: UUID
    status: RequestStatusEnum = RequestStatusEnum.PENDING


class BookingCancellationRead(BaseModel):
    """Cancellation request response schema and domain record."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_id: UUID
    request_reason: str
    requested_by: UUID
    status: RequestStatusEnum
    admin_response: str | None = None
    cancellation_charges: Decimal = Decimal("0")
    reviewed_by: UUID | None = None
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None
    booking: BookingRead | None = None

    @model_validator(mode="before")
    @classmethod
    def derive_nested_ids(cls, data: Any) -> Any:
        return _derive_ids(data, ("booking",))


class BookingModificationDraft(BaseModel):
    """New modification request before it is stored."""

    booking_id: UUID
    new_date: datetime.date
    new_start_time: datetime.time
    new_end_time: datetime.time
    request_reason: str | None = None
    status: RequestStatusEnum = RequestStatusEnum.PENDING


class BookingModificationRead(BaseModel):
    """Modification request response schema and domain record."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_id: UUID
    new_date: datetime.date
    new_start_time: datetime.time
    new_end_time: datetime.time
    status: RequestStatusEnum
    request_reason: str | None = None
    admin_response: str | None = None
    reviewed_by: UUID | None = None
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None
    booking: BookingRead | None = None

    @model_validator(mode="before")
    @classmethod
    def derive_nested_ids(cls, data: Any) -> Any:
        return _derive_ids(data, ("booking",))


class BookingCreate(BaseModel):
    """Book a facility for a date (or date range) and a slot or duration."""

    facility_id: UUID
    date: datetime.date | None = None
    end_date: datetime.date | None = None
    start_time: datetime.time | None = None
    duration_hours: int = Field(default=1, ge=1, le=24)
    number_of_persons: int = Field(default=1, ge=1)


class BookingEditRequest(BaseModel):
    """Propose a new date and window for an existing booking."""

    date: datetime.date | None = None
    start_time: datetime.time | None = None
    duration_hours: int = Field(default=1, ge=1, le=24)
    reason: str | None = Field(default=None, max_length=1000)


class CancellationRequestCreate(BaseModel):
    """Ask administrators to cancel a booking and its group."""

    reason: str | None = Field(default=None, max_length=1000)


class CancellationReview(BaseModel):
    """Administrator decision on a cancellation request."""

    decision: ReviewDecisionEnum
    penalty_amount: Decimal = Field(default=Decimal("0"), ge=0)
    apply_gst: bool = True
    cancel_original_invoice: bool = True
    admin_response: str | None = Field(default=None, max_length=1000)


class ModificationReview(BaseModel):
    """Administrator decision on a modification request."""

    decision: ReviewDecisionEnum
    admin_response: str | None = Field(default=None, max_length=1000)


class WorkflowStepRead(BaseModel):
    """One recorded step of a multi-step operation."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    status: WorkflowStepStatusEnum
    detail: str | None = None


class BookingCreateResult(BaseModel):
    """Outcome of a booking request including best-effort invoice steps."""

    bookings: list[BookingRead]
    invoice_id: UUID | None = None
    warnings: list[str] = Field(default_factory=list)
    steps: list[WorkflowStepRead] = Field(default_factory=list)


class CancellationRequestResult(BaseModel):
    """Cancellation requests raised for a booking group."""

    cancellations: list[BookingCancellationRead]
    bookings: list[BookingRead]


class ModificationRequestResult(BaseModel):
    """Modification request raised for a booking."""

    modification: BookingModificationRead
    booking: BookingRead


class CancellationReviewResult(BaseModel):
    """Outcome of a cancellation review."""

    decision: ReviewDecisionEnum
    cancellations: list[BookingCancellationRead]
    bookings: list[BookingRead]
    cancelled_invoices: list[InvoiceRead] = Field(default_factory=list)
    penalty_invoice: InvoiceRead | None = None
    warnings: list[str] = Field(default_factory=list)
    steps: list[WorkflowStepRead] = Field(default_factory=list)


class ModificationReviewResult(BaseModel):
    """Outcome of a modification review."""

    decision: ReviewDecisionEnum
    modification: BookingModificationRead
    booking: BookingRead | None = None
