"""Booking ORM models."""

from __future__ import annotations

import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, Enum as SAEnum, ForeignKey, Integer, Numeric, Text, Time
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base, BaseModelMixin
from app.core.enums import BookingStatusEnum, RequestStatusEnum


class Booking(BaseModelMixin, Base):
    """Reservation of a facility for one date and time window."""

    __tablename__ = "bookings"

    facility_id: Mapped[UUID] = mapped_column(
        ForeignKey("facilities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    group_id: Mapped[UUID | None] = mapped_column(PGUUID(as_uuid=True), nullable=True, index=True)
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False, index=True)
    start_time: Mapped[datetime.time] = mapped_column(Time, nullable=False)
    end_time: Mapped[datetime.time] = mapped_column(Time, nullable=False)
    status: Mapped[BookingStatusEnum] = mapped_column(
        SAEnum(BookingStatusEnum, name="booking_status_enum", native_enum=False),
        default=BookingStatusEnum.CONFIRMED,
        nullable=False,
        index=True,
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    number_of_persons: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    invoice_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("maintenance_fees.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )


class BookingCancellation(BaseModelMixin, Base):
    """Resident request to cancel one booking, reviewed by an administrator."""

    __tablename__ = "booking_cancellations"

    booking_id: Mapped[UUID] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    request_reason: Mapped[str] = mapped_column(Text, nullable=False)
    requested_by: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status: Mapped[RequestStatusEnum] = mapped_column(
        SAEnum(RequestStatusEnum, name="cancellation_status_enum", native_enum=False),
        default=RequestStatusEnum.PENDING,
        nullable=False,
        index=True,
    )
    admin_response: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancellation_charges: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    reviewed_by: Mapped[UUID | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)


class BookingModification(BaseModelMixin, Base):
    """Resident request to move one booking to a new date or time."""

    __tablename__ = "booking_modifications"

    booking_id: Mapped[UUID] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    new_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    new_start_time: Mapped[datetime.time] = mapped_column(Time, nullable=False)
    new_end_time: Mapped[datetime.time] = mapped_column(Time, nullable=False)
    status: Mapped[RequestStatusEnum] = mapped_column(
        SAEnum(RequestStatusEnum, name="modification_status_enum", native_enum=False),
        default=RequestStatusEnum.PENDING,
        nullable=False,
        index=True,
    )
    request_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    admin_response: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[UUID | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
