"""Facility catalog ORM models."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Boolean, Enum as SAEnum, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base, BaseModelMixin
from app.core.enums import FacilityStatusEnum, PricingTypeEnum


class Facility(BaseModelMixin, Base):
    """Bookable shared resource such as a hall, court or pool."""

    __tablename__ = "facilities"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    pricing_type: Mapped[PricingTypeEnum] = mapped_column(
        SAEnum(PricingTypeEnum, name="pricing_type_enum", native_enum=False),
        default=PricingTypeEnum.HOURLY,
        nullable=False,
    )
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    # Stored as entered; the slot generator parses them leniently.
    open_time: Mapped[str | None] = mapped_column(String(8), nullable=True)
    close_time: Mapped[str | None] = mapped_column(String(8), nullable=True)
    slots: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    booking_rules: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[FacilityStatusEnum] = mapped_column(
        SAEnum(FacilityStatusEnum, name="facility_status_enum", native_enum=False),
        default=FacilityStatusEnum.AVAILABLE,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    per_person_applicable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    gst_applicable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    gst_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    sac_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
