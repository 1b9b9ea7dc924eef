"""Identity ORM models."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base, BaseModelMixin
from app.core.enums import RequestStatusEnum, RoleEnum, UnitTypeEnum


class Unit(BaseModelMixin, Base):
    """Residential unit that billing lines are charged to."""

    __tablename__ = "units"

    unit_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    block_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    unit_type: Mapped[UnitTypeEnum] = mapped_column(
        SAEnum(UnitTypeEnum, name="unit_type_enum", native_enum=False),
        default=UnitTypeEnum.FLAT,
        nullable=False,
    )


class User(BaseModelMixin, Base):
    """Society member account."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[RoleEnum] = mapped_column(
        SAEnum(RoleEnum, name="role_enum", native_enum=False),
        default=RoleEnum.RESIDENT,
        nullable=False,
    )
    unit_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("units.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    must_change_password: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class PasswordResetRequest(BaseModelMixin, Base):
    """Resident request for an administrator to reset their password."""

    __tablename__ = "password_reset_requests"

    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status: Mapped[RequestStatusEnum] = mapped_column(
        SAEnum(RequestStatusEnum, name="reset_request_status_enum", native_enum=False),
        default=RequestStatusEnum.PENDING,
        nullable=False,
        index=True,
    )
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_by: Mapped[UUID | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
