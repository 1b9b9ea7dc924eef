"""Identity schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.core.enums import RequestStatusEnum, RoleEnum, UnitTypeEnum


class UnitRead(BaseModel):
    """Residential unit record."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    unit_number: str
    block_name: str | None = None
    unit_type: UnitTypeEnum = UnitTypeEnum.FLAT


class UserRead(BaseModel):
    """User output schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: EmailStr
    full_name: str
    role: RoleEnum
    unit_id: UUID | None = None
    is_active: bool = True
    must_change_password: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserRecord(UserRead):
    """Stored user including credential hash; never returned by the API."""

    password_hash: str


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: EmailStr
    password: str


class AccessToken(BaseModel):
    """Bearer token response."""

    access_token: str
    token_type: str = "bearer"


class SetPasswordRequest(BaseModel):
    """Administrator sets a member's password."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: UUID | None = Field(default=None, alias="userId")
    password: str | None = None
    reset_request_id: UUID | None = Field(default=None, alias="resetRequestId")


class RejectResetRequest(BaseModel):
    """Administrator declines a password reset request."""

    model_config = ConfigDict(populate_by_name=True)

    reset_request_id: UUID | None = Field(default=None, alias="resetRequestId")
    admin_notes: str | None = Field(default=None, alias="adminNotes", max_length=1000)


class PasswordResetCreate(BaseModel):
    """Member asks for a password reset."""

    email: EmailStr | None = None


class ChangePasswordRequest(BaseModel):
    """Member replaces their own password."""

    model_config = ConfigDict(populate_by_name=True)

    new_password: str | None = Field(default=None, alias="newPassword")


class PasswordResetRequestRead(BaseModel):
    """Password reset request response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    status: RequestStatusEnum
    resolved_at: datetime | None = None
    resolved_by: UUID | None = None
    admin_notes: str | None = None
    created_at: datetime | None = None


class SuccessResponse(BaseModel):
    """Plain acknowledgement."""

    success: bool = True
    message: str | None = None
