"""Identity API router."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.modules.identity.schemas import (
    AccessToken,
    ChangePasswordRequest,
    LoginRequest,
    PasswordResetCreate,
    PasswordResetRequestRead,
    RejectResetRequest,
    SetPasswordRequest,
    SuccessResponse,
    UserRead,
)
from app.modules.identity.service import IdentityService, get_current_user, get_identity_service, require_admin

router = APIRouter(prefix="/identity", tags=["identity"])


@router.post("/auth/login", response_model=AccessToken)
async def login(
    payload: LoginRequest,
    service: IdentityService = Depends(get_identity_service),
) -> AccessToken:
    """Sign in by email/password and return an access token."""
    return await service.login(payload)


@router.get("/users/me", response_model=UserRead)
async def get_me(current_user=Depends(get_current_user)) -> UserRead:
    """Return profile of authenticated user."""
    return UserRead.model_validate(current_user)


@router.post("/admin/set-password", response_model=SuccessResponse, response_model_exclude_none=True)
async def set_password(
    payload: SetPasswordRequest,
    service: IdentityService = Depends(get_identity_service),
    admin=Depends(require_admin),
) -> SuccessResponse:
    """Set a member's password on their behalf."""
    return await service.set_password(payload, admin)


@router.post("/admin/reject-reset", response_model=SuccessResponse, response_model_exclude_none=True)
async def reject_reset(
    payload: RejectResetRequest,
    service: IdentityService = Depends(get_identity_service),
    admin=Depends(require_admin),
) -> SuccessResponse:
    """Decline a password reset request."""
    return await service.reject_reset(payload, admin)


@router.get("/admin/reset-requests", response_model=list[PasswordResetRequestRead])
async def list_reset_requests(
    service: IdentityService = Depends(get_identity_service),
    _admin=Depends(require_admin),
) -> list[PasswordResetRequestRead]:
    """List pending password reset requests."""
    return await service.list_reset_requests()


@router.post("/request-password-reset", response_model=SuccessResponse)
async def request_password_reset(
    payload: PasswordResetCreate,
    service: IdentityService = Depends(get_identity_service),
) -> SuccessResponse:
    """Ask administrators to reset a forgotten password."""
    return await service.request_password_reset(payload)


@router.post("/change-password", response_model=SuccessResponse, response_model_exclude_none=True)
async def change_password(
    payload: ChangePasswordRequest,
    service: IdentityService = Depends(get_identity_service),
    current_user=Depends(get_current_user),
) -> SuccessResponse:
    """Replace the caller's password."""
    return await service.change_password(payload, current_user)
