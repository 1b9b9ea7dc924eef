"""Identity business logic layer."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import Depends

from app.core.config import get_settings
from app.core.enums import RequestStatusEnum
from app.core.persistence import PersistenceBackend, get_persistence_backend
from app.core.security import create_access_token, decode_token, hash_password, oauth2_scheme, verify_password
from app.modules.audit.repository import AuditRepository
from app.modules.identity.permissions import AccessPolicy, default_access_policy
from app.modules.identity.repository import IdentityRepository
from app.modules.identity.schemas import (
    AccessToken,
    ChangePasswordRequest,
    LoginRequest,
    PasswordResetCreate,
    PasswordResetRequestRead,
    RejectResetRequest,
    SetPasswordRequest,
    SuccessResponse,
    UserRecord,
)
from app.shared.exceptions import (
    AuthenticationException,
    BadRequestException,
    NotFoundException,
)
from app.shared.utils import utc_now

settings = get_settings()
logger = logging.getLogger(__name__)


class IdentityService:
    """Identity domain service."""

    def __init__(self, repository: IdentityRepository, audit_repository: AuditRepository) -> None:
        self.repository = repository
        self.audit_repository = audit_repository

    def _validate_password(self, password: str | None) -> str:
        if not password or len(password) < settings.password_min_length:
            raise BadRequestException(
                f"Password must be at least {settings.password_min_length} characters",
            )
        return password

    async def login(self, payload: LoginRequest) -> AccessToken:
        """Authenticate user and issue access token."""
        user = await self.repository.get_user_by_email(payload.email)
        if user is None or not verify_password(payload.password, user.password_hash):
            raise AuthenticationException("Invalid credentials")
        if not user.is_active:
            raise AuthenticationException("User is inactive")

        token = create_access_token(subject=str(user.id), role=str(user.role))
        return AccessToken(access_token=token)

    async def get_user_from_access_token(self, token: str) -> UserRecord:
        """Resolve user from access token."""
        payload = decode_token(token)
        if payload.get("type") != "access":
            raise AuthenticationException("Invalid access token")

        subject = payload.get("sub")
        if not subject:
            raise AuthenticationException("Token subject is missing")

        try:
            user_id = UUID(subject)
        except ValueError as exc:
            raise AuthenticationException("Token subject is malformed") from exc

        user = await self.repository.get_user_by_id(user_id)
        if user is None:
            raise AuthenticationException("User not found")
        if not user.is_active:
            raise AuthenticationException("User is inactive")
        return user

    async def set_password(self, payload: SetPasswordRequest, actor: UserRecord) -> SuccessResponse:
        """Set a member's password and require them to change it at next login."""
        if payload.user_id is None or not payload.password:
            raise BadRequestException("userId and password are required")
        password = self._validate_password(payload.password)

        user = await self.repository.set_password(
            payload.user_id,
            hash_password(password),
            must_change_password=True,
        )
        if user is None:
            raise NotFoundException("User not found")

        if payload.reset_request_id is not None:
            resolved = await self.repository.resolve_reset_request(
                payload.reset_request_id,
                RequestStatusEnum.APPROVED,
                resolved_by=actor.id,
                resolved_at=utc_now(),
            )
            if resolved is None:
                logger.warning("Reset request %s not found while setting password", payload.reset_request_id)

        await self.audit_repository.create_audit_log(
            actor_id=actor.id,
            action="identity.password.set",
            entity_type="user",
            entity_id=str(user.id),
            payload={"reset_request_id": str(payload.reset_request_id) if payload.reset_request_id else None},
        )
        return SuccessResponse()

    async def reject_reset(self, payload: RejectResetRequest, actor: UserRecord) -> SuccessResponse:
        """Decline a pending password reset request."""
        if payload.reset_request_id is None:
            raise BadRequestException("resetRequestId is required")

        resolved = await self.repository.resolve_reset_request(
            payload.reset_request_id,
            RequestStatusEnum.REJECTED,
            resolved_by=actor.id,
            resolved_at=utc_now(),
            admin_notes=payload.admin_notes or None,
        )
        if resolved is None:
            raise NotFoundException("Reset request not found")

        await self.audit_repository.create_audit_log(
            actor_id=actor.id,
            action="identity.reset.reject",
            entity_type="password_reset_request",
            entity_id=str(resolved.id),
            payload={"admin_notes": payload.admin_notes},
        )
        return SuccessResponse()

    async def list_reset_requests(self) -> list[PasswordResetRequestRead]:
        """List password reset requests awaiting an administrator."""
        return await self.repository.list_pending_reset_requests()

    async def request_password_reset(self, payload: PasswordResetCreate) -> SuccessResponse:
        """Queue a password reset request for administrators."""
        if not payload.email:
            raise BadRequestException("Email is required")

        user = await self.repository.get_user_by_email(payload.email)
        if user is None:
            raise NotFoundException("No account found with this email")

        existing = await self.repository.get_pending_reset_request(user.id)
        if existing is not None:
            return SuccessResponse(message="A reset request is already pending. Please contact your admin.")

        await self.repository.create_reset_request(user.id)
        return SuccessResponse(message="Password reset request submitted successfully.")

    async def change_password(self, payload: ChangePasswordRequest, actor: UserRecord) -> SuccessResponse:
        """Replace the actor's own password and clear the forced-change flag."""
        password = self._validate_password(payload.new_password)
        updated = await self.repository.set_password(
            actor.id,
            hash_password(password),
            must_change_password=False,
        )
        if updated is None:
            raise NotFoundException("User not found")
        return SuccessResponse()


async def get_identity_service(
    backend: PersistenceBackend = Depends(get_persistence_backend),
) -> IdentityService:
    """Dependency to provide identity service."""
    return IdentityService(IdentityRepository(backend), AuditRepository(backend))


async def get_access_policy() -> AccessPolicy:
    """Dependency to provide the shared authorization policy."""
    return default_access_policy


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    service: IdentityService = Depends(get_identity_service),
) -> UserRecord:
    """Resolve currently authenticated user from bearer token."""
    return await service.get_user_from_access_token(token)


async def require_admin(
    current_user: UserRecord = Depends(get_current_user),
    policy: AccessPolicy = Depends(get_access_policy),
) -> UserRecord:
    """Allow only society administrators through."""
    policy.ensure_admin(current_user)
    return current_user
