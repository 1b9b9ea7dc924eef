"""Identity repository layer."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from app.core.enums import RequestStatusEnum, RoleEnum, UnitTypeEnum
from app.core.persistence import PersistenceBackend
from app.modules.identity.schemas import PasswordResetRequestRead, UnitRead, UserRecord

USERS = "users"
UNITS = "units"
RESET_REQUESTS = "password_reset_requests"


class IdentityRepository:
    """Storage operations for identity domain."""

    def __init__(self, backend: PersistenceBackend) -> None:
        self.backend = backend

    async def get_user_by_email(self, email: str) -> UserRecord | None:
        rows = await self.backend.list(USERS, {"email": email.lower()}, limit=1)
        return UserRecord.model_validate(rows[0]) if rows else None

    async def get_user_by_id(self, user_id: UUID) -> UserRecord | None:
        rows = await self.backend.list(USERS, {"id": user_id}, limit=1)
        return UserRecord.model_validate(rows[0]) if rows else None

    async def get_users_by_ids(self, user_ids: Iterable[UUID]) -> dict[UUID, UserRecord]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        rows = await self.backend.list(USERS, {"id": ids})
        users = [UserRecord.model_validate(row) for row in rows]
        return {user.id: user for user in users}

    async def get_units_by_ids(self, unit_ids: Iterable[UUID]) -> dict[UUID, UnitRead]:
        ids = list(set(unit_ids))
        if not ids:
            return {}
        rows = await self.backend.list(UNITS, {"id": ids})
        units = [UnitRead.model_validate(row) for row in rows]
        return {unit.id: unit for unit in units}

    async def get_unit_by_number(self, unit_number: str) -> UnitRead | None:
        rows = await self.backend.list(UNITS, {"unit_number": unit_number}, limit=1)
        return UnitRead.model_validate(rows[0]) if rows else None

    async def create_unit(
        self,
        unit_number: str,
        unit_type: UnitTypeEnum = UnitTypeEnum.FLAT,
        block_name: str | None = None,
    ) -> UnitRead:
        [row] = await self.backend.insert(
            UNITS,
            [{"unit_number": unit_number, "unit_type": unit_type, "block_name": block_name}],
        )
        return UnitRead.model_validate(row)

    async def create_user(
        self,
        email: str,
        full_name: str,
        password_hash: str,
        role: RoleEnum,
        unit_id: UUID | None,
    ) -> UserRecord:
        [row] = await self.backend.insert(
            USERS,
            [
                {
                    "email": email.lower(),
                    "full_name": full_name,
                    "password_hash": password_hash,
                    "role": role,
                    "unit_id": unit_id,
                    "is_active": True,
                    "must_change_password": False,
                },
            ],
        )
        return UserRecord.model_validate(row)

    async def set_password(
        self,
        user_id: UUID,
        password_hash: str,
        must_change_password: bool,
    ) -> UserRecord | None:
        rows = await self.backend.update(
            USERS,
            {"password_hash": password_hash, "must_change_password": must_change_password},
            {"id": user_id},
        )
        return UserRecord.model_validate(rows[0]) if rows else None

    async def get_reset_request(self, request_id: UUID) -> PasswordResetRequestRead | None:
        rows = await self.backend.list(RESET_REQUESTS, {"id": request_id}, limit=1)
        return PasswordResetRequestRead.model_validate(rows[0]) if rows else None

    async def get_pending_reset_request(self, user_id: UUID) -> PasswordResetRequestRead | None:
        rows = await self.backend.list(
            RESET_REQUESTS,
            {"user_id": user_id, "status": RequestStatusEnum.PENDING},
            limit=1,
        )
        return PasswordResetRequestRead.model_validate(rows[0]) if rows else None

    async def create_reset_request(self, user_id: UUID) -> PasswordResetRequestRead:
        [row] = await self.backend.insert(
            RESET_REQUESTS,
            [{"user_id": user_id, "status": RequestStatusEnum.PENDING}],
        )
        return PasswordResetRequestRead.model_validate(row)

    async def resolve_reset_request(
        self,
        request_id: UUID,
        status: RequestStatusEnum,
        resolved_by: UUID,
        resolved_at: datetime,
        admin_notes: str | None = None,
    ) -> PasswordResetRequestRead | None:
        patch: dict = {"status": status, "resolved_at": resolved_at, "resolved_by": resolved_by}
        if admin_notes is not None:
            patch["admin_notes"] = admin_notes
        rows = await self.backend.update(RESET_REQUESTS, patch, {"id": request_id})
        return PasswordResetRequestRead.model_validate(rows[0]) if rows else None

    async def list_pending_reset_requests(self) -> list[PasswordResetRequestRead]:
        rows = await self.backend.list(
            RESET_REQUESTS,
            {"status": RequestStatusEnum.PENDING},
            order_by="created_at",
            descending=True,
        )
        return [PasswordResetRequestRead.model_validate(row) for row in rows]
