"""Authorization capability shared by every module."""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from app.core.enums import ADMIN_ROLES, RoleEnum
from app.shared.exceptions import UnauthorizedException


class Actor(Protocol):
    id: UUID
    role: RoleEnum


class OwnedRecord(Protocol):
    user_id: UUID


class AccessPolicy:
    """Decide which mutations an actor may perform."""

    def __init__(self, admin_roles: frozenset[RoleEnum] = ADMIN_ROLES) -> None:
        self.admin_roles = admin_roles

    def is_admin(self, actor: Actor) -> bool:
        return actor.role in self.admin_roles

    def ensure_admin(self, actor: Actor) -> None:
        if not self.is_admin(actor):
            raise UnauthorizedException("Forbidden: Admin access required")

    def ensure_can_manage_booking(self, actor: Actor, booking: OwnedRecord) -> None:
        """Allow the booking owner and administrators through."""
        if self.is_admin(actor) or booking.user_id == actor.id:
            return
        raise UnauthorizedException("You cannot manage this booking")


default_access_policy = AccessPolicy()
