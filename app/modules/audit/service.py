"""Audit business logic layer."""

from __future__ import annotations

from fastapi import Depends

from app.core.persistence import PersistenceBackend, get_persistence_backend
from app.modules.audit.repository import AuditRepository
from app.modules.audit.schemas import AuditLogRead, OutboxEventRead


class AuditService:
    """Read access to the audit trail and the pending change feed."""

    def __init__(self, repository: AuditRepository) -> None:
        self.repository = repository

    async def list_logs(
        self,
        limit: int,
        offset: int,
        action: str | None = None,
    ) -> tuple[list[AuditLogRead], int]:
        """List audit logs, newest first."""
        return await self.repository.list_audit_logs(limit=limit, offset=offset, action=action)

    async def list_pending_outbox(self, limit: int) -> list[OutboxEventRead]:
        """List change-feed events not yet delivered."""
        return await self.repository.list_pending_outbox(limit)


async def get_audit_service(
    backend: PersistenceBackend = Depends(get_persistence_backend),
) -> AuditService:
    """Dependency provider for audit service."""
    return AuditService(AuditRepository(backend))
