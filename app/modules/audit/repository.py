"""Audit repository layer."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from app.core.enums import OutboxStatusEnum
from app.core.persistence import PersistenceBackend
from app.modules.audit.schemas import AuditLogRead, OutboxEventRead
from app.shared.utils import utc_now
from app.shared.workflow import WorkflowLog

AUDIT_LOGS = "audit_logs"
OUTBOX_EVENTS = "outbox_events"


class AuditRepository:
    """Storage operations for audit trail and change feed."""

    def __init__(self, backend: PersistenceBackend) -> None:
        self.backend = backend

    async def create_audit_log(
        self,
        actor_id: UUID | None,
        action: str,
        entity_type: str,
        entity_id: str | None,
        payload: dict,
        partial: bool = False,
    ) -> AuditLogRead:
        [row] = await self.backend.insert(
            AUDIT_LOGS,
            [
                {
                    "actor_id": actor_id,
                    "action": action,
                    "entity_type": entity_type,
                    "entity_id": entity_id,
                    "payload": payload,
                    "partial": partial,
                },
            ],
        )
        return AuditLogRead.model_validate(row)

    async def list_audit_logs(
        self,
        limit: int,
        offset: int,
        action: str | None = None,
    ) -> tuple[list[AuditLogRead], int]:
        filters = {"action": action} if action else {}
        total = await self.backend.count(AUDIT_LOGS, filters)
        rows = await self.backend.list(
            AUDIT_LOGS,
            filters,
            order_by="created_at",
            descending=True,
            limit=limit,
            offset=offset,
        )
        return [AuditLogRead.model_validate(row) for row in rows], total

    async def create_outbox_event(
        self,
        aggregate_type: str,
        aggregate_id: str,
        event_type: str,
        payload: dict,
    ) -> OutboxEventRead:
        [row] = await self.backend.insert(
            OUTBOX_EVENTS,
            [
                {
                    "aggregate_type": aggregate_type,
                    "aggregate_id": aggregate_id,
                    "event_type": event_type,
                    "payload": payload,
                    "status": OutboxStatusEnum.PENDING,
                    "occurred_at": utc_now(),
                },
            ],
        )
        return OutboxEventRead.model_validate(row)

    async def list_pending_outbox(self, limit: int) -> list[OutboxEventRead]:
        rows = await self.backend.list(
            OUTBOX_EVENTS,
            {"status": OutboxStatusEnum.PENDING},
            order_by="occurred_at",
            limit=limit,
        )
        return [OutboxEventRead.model_validate(row) for row in rows]

    async def mark_outbox_processed(self, event_id: UUID, processed_at: datetime) -> None:
        await self.backend.update(
            OUTBOX_EVENTS,
            {"status": OutboxStatusEnum.PROCESSED, "processed_at": processed_at, "error_message": None},
            {"id": event_id},
        )

    async def mark_outbox_failed(self, event_id: UUID, error_message: str, failed_at: datetime) -> None:
        await self.backend.update(
            OUTBOX_EVENTS,
            {"status": OutboxStatusEnum.FAILED, "processed_at": failed_at, "error_message": error_message[:2000]},
            {"id": event_id},
        )

    async def record_workflow(
        self,
        workflow: WorkflowLog,
        actor_id: UUID | None,
        entity_type: str,
        entity_id: str | None,
    ) -> AuditLogRead:
        return await self.create_audit_log(
            actor_id=actor_id,
            action=workflow.name,
            entity_type=entity_type,
            entity_id=entity_id,
            payload=workflow.as_payload(),
            partial=workflow.has_failures,
        )
