"""Change feed publisher draining booking status events to a webhook."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from app.core.metrics import record_change_feed_delivery
from app.modules.audit.repository import AuditRepository
from app.modules.audit.schemas import OutboxEventRead
from app.shared.utils import utc_now

logger = logging.getLogger(__name__)


class ChangeFeedPublisher:
    """Deliver pending outbox events at most once."""

    def __init__(
        self,
        audit_repository: AuditRepository,
        client: httpx.AsyncClient | None,
        webhook_url: str | None,
        *,
        batch_size: int = 100,
        now_provider=utc_now,
    ) -> None:
        self.audit_repository = audit_repository
        self.client = client
        self.webhook_url = webhook_url
        self.batch_size = batch_size
        self.now_provider = now_provider

    async def run_once(self) -> dict[str, int]:
        """Run one delivery cycle."""
        stats = {"processed": 0, "failed": 0}
        events = await self.audit_repository.list_pending_outbox(limit=self.batch_size)
        for event in events:
            try:
                await self._deliver(event)
            except httpx.HTTPError as exc:
                logger.warning("Change feed event %s was not delivered: %s", event.id, exc)
                await self.audit_repository.mark_outbox_failed(
                    event.id,
                    str(exc) or type(exc).__name__,
                    self.now_provider(),
                )
                record_change_feed_delivery("failed")
                stats["failed"] += 1
                continue
            await self.audit_repository.mark_outbox_processed(event.id, self.now_provider())
            record_change_feed_delivery("processed")
            stats["processed"] += 1
        return stats

    async def _deliver(self, event: OutboxEventRead) -> None:
        if not self.webhook_url or self.client is None:
            return
        response = await self.client.post(self.webhook_url, json=self._message(event))
        response.raise_for_status()

    @staticmethod
    def _message(event: OutboxEventRead) -> dict[str, Any]:
        return {
            "id": str(event.id),
            "event_type": event.event_type,
            "aggregate_type": event.aggregate_type,
            "aggregate_id": event.aggregate_id,
            "occurred_at": event.occurred_at.isoformat(),
            "payload": event.payload,
        }
