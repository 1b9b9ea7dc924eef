"""Executable worker publishing the booking change feed."""

from __future__ import annotations

import asyncio
import logging
import os

import httpx

from app.core.config import get_settings
from app.core.persistence import PersistenceBackend, backend_provider
from app.modules.audit.change_feed import ChangeFeedPublisher
from app.modules.audit.repository import AuditRepository

logger = logging.getLogger(__name__)


async def _publish(backend: PersistenceBackend) -> dict[str, int]:
    settings = get_settings()
    if not settings.realtime_webhook_url:
        logger.info("REALTIME_WEBHOOK_URL is not set; pending events are marked processed")
    async with httpx.AsyncClient(timeout=settings.realtime_webhook_timeout_seconds) as client:
        publisher = ChangeFeedPublisher(
            audit_repository=AuditRepository(backend),
            client=client,
            webhook_url=settings.realtime_webhook_url,
            batch_size=int(os.getenv("CHANGE_FEED_WORKER_BATCH_SIZE", "100")),
        )
        return await publisher.run_once()


async def run_cycle() -> dict[str, int]:
    """Run a single change feed cycle against the configured backend."""
    async with backend_provider.unit_of_work() as backend:
        return await _publish(backend)


async def main() -> None:
    """Run once or keep polling according to worker mode."""
    logging.basicConfig(level=os.getenv("CHANGE_FEED_WORKER_LOG_LEVEL", "INFO"))
    mode = os.getenv("CHANGE_FEED_WORKER_MODE", "once").strip().lower()
    poll_seconds = int(os.getenv("CHANGE_FEED_WORKER_POLL_SECONDS", "5"))

    if mode == "once":
        stats = await run_cycle()
        logger.info("Change feed worker stats: %s", stats)
        return

    while True:
        try:
            stats = await run_cycle()
            logger.info("Change feed worker stats: %s", stats)
        except Exception:
            logger.exception("Change feed worker cycle failed")
        await asyncio.sleep(poll_seconds)


if __name__ == "__main__":
    asyncio.run(main())
