"""Audit API router."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.modules.audit.schemas import AuditLogRead, OutboxEventRead
from app.modules.audit.service import AuditService, get_audit_service
from app.modules.identity.service import require_admin
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("/logs", response_model=Page[AuditLogRead])
async def list_logs(
    action: str | None = None,
    pagination=Depends(get_pagination_params),
    service: AuditService = Depends(get_audit_service),
    _admin=Depends(require_admin),
) -> Page[AuditLogRead]:
    """List audit logs, including workflow step logs."""
    items, total = await service.list_logs(pagination.limit, pagination.offset, action=action)
    return build_page(items, total, pagination)


@router.get("/outbox/pending", response_model=list[OutboxEventRead])
async def list_pending_outbox(
    limit: int = Query(default=100, ge=1, le=500),
    service: AuditService = Depends(get_audit_service),
    _admin=Depends(require_admin),
) -> list[OutboxEventRead]:
    """List change-feed events waiting for delivery."""
    return await service.list_pending_outbox(limit=limit)
