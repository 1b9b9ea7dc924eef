"""Billing API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from app.core.enums import PaymentStatusEnum
from app.modules.billing.schemas import InvoiceRead
from app.modules.billing.service import InvoiceService, get_invoice_service
from app.modules.identity.service import get_current_user, require_admin
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/billing", tags=["billing"])


@router.get("/invoices/my", response_model=Page[InvoiceRead])
async def list_my_invoices(
    pagination=Depends(get_pagination_params),
    service: InvoiceService = Depends(get_invoice_service),
    current_user=Depends(get_current_user),
) -> Page[InvoiceRead]:
    """List invoices charged to the caller's unit."""
    if current_user.unit_id is None:
        return build_page([], 0, pagination)
    items, total = await service.list_unit_invoices(current_user.unit_id, pagination.limit, pagination.offset)
    return build_page(items, total, pagination)


@router.get("/invoices", response_model=Page[InvoiceRead])
async def list_invoices(
    unit_id: UUID | None = None,
    payment_status: PaymentStatusEnum | None = None,
    pagination=Depends(get_pagination_params),
    service: InvoiceService = Depends(get_invoice_service),
    _admin=Depends(require_admin),
) -> Page[InvoiceRead]:
    """List invoices across units (admin)."""
    items, total = await service.list_invoices(
        pagination.limit,
        pagination.offset,
        unit_id=unit_id,
        payment_status=payment_status,
    )
    return build_page(items, total, pagination)
