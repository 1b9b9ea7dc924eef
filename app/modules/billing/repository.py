"""Billing repository layer."""

from __future__ import annotations

from uuid import UUID

from app.core.enums import PaymentStatusEnum
from app.core.persistence import PersistenceBackend
from app.modules.billing.schemas import InvoiceDraft, InvoiceRead

INVOICES = "maintenance_fees"


class InvoiceRepository:
    """Storage operations for billing lines."""

    def __init__(self, backend: PersistenceBackend) -> None:
        self.backend = backend

    async def create_invoice(self, draft: InvoiceDraft) -> InvoiceRead:
        [row] = await self.backend.insert(INVOICES, [draft.model_dump()])
        return InvoiceRead.model_validate(row)

    async def get_invoice(self, invoice_id: UUID) -> InvoiceRead | None:
        rows = await self.backend.list(INVOICES, {"id": invoice_id}, limit=1)
        return InvoiceRead.model_validate(rows[0]) if rows else None

    async def list_invoices(
        self,
        unit_id: UUID | None = None,
        payment_status: PaymentStatusEnum | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> tuple[list[InvoiceRead], int]:
        filters: dict = {}
        if unit_id is not None:
            filters["unit_id"] = unit_id
        if payment_status is not None:
            filters["payment_status"] = payment_status
        total = await self.backend.count(INVOICES, filters)
        rows = await self.backend.list(
            INVOICES,
            filters,
            order_by="created_at",
            descending=True,
            limit=limit,
            offset=offset,
        )
        return [InvoiceRead.model_validate(row) for row in rows], total

    async def mark_cancelled(self, invoice_id: UUID, description: str) -> InvoiceRead | None:
        rows = await self.backend.update(
            INVOICES,
            {"payment_status": PaymentStatusEnum.CANCELLED, "description": description},
            {"id": invoice_id},
        )
        return InvoiceRead.model_validate(rows[0]) if rows else None
