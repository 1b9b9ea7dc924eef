"""Billing schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.core.enums import FeeTypeEnum, PaymentStatusEnum


class InvoiceDraft(BaseModel):
    """New billing line before it is stored."""

    unit_id: UUID
    amount: Decimal = Field(ge=0)
    tax_amount: Decimal = Field(default=Decimal("0"), ge=0)
    total_amount: Decimal = Field(ge=0)
    fee_type: FeeTypeEnum
    description: str | None = None
    due_date: date
    payment_status: PaymentStatusEnum = PaymentStatusEnum.PENDING


class InvoiceRead(InvoiceDraft):
    """Invoice response schema and domain record."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime | None = None
    updated_at: datetime | None = None
