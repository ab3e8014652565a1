"""Invoice request and response schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .common import Pagination


class InvoiceGenerate(BaseModel):
    """Month to invoice as ``YYYY-MM``; defaults to the previous month."""

    month: str | None = Field(default=None, pattern=r"^\d{4}-\d{2}$")


class LineItemUpdate(BaseModel):
    id: int
    class_count: int = Field(ge=0)


class InvoiceUpdate(BaseModel):
    status: Literal["draft", "final"] | None = None
    line_items: list[LineItemUpdate] | None = None


class MiscItemCreate(BaseModel):
    description: str = Field(min_length=1, max_length=500)
    quantity: int = Field(default=1, ge=1)
    rate_idr: int = Field(ge=0)
    receipt_url: str | None = None


class InvoiceLineItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    orphanage_id: str
    orphanage_name: str
    class_count: int
    rate_per_class_idr: int
    subtotal_idr: int


class InvoiceMiscItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    description: str
    quantity: int
    rate_idr: int
    subtotal_idr: int
    receipt_url: str | None
    sort_order: int


class InvoiceSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_number: str
    period_start: date
    period_end: date
    from_entity: str
    to_entity: str
    total_classes: int
    total_amount_idr: int
    misc_total_idr: int
    rate_per_class_idr: int
    status: str
    generated_at: datetime | None
    updated_at: datetime | None


class InvoiceDetail(InvoiceSummary):
    line_items: list[InvoiceLineItemOut]
    misc_items: list[InvoiceMiscItemOut]


class InvoiceStats(BaseModel):
    total_invoices: int
    total_classes: int
    total_amount_idr: int


class InvoiceList(BaseModel):
    invoices: list[InvoiceSummary]
    stats: InvoiceStats
    pagination: Pagination


class MiscItemResponse(BaseModel):
    misc_item: InvoiceMiscItemOut
    invoice: InvoiceSummary


__all__ = [
    "InvoiceDetail",
    "InvoiceGenerate",
    "InvoiceLineItemOut",
    "InvoiceList",
    "InvoiceMiscItemOut",
    "InvoiceStats",
    "InvoiceSummary",
    "InvoiceUpdate",
    "LineItemUpdate",
    "MiscItemCreate",
    "MiscItemResponse",
]
