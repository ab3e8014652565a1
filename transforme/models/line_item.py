"""Invoice line item and misc item models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from transforme.db.base import Base


class InvoiceLineItem(Base):
    """Classes taught at one orphanage during the invoice period."""

    __tablename__ = "invoice_line_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invoice_id: Mapped[int] = mapped_column(
        ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    orphanage_id: Mapped[str] = mapped_column(ForeignKey("orphanages.id"), nullable=False)
    orphanage_name: Mapped[str] = mapped_column(String(255), nullable=False)
    class_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rate_per_class_idr: Mapped[int] = mapped_column(BigInteger, nullable=False, default=300_000)
    subtotal_idr: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="line_items")


class InvoiceMiscItem(Base):
    """An ad-hoc invoice charge such as materials or transport."""

    __tablename__ = "invoice_misc_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invoice_id: Mapped[int] = mapped_column(
        ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    rate_idr: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    subtotal_idr: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    receipt_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="misc_items")


__all__ = ["InvoiceLineItem", "InvoiceMiscItem"]
