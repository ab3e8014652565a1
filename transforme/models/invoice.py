"""Invoice model."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import BigInteger, CheckConstraint, Date, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from transforme.db.base import Base


class Invoice(Base):
    """Monthly invoice for classes taught, billed in Indonesian rupiah.

    ``total_classes``, ``total_amount_idr`` and ``misc_total_idr`` are
    aggregates of the line and misc items and are only written by
    :func:`transforme.services.invoices.recalculate_invoice_totals`.
    """

    __tablename__ = "invoices"
    __table_args__ = (
        CheckConstraint("status IN ('draft','final')", name="ck_invoices_status_valid"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invoice_number: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False, index=True
    )
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    from_entity: Mapped[str] = mapped_column(String(255), nullable=False)
    to_entity: Mapped[str] = mapped_column(String(255), nullable=False)
    total_classes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_amount_idr: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    misc_total_idr: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    rate_per_class_idr: Mapped[int] = mapped_column(BigInteger, nullable=False, default=300_000)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    line_items: Mapped[list["InvoiceLineItem"]] = relationship(
        "InvoiceLineItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLineItem.orphanage_name",
    )
    misc_items: Mapped[list["InvoiceMiscItem"]] = relationship(
        "InvoiceMiscItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceMiscItem.sort_order",
    )


__all__ = ["Invoice"]
