"""Invoice generation, editing and totals recalculation.

All mutating operations follow the same unit of work: lock the invoice row,
apply the change, flush, recompute the aggregates from the database and
commit once. A failure anywhere rolls the whole unit back, so the stored
totals always equal the line items plus the misc items.
"""

from __future__ import annotations

import calendar
import re
from datetime import date

import structlog
from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from transforme.core.config import get_settings
from transforme.models import ClassLog, Invoice, InvoiceLineItem, InvoiceMiscItem, Orphanage
from transforme.schemas.invoice import LineItemUpdate, MiscItemCreate
from transforme.services.metrics import invoice_recalculations_total

LOGGER = structlog.get_logger(__name__)

_MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


def previous_month(today: date | None = None) -> tuple[int, int]:
    today = today or date.today()
    if today.month == 1:
        return today.year - 1, 12
    return today.year, today.month - 1


def resolve_period(month: str | None, *, today: date | None = None) -> tuple[date, date, str]:
    """Return ``(period_start, period_end, invoice_number)`` for ``YYYY-MM``."""

    if month:
        match = _MONTH_PATTERN.match(month.strip())
        if not match or not 1 <= int(match.group(2)) <= 12:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Must be YYYY-MM format",
            )
        year, month_number = int(match.group(1)), int(match.group(2))
    else:
        year, month_number = previous_month(today)

    last_day = calendar.monthrange(year, month_number)[1]
    return (
        date(year, month_number, 1),
        date(year, month_number, last_day),
        f"INV-{year:04d}-{month_number:02d}",
    )


def _get_invoice_or_404(session: Session, invoice_id: int) -> Invoice:
    invoice = (
        session.query(Invoice)
        .options(selectinload(Invoice.line_items), selectinload(Invoice.misc_items))
        .filter(Invoice.id == invoice_id)
        .one_or_none()
    )
    if not invoice:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invoice not found",
        )
    return invoice


def _lock_invoice(session: Session, invoice_id: int) -> Invoice:
    invoice = (
        session.query(Invoice)
        .filter(Invoice.id == invoice_id)
        .with_for_update()
        .one_or_none()
    )
    if not invoice:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invoice not found",
        )
    return invoice


def recalculate_invoice_totals(session: Session, invoice: Invoice, *, trigger: str) -> Invoice:
    """Recompute ``invoice`` totals from its stored line and misc items.

    Pending changes are flushed first; the caller commits.
    """

    session.flush()
    total_classes, class_amount = session.query(
        func.coalesce(func.sum(InvoiceLineItem.class_count), 0),
        func.coalesce(
            func.sum(InvoiceLineItem.class_count * InvoiceLineItem.rate_per_class_idr), 0
        ),
    ).filter(InvoiceLineItem.invoice_id == invoice.id).one()
    misc_total = session.query(
        func.coalesce(func.sum(InvoiceMiscItem.quantity * InvoiceMiscItem.rate_idr), 0)
    ).filter(InvoiceMiscItem.invoice_id == invoice.id).scalar()

    invoice.total_classes = int(total_classes)
    invoice.misc_total_idr = int(misc_total)
    invoice.total_amount_idr = int(class_amount) + int(misc_total)
    session.add(invoice)
    invoice_recalculations_total.labels(trigger=trigger).inc()
    LOGGER.info(
        "invoice_totals_recalculated",
        invoice_id=invoice.id,
        trigger=trigger,
        total_classes=invoice.total_classes,
        misc_total_idr=invoice.misc_total_idr,
        total_amount_idr=invoice.total_amount_idr,
    )
    return invoice


def _commit_or_rollback(session: Session) -> None:
    try:
        session.commit()
    except Exception:
        session.rollback()
        raise


# -------------------------------------------------------
# Generation
# -------------------------------------------------------

def generate_invoice(
    session: Session,
    month: str | None = None,
    *,
    today: date | None = None,
) -> Invoice:
    """Create a draft invoice counting every class logged in ``month``."""

    period_start, period_end, invoice_number = resolve_period(month, today=today)
    existing = (
        session.query(Invoice.id)
        .filter(Invoice.invoice_number == invoice_number)
        .one_or_none()
    )
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Invoice {invoice_number} already exists",
        )

    settings = get_settings()
    rate = settings.class_rate_idr
    counts = (
        session.query(ClassLog.orphanage_id, Orphanage.name, func.count(ClassLog.id))
        .outerjoin(Orphanage, Orphanage.id == ClassLog.orphanage_id)
        .filter(ClassLog.class_date >= period_start, ClassLog.class_date <= period_end)
        .group_by(ClassLog.orphanage_id, Orphanage.name)
        .all()
    )

    invoice = Invoice(
        invoice_number=invoice_number,
        period_start=period_start,
        period_end=period_end,
        from_entity=settings.invoice_from_entity,
        to_entity=settings.invoice_to_entity,
        rate_per_class_idr=rate,
        status="draft",
        line_items=[
            InvoiceLineItem(
                orphanage_id=orphanage_id,
                orphanage_name=name or orphanage_id,
                class_count=int(count),
                rate_per_class_idr=rate,
                subtotal_idr=int(count) * rate,
            )
            for orphanage_id, name, count in counts
        ],
    )
    session.add(invoice)
    recalculate_invoice_totals(session, invoice, trigger="generate")
    _commit_or_rollback(session)
    LOGGER.info(
        "invoice_generated",
        invoice_number=invoice_number,
        total_classes=invoice.total_classes,
        total_amount_idr=invoice.total_amount_idr,
    )
    return _get_invoice_or_404(session, invoice.id)


# -------------------------------------------------------
# Reads
# -------------------------------------------------------

def list_invoices(
    session: Session, *, page: int = 1, limit: int = 25
) -> tuple[list[Invoice], int, dict[str, int]]:
    """Return one page of invoices (newest period first), the count and overall stats."""

    page = max(1, page)
    limit = min(50, max(1, limit))
    total = session.query(func.count(Invoice.id)).scalar() or 0
    rows = (
        session.query(Invoice)
        .order_by(Invoice.period_start.desc(), Invoice.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    total_classes, total_amount = session.query(
        func.coalesce(func.sum(Invoice.total_classes), 0),
        func.coalesce(func.sum(Invoice.total_amount_idr), 0),
    ).one()
    stats = {
        "total_invoices": int(total),
        "total_classes": int(total_classes),
        "total_amount_idr": int(total_amount),
    }
    return rows, int(total), stats


def get_invoice(session: Session, invoice_id: int) -> Invoice:
    return _get_invoice_or_404(session, invoice_id)


# -------------------------------------------------------
# Mutations
# -------------------------------------------------------

def update_invoice(
    session: Session,
    invoice_id: int,
    *,
    status_value: str | None = None,
    line_items: list[LineItemUpdate] | None = None,
) -> Invoice:
    """Change status and/or line-item class counts, then recalculate."""

    invoice = _lock_invoice(session, invoice_id)
    try:
        if line_items:
            items = {
                item.id: item
                for item in session.query(InvoiceLineItem)
                .filter(InvoiceLineItem.invoice_id == invoice.id)
                .all()
            }
            for update in line_items:
                item = items.get(update.id)
                if item is None:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"Line item {update.id} does not belong to this invoice",
                    )
                item.class_count = update.class_count
                item.subtotal_idr = update.class_count * item.rate_per_class_idr
                session.add(item)
            recalculate_invoice_totals(session, invoice, trigger="line_item_update")
        if status_value:
            invoice.status = status_value
            session.add(invoice)
        _commit_or_rollback(session)
    except HTTPException:
        session.rollback()
        raise

    LOGGER.info(
        "invoice_updated",
        invoice_id=invoice.id,
        status=invoice.status,
        line_items_changed=len(line_items or []),
    )
    return _get_invoice_or_404(session, invoice.id)


def delete_invoice(session: Session, invoice_id: int) -> None:
    invoice = _lock_invoice(session, invoice_id)
    session.delete(invoice)
    _commit_or_rollback(session)
    LOGGER.info("invoice_deleted", invoice_id=invoice_id)


def add_misc_item(session: Session, invoice_id: int, payload: MiscItemCreate) -> InvoiceMiscItem:
    """Append a misc charge and recalculate in the same transaction."""

    invoice = _lock_invoice(session, invoice_id)
    max_sort = (
        session.query(func.max(InvoiceMiscItem.sort_order))
        .filter(InvoiceMiscItem.invoice_id == invoice.id)
        .scalar()
    )
    item = InvoiceMiscItem(
        invoice_id=invoice.id,
        description=payload.description.strip(),
        quantity=payload.quantity,
        rate_idr=payload.rate_idr,
        subtotal_idr=payload.quantity * payload.rate_idr,
        receipt_url=payload.receipt_url or None,
        sort_order=(max_sort + 1) if max_sort is not None else 0,
    )
    session.add(item)
    recalculate_invoice_totals(session, invoice, trigger="misc_item_insert")
    _commit_or_rollback(session)
    LOGGER.info(
        "invoice_misc_item_added",
        invoice_id=invoice.id,
        misc_item_id=item.id,
        subtotal_idr=item.subtotal_idr,
    )
    return item


def delete_misc_item(session: Session, invoice_id: int, item_id: int) -> None:
    """Remove a misc charge and recalculate in the same transaction."""

    invoice = _lock_invoice(session, invoice_id)
    item = (
        session.query(InvoiceMiscItem)
        .filter(InvoiceMiscItem.id == item_id, InvoiceMiscItem.invoice_id == invoice.id)
        .one_or_none()
    )
    if not item:
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Misc item not found",
        )
    session.delete(item)
    recalculate_invoice_totals(session, invoice, trigger="misc_item_delete")
    _commit_or_rollback(session)
    LOGGER.info("invoice_misc_item_deleted", invoice_id=invoice.id, misc_item_id=item_id)


__all__ = [
    "add_misc_item",
    "delete_invoice",
    "delete_misc_item",
    "generate_invoice",
    "get_invoice",
    "list_invoices",
    "previous_month",
    "recalculate_invoice_totals",
    "resolve_period",
    "update_invoice",
]
