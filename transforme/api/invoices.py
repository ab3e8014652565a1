"""Invoice endpoints: generation, review, misc charges and PDF export."""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from transforme.core.security import require_permission
from transforme.db import get_session_dependency
from transforme.models import Invoice
from transforme.schemas.common import Pagination
from transforme.schemas.invoice import (
    InvoiceDetail,
    InvoiceGenerate,
    InvoiceList,
    InvoiceSummary,
    InvoiceUpdate,
    MiscItemCreate,
    MiscItemResponse,
)
from transforme.services import invoices as invoice_service
from transforme.services.invoice_pdf import generate_invoice_pdf

LOGGER = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin/invoices", tags=["invoices"])

require_view = require_permission("invoices:view")
require_edit = require_permission("invoices:edit")


@router.get("", response_model=InvoiceList, dependencies=[Depends(require_view)])
def list_invoices(
    session: Annotated[Session, Depends(get_session_dependency)],
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=25, ge=1, le=50),
) -> InvoiceList:
    rows, total, stats = invoice_service.list_invoices(session, page=page, limit=limit)
    return InvoiceList(
        invoices=[InvoiceSummary.model_validate(row) for row in rows],
        stats=stats,
        pagination=Pagination.build(page=page, limit=limit, total=total),
    )


@router.post(
    "/generate",
    response_model=InvoiceDetail,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_edit)],
)
def generate_invoice(
    session: Annotated[Session, Depends(get_session_dependency)],
    payload: InvoiceGenerate | None = None,
) -> Invoice:
    """Create a draft invoice for ``month`` (defaults to the previous month)."""

    month = payload.month if payload else None
    return invoice_service.generate_invoice(session, month)


@router.get(
    "/{invoice_id}",
    response_model=InvoiceDetail,
    dependencies=[Depends(require_view)],
)
def get_invoice(
    invoice_id: int,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> Invoice:
    return invoice_service.get_invoice(session, invoice_id)


@router.patch(
    "/{invoice_id}",
    response_model=InvoiceDetail,
    dependencies=[Depends(require_edit)],
)
def update_invoice(
    invoice_id: int,
    payload: InvoiceUpdate,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> Invoice:
    """Change the status and/or line-item class counts, recalculating totals."""

    return invoice_service.update_invoice(
        session,
        invoice_id,
        status_value=payload.status,
        line_items=payload.line_items,
    )


@router.delete("/{invoice_id}", dependencies=[Depends(require_edit)])
def delete_invoice(
    invoice_id: int,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> dict[str, bool]:
    invoice_service.delete_invoice(session, invoice_id)
    return {"success": True}


@router.post(
    "/{invoice_id}/misc-items",
    response_model=MiscItemResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_edit)],
)
def add_misc_item(
    invoice_id: int,
    payload: MiscItemCreate,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> dict[str, object]:
    item = invoice_service.add_misc_item(session, invoice_id, payload)
    return {"misc_item": item, "invoice": invoice_service.get_invoice(session, invoice_id)}


@router.delete(
    "/{invoice_id}/misc-items",
    response_model=InvoiceDetail,
    dependencies=[Depends(require_edit)],
)
def delete_misc_item(
    invoice_id: int,
    session: Annotated[Session, Depends(get_session_dependency)],
    item_id: int = Query(...),
) -> Invoice:
    invoice_service.delete_misc_item(session, invoice_id, item_id)
    return invoice_service.get_invoice(session, invoice_id)


@router.get("/{invoice_id}/pdf", dependencies=[Depends(require_view)])
def download_invoice_pdf(
    invoice_id: int,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> Response:
    """Render the invoice, including misc charges, as a PDF attachment."""

    invoice = invoice_service.get_invoice(session, invoice_id)
    pdf = generate_invoice_pdf(invoice)
    LOGGER.info("invoice_pdf_rendered", invoice_id=invoice.id, size=len(pdf.content))
    return Response(
        content=pdf.content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{pdf.filename}"'},
    )
