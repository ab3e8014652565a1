"""Scheduled job endpoints, authenticated with the cron shared secret.

Each run is recorded as ``running`` and closed as ``success`` or ``error``.
"""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from transforme.core.security import require_cron_secret
from transforme.db import get_session_dependency
from transforme.models import CronRun, Invoice
from transforme.schemas.banking import CronResult
from transforme.services.app_logs import purge_app_logs
from transforme.services.bank_sync import run_bank_sync
from transforme.services.cron_runs import finish_cron_run, start_cron_run
from transforme.services.invoices import generate_invoice, resolve_period

LOGGER = structlog.get_logger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(require_cron_secret)])


def _fail_run(session: Session, run: CronRun, exc: Exception) -> None:
    session.rollback()
    detail = exc.detail if isinstance(exc, HTTPException) else str(exc)
    finish_cron_run(session, run, status="error", message=str(detail))
    LOGGER.error("cron_job_failed", job_name=run.job_name, error=str(detail))


@router.get("/generate-invoice", response_model=CronResult)
def cron_generate_invoice(
    session: Annotated[Session, Depends(get_session_dependency)],
) -> CronResult:
    """Generate last month's invoice unless it already exists."""

    run = start_cron_run(session, "generate-invoice")
    try:
        _, _, invoice_number = resolve_period(None)
        exists = (
            session.query(Invoice.id)
            .filter(Invoice.invoice_number == invoice_number)
            .one_or_none()
        )
        if exists:
            message = f"Invoice {invoice_number} already exists"
            finish_cron_run(session, run, status="success", message=message)
            return CronResult(success=True, message=message)

        invoice = generate_invoice(session)
    except Exception as exc:
        _fail_run(session, run, exc)
        raise

    message = f"Generated {invoice.invoice_number}"
    finish_cron_run(
        session,
        run,
        status="success",
        message=message,
        items_processed=len(invoice.line_items),
    )
    return CronResult(success=True, message=message, total_items=invoice.total_classes)


@router.get("/sync-bank-accounts", response_model=CronResult)
def cron_sync_bank_accounts(
    session: Annotated[Session, Depends(get_session_dependency)],
) -> CronResult:
    """Sync every bank provider and the exchange rate."""

    run = start_cron_run(session, "sync-bank-accounts")
    try:
        summary = run_bank_sync(session)
    except Exception as exc:
        _fail_run(session, run, exc)
        raise

    if summary.failed:
        message = "; ".join(summary.errors)
        finish_cron_run(session, run, status="error", message=message)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=message)

    message = f"Synced {summary.total_items} items"
    if summary.errors:
        finish_cron_run(
            session,
            run,
            status="error",
            message=f"Partial sync. Errors: {'; '.join(summary.errors)}",
            items_processed=summary.total_items,
        )
    else:
        finish_cron_run(
            session, run, status="success", message=message, items_processed=summary.total_items
        )
    return CronResult(
        success=not summary.errors,
        message=message,
        total_items=summary.total_items,
        errors=summary.errors,
    )


@router.get("/cleanup-logs", response_model=CronResult)
def cron_cleanup_logs(
    session: Annotated[Session, Depends(get_session_dependency)],
) -> CronResult:
    """Delete application log rows past the retention window."""

    run = start_cron_run(session, "cleanup-logs")
    try:
        deleted, cutoff = purge_app_logs(session)
    except Exception as exc:
        _fail_run(session, run, exc)
        raise

    message = f"Cleaned up logs older than {cutoff.isoformat()}"
    finish_cron_run(session, run, status="success", message=message, items_processed=deleted)
    return CronResult(success=True, message=message, total_items=deleted)
