"""Bookkeeping for scheduled job executions."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy.orm import Session

from transforme.models import CronRun

LOGGER = structlog.get_logger(__name__)


def start_cron_run(session: Session, job_name: str) -> CronRun:
    run = CronRun(job_name=job_name, status="running")
    session.add(run)
    session.commit()
    session.refresh(run)
    LOGGER.info("cron_run_started", job_name=job_name, run_id=run.id)
    return run


def finish_cron_run(
    session: Session,
    run: CronRun,
    *,
    status: str,
    message: str | None = None,
    items_processed: int = 0,
) -> CronRun:
    run.status = status
    run.message = message[:1000] if message else None
    run.items_processed = items_processed
    run.finished_at = datetime.now(timezone.utc)
    session.add(run)
    session.commit()
    LOGGER.info(
        "cron_run_finished",
        job_name=run.job_name,
        run_id=run.id,
        status=status,
        items_processed=items_processed,
    )
    return run


__all__ = ["finish_cron_run", "start_cron_run"]
