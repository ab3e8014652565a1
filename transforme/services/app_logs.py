"""Application log persistence, querying and retention."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from transforme.core.config import get_settings
from transforme.db import session_scope
from transforme.models import AppLog

# Write failures go to the stdlib logger so they never re-enter the structlog chain.
FALLBACK_LOGGER = logging.getLogger(__name__)

LOG_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def should_persist(level: str, threshold: str) -> bool:
    """``True`` when ``level`` reaches ``threshold``; unknown thresholds (e.g. ``off``) disable."""

    minimum = LOG_LEVELS.get(threshold.lower())
    if minimum is None:
        return False
    return LOG_LEVELS.get(level.lower(), 0) >= minimum


def _json_safe(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, dict):
        return {str(key): _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_json_safe(item) for item in value]
    return str(value)


def write_app_log(
    level: str, source: str, message: str, meta: dict[str, Any] | None = None
) -> None:
    """Insert one log row in its own transaction."""

    try:
        with session_scope() as session:
            session.add(
                AppLog(
                    level=level.lower()[:10],
                    source=source[:100],
                    message=message,
                    meta=_json_safe(meta) if meta else None,
                )
            )
    except SQLAlchemyError as exc:
        FALLBACK_LOGGER.warning("app_log_write_failed source=%s error=%s", source, exc)


def list_app_logs(
    session: Session,
    *,
    level: str | None = None,
    source: str | None = None,
    since: datetime | None = None,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[AppLog], int]:
    page = max(1, page)
    limit = min(200, max(1, limit))

    query = session.query(AppLog)
    if level:
        query = query.filter(AppLog.level == level.lower())
    if source:
        query = query.filter(AppLog.source == source)
    if since:
        if since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)
        query = query.filter(AppLog.created_at >= since)

    total = query.count()
    rows = (
        query.order_by(AppLog.created_at.desc(), AppLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total


def purge_app_logs(session: Session, *, now: datetime | None = None) -> tuple[int, datetime]:
    """Delete rows older than the retention window; return the count and the cutoff."""

    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=get_settings().app_log_retention_days)
    deleted = (
        session.query(AppLog)
        .filter(AppLog.created_at < cutoff)
        .delete(synchronize_session=False)
    )
    session.commit()
    return deleted, cutoff


__all__ = [
    "LOG_LEVELS",
    "list_app_logs",
    "purge_app_logs",
    "should_persist",
    "write_app_log",
]
