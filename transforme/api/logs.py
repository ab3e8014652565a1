"""Admin viewer for persisted application logs."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from transforme.core.security import require_permission
from transforme.db import get_session_dependency
from transforme.schemas.app_log import AppLogList, AppLogOut
from transforme.schemas.common import Pagination
from transforme.services.app_logs import list_app_logs

router = APIRouter(
    prefix="/admin/logs",
    tags=["logs"],
    dependencies=[Depends(require_permission("logs:view"))],
)


@router.get("", response_model=AppLogList)
def get_logs(
    session: Annotated[Session, Depends(get_session_dependency)],
    level: Literal["debug", "info", "warning", "error", "critical"] | None = Query(default=None),
    source: str | None = Query(default=None),
    since: datetime | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
) -> AppLogList:
    """Newest first; ``since`` is an ISO 8601 timestamp."""

    rows, total = list_app_logs(
        session, level=level, source=source, since=since, page=page, limit=limit
    )
    return AppLogList(
        logs=[AppLogOut.model_validate(row) for row in rows],
        pagination=Pagination.build(page=page, limit=limit, total=total),
    )
