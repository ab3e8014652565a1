"""Class log endpoints for the admin portal."""

from __future__ import annotations

from datetime import date
from typing import Annotated

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from transforme.core.rate_limit import enforce_rate_limit
from transforme.core.security import require_any_permission, require_permission
from transforme.db import get_session_dependency
from transforme.models import ClassLog, User
from transforme.schemas.class_log import (
    AnalysisOut,
    AnalyzeRequest,
    AnalyzeResponse,
    ClassLogCreate,
    ClassLogList,
    ClassLogOut,
    ClassLogUpdate,
    Verification,
)
from transforme.schemas.common import Pagination
from transforme.services import class_logs as class_log_service
from transforme.services.class_logs import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from transforme.services.class_time import format_start_time
from transforme.services.verification import (
    date_match_verified,
    orphanage_match_verified,
    time_match_verified,
)

LOGGER = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin/class-logs", tags=["class-logs"])

require_view = require_permission("class_logs:view_all")
require_create = require_permission("class_logs:create")
require_edit = require_any_permission(["class_logs:edit_own", "class_logs:edit_all"])
require_delete = require_any_permission(["class_logs:delete_own", "class_logs:delete_all"])


def serialize_class_log(class_log: ClassLog) -> ClassLogOut:
    """Build the response model including display time and verification badges."""

    payload = ClassLogOut.model_validate(class_log)
    payload.class_time_display = format_start_time(class_log.class_time)
    payload.verification = Verification(
        orphanage=orphanage_match_verified(class_log.ai_orphanage_match),
        date=date_match_verified(class_log.ai_date_match),
        time=time_match_verified(class_log.ai_time_match),
    )
    return payload


@router.get("", response_model=ClassLogList, dependencies=[Depends(require_view)])
def list_class_logs(
    session: Annotated[Session, Depends(get_session_dependency)],
    orphanage_id: str | None = Query(default=None),
    teacher_id: int | None = Query(default=None),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
) -> ClassLogList:
    """Return class logs newest first with optional filters."""

    rows, total = class_log_service.list_class_logs(
        session,
        orphanage_id=orphanage_id,
        teacher_id=teacher_id,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    return ClassLogList(
        class_logs=[serialize_class_log(row) for row in rows],
        pagination=Pagination.build(page=page, limit=limit, total=total),
    )


@router.post(
    "",
    response_model=ClassLogOut,
    status_code=status.HTTP_201_CREATED,
)
def create_class_log(
    payload: ClassLogCreate,
    background_tasks: BackgroundTasks,
    session: Annotated[Session, Depends(get_session_dependency)],
    user: Annotated[User, Depends(require_create)],
) -> ClassLogOut:
    """Create a class log and queue the photo analysis."""

    class_log = class_log_service.create_class_log(session, payload)
    background_tasks.add_task(class_log_service.run_background_analysis, class_log.id)
    LOGGER.info("class_log_analysis_scheduled", class_log_id=class_log.id, user_id=user.id)
    return serialize_class_log(class_log)


@router.get(
    "/{class_log_id}",
    response_model=ClassLogOut,
    dependencies=[Depends(require_view)],
)
def get_class_log(
    class_log_id: int,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> ClassLogOut:
    return serialize_class_log(class_log_service.get_class_log(session, class_log_id))


@router.put("/{class_log_id}", response_model=ClassLogOut)
def update_class_log(
    class_log_id: int,
    payload: ClassLogUpdate,
    background_tasks: BackgroundTasks,
    session: Annotated[Session, Depends(get_session_dependency)],
    user: Annotated[User, Depends(require_edit)],
) -> ClassLogOut:
    """Edit a class log; new photos or a new orphanage trigger a fresh analysis."""

    class_log, needs_analysis = class_log_service.update_class_log(
        session, class_log_id, payload, user
    )
    if needs_analysis:
        background_tasks.add_task(class_log_service.run_background_analysis, class_log.id)
    return serialize_class_log(class_log)


@router.delete("/{class_log_id}")
def delete_class_log(
    class_log_id: int,
    session: Annotated[Session, Depends(get_session_dependency)],
    user: Annotated[User, Depends(require_delete)],
) -> dict[str, bool]:
    class_log_service.delete_class_log(session, class_log_id, user)
    return {"success": True}


@router.post("/{class_log_id}/analyze", response_model=AnalyzeResponse)
def analyze_class_log(
    class_log_id: int,
    session: Annotated[Session, Depends(get_session_dependency)],
    user: Annotated[User, Depends(require_edit)],
    payload: AnalyzeRequest | None = None,
) -> AnalyzeResponse:
    """Re-run the vision analysis synchronously and return its result."""

    enforce_rate_limit(
        "ai_analysis",
        user.id,
        "Too many analysis requests. Please try again later.",
    )
    payload = payload or AnalyzeRequest()
    class_log, analysis = class_log_service.reanalyze_class_log(
        session,
        class_log_id,
        photo_urls=payload.photo_urls,
        photo_gps=payload.photo_gps,
    )
    return AnalyzeResponse(
        analysis=AnalysisOut(
            primary_photo_url=analysis.primary_photo_url,
            kids_count=analysis.kids_count,
            location=analysis.location,
            photo_timestamp=analysis.photo_timestamp,
            orphanage_match=class_log.ai_orphanage_match,
            confidence_notes=class_log.ai_confidence_notes,
            gps_distance=class_log.ai_gps_distance,
        ),
        class_log=serialize_class_log(class_log),
    )


__all__ = ["router", "serialize_class_log"]
