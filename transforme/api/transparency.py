"""Quarterly transparency report endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from transforme.core.security import require_permission
from transforme.db import get_session_dependency
from transforme.models import TransparencyReport, User
from transforme.schemas.transparency import (
    ReportGenerate,
    ReportUpdate,
    TransparencyReportList,
    TransparencyReportOut,
)
from transforme.services import transparency as transparency_service

router = APIRouter(prefix="/admin/transparency-reports", tags=["transparency"])

require_view = require_permission("transparency:view")
require_generate = require_permission("transparency:generate")
require_publish = require_permission("transparency:publish")


@router.get("", response_model=TransparencyReportList, dependencies=[Depends(require_view)])
def list_reports(
    session: Annotated[Session, Depends(get_session_dependency)],
) -> dict[str, list[TransparencyReport]]:
    return {"reports": transparency_service.list_reports(session)}


@router.post(
    "/generate",
    response_model=TransparencyReportOut,
    status_code=status.HTTP_201_CREATED,
)
def generate_report(
    payload: ReportGenerate,
    session: Annotated[Session, Depends(get_session_dependency)],
    user: Annotated[User, Depends(require_generate)],
) -> TransparencyReport:
    """Aggregate a quarter's class logs into a draft report."""

    return transparency_service.generate_report(
        session, year=payload.year, quarter=payload.quarter, user=user
    )


@router.get(
    "/{report_id}",
    response_model=TransparencyReportOut,
    dependencies=[Depends(require_view)],
)
def get_report(
    report_id: int,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> TransparencyReport:
    return transparency_service.get_report(session, report_id)


@router.put(
    "/{report_id}",
    response_model=TransparencyReportOut,
    dependencies=[Depends(require_generate)],
)
def update_report(
    report_id: int,
    payload: ReportUpdate,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> TransparencyReport:
    return transparency_service.update_report(
        session, report_id, title=payload.title, content=payload.content
    )


@router.post(
    "/{report_id}/publish",
    response_model=TransparencyReportOut,
    dependencies=[Depends(require_publish)],
)
def publish_report(
    report_id: int,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> TransparencyReport:
    return transparency_service.publish_report(session, report_id)
