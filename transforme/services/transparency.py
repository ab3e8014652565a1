"""Quarterly transparency reports built from class logs."""

from __future__ import annotations

import calendar
from datetime import date, datetime, timezone

import structlog
from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from transforme.models import ClassLog, TransparencyReport, User

LOGGER = structlog.get_logger(__name__)

REPORT_TEMPLATE = """# {title}

## Summary

- **Total Classes:** {total_classes}
- **Total Students Reached:** {total_students}
- **Active Teachers:** {total_teachers}
- **Orphanages Served:** {orphanage_count}

## Details

This report covers the period from {start} to {end}.

*Edit this section to add narrative details about the quarter's activities.*
"""


def quarter_bounds(year: int, quarter: int) -> tuple[date, date]:
    """First and last day of ``quarter`` in ``year``."""

    start_month = (quarter - 1) * 3 + 1
    end_month = quarter * 3
    return (
        date(year, start_month, 1),
        date(year, end_month, calendar.monthrange(year, end_month)[1]),
    )


def _get_report_or_404(session: Session, report_id: int) -> TransparencyReport:
    report = session.get(TransparencyReport, report_id)
    if not report:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Report not found",
        )
    return report


def list_reports(session: Session) -> list[TransparencyReport]:
    return (
        session.query(TransparencyReport)
        .order_by(TransparencyReport.year.desc(), TransparencyReport.quarter.desc())
        .all()
    )


def get_report(session: Session, report_id: int) -> TransparencyReport:
    return _get_report_or_404(session, report_id)


def generate_report(session: Session, *, year: int, quarter: int, user: User) -> TransparencyReport:
    """Aggregate the quarter's class logs into an unpublished report."""

    start, end = quarter_bounds(year, quarter)
    existing = (
        session.query(TransparencyReport.id)
        .filter(TransparencyReport.year == year, TransparencyReport.quarter == quarter)
        .first()
    )
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A report for Q{quarter} {year} already exists",
        )

    total_classes, total_students, total_teachers, orphanage_count = (
        session.query(
            func.count(ClassLog.id),
            func.coalesce(func.sum(ClassLog.student_count), 0),
            func.count(func.distinct(ClassLog.teacher_id)),
            func.count(func.distinct(ClassLog.orphanage_id)),
        )
        .filter(ClassLog.class_date >= start, ClassLog.class_date <= end)
        .one()
    )

    title = f"Transparency Report - Q{quarter} {year}"
    stats = {
        "total_classes": int(total_classes),
        "total_students": int(total_students),
        "total_teachers": int(total_teachers),
        "orphanage_count": int(orphanage_count),
    }
    report = TransparencyReport(
        title=title,
        quarter=quarter,
        year=year,
        content=REPORT_TEMPLATE.format(
            title=title, start=start.isoformat(), end=end.isoformat(), **stats
        ),
        published=False,
        created_by_id=user.id,
        **stats,
    )
    session.add(report)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A report for Q{quarter} {year} already exists",
        ) from exc
    session.refresh(report)
    LOGGER.info("transparency_report_generated", report_id=report.id, year=year, quarter=quarter, **stats)
    return report


def update_report(
    session: Session, report_id: int, *, title: str | None, content: str | None
) -> TransparencyReport:
    report = _get_report_or_404(session, report_id)
    if report.published:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot edit a published report",
        )
    if title:
        report.title = title
    if content is not None:
        report.content = content
    session.add(report)
    session.commit()
    session.refresh(report)
    return report


def publish_report(session: Session, report_id: int) -> TransparencyReport:
    """Publish once; a second publish is rejected."""

    report = _get_report_or_404(session, report_id)
    if report.published:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Report is already published",
        )
    report.published = True
    report.published_at = datetime.now(timezone.utc)
    session.add(report)
    session.commit()
    session.refresh(report)
    LOGGER.info("transparency_report_published", report_id=report.id)
    return report


__all__ = [
    "generate_report",
    "get_report",
    "list_reports",
    "publish_report",
    "quarter_bounds",
    "update_report",
]
