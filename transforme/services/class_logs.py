"""Service layer for class logs and their photo verification."""

from __future__ import annotations

from datetime import date, datetime, timezone

import structlog
from fastapi import HTTPException, status
from sqlalchemy.orm import Session, selectinload

from transforme.core.permissions import has_permission
from transforme.db import session_scope
from transforme.models import ClassLog, ClassLogPhoto, Orphanage, User
from transforme.schemas.class_log import ClassLogCreate, ClassLogUpdate, PhotoGps, PhotoInput
from transforme.services.photo_analysis import (
    ClassLogPhotoAnalysis,
    PhotoAnalysisError,
    analyze_class_log_photos,
)
from transforme.services.verification import (
    check_gps,
    check_photo_date,
    combine_location_evidence,
)

LOGGER = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 50
DEFAULT_PAGE_SIZE = 25

_AI_FIELDS = (
    "ai_kids_count",
    "ai_location",
    "ai_photo_timestamp",
    "ai_orphanage_match",
    "ai_confidence_notes",
    "ai_primary_photo_url",
    "ai_analyzed_at",
)
_LOCATION_FIELDS = ("photo_latitude", "photo_longitude", "ai_gps_distance")
_DATE_FIELDS = ("exif_date_taken", "ai_date_match", "ai_date_notes", "ai_time_match", "ai_time_notes")


def _get_class_log_or_404(session: Session, class_log_id: int) -> ClassLog:
    class_log = (
        session.query(ClassLog)
        .options(
            selectinload(ClassLog.photos),
            selectinload(ClassLog.orphanage),
            selectinload(ClassLog.teacher),
        )
        .filter(ClassLog.id == class_log_id)
        .one_or_none()
    )
    if not class_log:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Class log not found",
        )
    return class_log


def _get_orphanage_or_404(session: Session, orphanage_id: str) -> Orphanage:
    orphanage = session.get(Orphanage, orphanage_id)
    if not orphanage:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Orphanage not found",
        )
    return orphanage


def _build_photos(photos: list[PhotoInput]) -> list[ClassLogPhoto]:
    return [
        ClassLogPhoto(
            url=photo.url,
            caption=photo.caption or None,
            sort_order=photo.sort_order if photo.sort_order is not None else index,
        )
        for index, photo in enumerate(photos)
    ]


def _clear(class_log: ClassLog, fields: tuple[str, ...]) -> None:
    for field in fields:
        setattr(class_log, field, None)


# -------------------------------------------------------
# Verification writers
# -------------------------------------------------------

def apply_location_check(
    class_log: ClassLog,
    orphanage: Orphanage,
    photo_gps: PhotoGps | None,
) -> None:
    """Store photo coordinates and the GPS distance label for ``class_log``."""

    class_log.photo_latitude = photo_gps.latitude if photo_gps else None
    class_log.photo_longitude = photo_gps.longitude if photo_gps else None
    gps = check_gps(
        class_log.photo_latitude,
        class_log.photo_longitude,
        orphanage.latitude,
        orphanage.longitude,
    )
    class_log.ai_gps_distance = gps.distance_meters if gps else None
    label, notes = combine_location_evidence(gps, None)
    class_log.ai_orphanage_match = label
    class_log.ai_confidence_notes = notes


def apply_date_check(class_log: ClassLog, exif_date_taken: str | None) -> None:
    """Store the EXIF timestamp and its comparison with the class date/time."""

    class_log.exif_date_taken = exif_date_taken or None
    result = check_photo_date(class_log.exif_date_taken, class_log.class_date, class_log.class_time)
    class_log.ai_date_match = result.date_match
    class_log.ai_date_notes = result.date_notes
    class_log.ai_time_match = result.time_match
    class_log.ai_time_notes = result.time_notes


def apply_photo_analysis(
    class_log: ClassLog,
    orphanage: Orphanage,
    analysis: ClassLogPhotoAnalysis,
) -> None:
    """Write vision results, preferring the GPS label over the vision label."""

    gps = check_gps(
        class_log.photo_latitude,
        class_log.photo_longitude,
        orphanage.latitude,
        orphanage.longitude,
    )
    label, notes = combine_location_evidence(
        gps, analysis.orphanage_match, analysis.confidence_notes
    )
    class_log.ai_kids_count = analysis.kids_count
    class_log.ai_location = analysis.location
    class_log.ai_photo_timestamp = analysis.photo_timestamp
    class_log.ai_orphanage_match = label
    class_log.ai_confidence_notes = notes
    class_log.ai_primary_photo_url = analysis.primary_photo_url
    class_log.ai_gps_distance = gps.distance_meters if gps else None
    class_log.ai_analyzed_at = datetime.now(timezone.utc)


def _photo_gps_hint(class_log: ClassLog) -> dict[str, float] | None:
    if class_log.photo_latitude is None or class_log.photo_longitude is None:
        return None
    return {"latitude": class_log.photo_latitude, "longitude": class_log.photo_longitude}


# -------------------------------------------------------
# CRUD
# -------------------------------------------------------

def list_class_logs(
    session: Session,
    *,
    orphanage_id: str | None = None,
    teacher_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> tuple[list[ClassLog], int]:
    """Return one page of class logs (newest class first) and the total count."""

    page = max(1, page)
    limit = min(MAX_PAGE_SIZE, max(1, limit))

    query = session.query(ClassLog)
    if orphanage_id:
        query = query.filter(ClassLog.orphanage_id == orphanage_id)
    if teacher_id is not None:
        query = query.filter(ClassLog.teacher_id == teacher_id)
    if date_from:
        query = query.filter(ClassLog.class_date >= date_from)
    if date_to:
        query = query.filter(ClassLog.class_date <= date_to)

    total = query.count()
    rows = (
        query.options(
            selectinload(ClassLog.photos),
            selectinload(ClassLog.orphanage),
            selectinload(ClassLog.teacher),
        )
        .order_by(ClassLog.class_date.desc(), ClassLog.created_at.desc(), ClassLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total


def get_class_log(session: Session, class_log_id: int) -> ClassLog:
    return _get_class_log_or_404(session, class_log_id)


def create_class_log(session: Session, payload: ClassLogCreate) -> ClassLog:
    """Insert a class log with its photos and run the synchronous checks.

    GPS distance and date/time matching are computed here; the vision
    analysis is scheduled separately by the caller.
    """

    orphanage = _get_orphanage_or_404(session, payload.orphanage_id)
    teacher = (
        session.query(User)
        .filter(User.id == payload.teacher_id, User.status == "active")
        .one_or_none()
    )
    if not teacher:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Teacher not found or inactive",
        )

    photos = _build_photos(payload.photos)
    class_log = ClassLog(
        orphanage_id=orphanage.id,
        teacher_id=teacher.id,
        class_date=payload.class_date,
        class_time=(payload.class_time or "").strip() or None,
        student_count=payload.student_count,
        photo_url=payload.photos[0].url,
        notes=payload.notes or None,
        photos=photos,
    )
    apply_location_check(class_log, orphanage, payload.photo_gps)
    apply_date_check(class_log, payload.exif_date_taken)

    session.add(class_log)
    session.commit()
    LOGGER.info(
        "class_log_created",
        class_log_id=class_log.id,
        orphanage_id=orphanage.id,
        teacher_id=teacher.id,
        photos=len(photos),
        gps_distance=class_log.ai_gps_distance,
        date_match=class_log.ai_date_match,
        time_match=class_log.ai_time_match,
    )
    return _get_class_log_or_404(session, class_log.id)


def _ensure_can_modify(user: User, class_log: ClassLog, action: str) -> None:
    roles = user.roles or []
    if has_permission(roles, f"class_logs:{action}_all"):
        return
    if has_permission(roles, f"class_logs:{action}_own") and class_log.teacher_id == user.id:
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=f"You can only {action} your own class logs",
    )


def update_class_log(
    session: Session,
    class_log_id: int,
    payload: ClassLogUpdate,
    user: User,
) -> tuple[ClassLog, bool]:
    """Apply an edit; returns the log and whether it needs a fresh vision analysis.

    Replacing photos discards every verification result of the old photos.
    Moving the log to another orphanage re-runs the GPS check and drops the
    vision label of the old orphanage.
    Changing the date or time re-runs the date/time comparison.
    """

    class_log = _get_class_log_or_404(session, class_log_id)
    _ensure_can_modify(user, class_log, "edit")
    fields = payload.model_fields_set

    orphanage = class_log.orphanage
    orphanage_changed = False
    if (
        "orphanage_id" in fields
        and payload.orphanage_id
        and payload.orphanage_id != class_log.orphanage_id
    ):
        orphanage = _get_orphanage_or_404(session, payload.orphanage_id)
        class_log.orphanage_id = orphanage.id
        class_log.orphanage = orphanage
        orphanage_changed = True
    if "class_date" in fields and payload.class_date is not None:
        class_log.class_date = payload.class_date
    if "class_time" in fields:
        class_log.class_time = (payload.class_time or "").strip() or None
    if "student_count" in fields:
        class_log.student_count = payload.student_count
    if "notes" in fields:
        class_log.notes = payload.notes or None

    photos_replaced = "photos" in fields and payload.photos is not None
    if photos_replaced:
        class_log.photos.clear()
        session.flush()
        class_log.photos.extend(_build_photos(payload.photos))
        class_log.photo_url = payload.photos[0].url
        _clear(class_log, _AI_FIELDS + _LOCATION_FIELDS + _DATE_FIELDS)
        apply_location_check(class_log, orphanage, payload.photo_gps)
        apply_date_check(class_log, payload.exif_date_taken)
    else:
        if {"class_date", "class_time"} & fields:
            apply_date_check(class_log, class_log.exif_date_taken)
        if orphanage_changed:
            hint = _photo_gps_hint(class_log)
            apply_location_check(class_log, orphanage, PhotoGps(**hint) if hint else None)

    session.add(class_log)
    session.commit()
    LOGGER.info(
        "class_log_updated",
        class_log_id=class_log.id,
        user_id=user.id,
        fields=sorted(fields),
        photos_replaced=photos_replaced,
        orphanage_changed=orphanage_changed,
    )
    return _get_class_log_or_404(session, class_log.id), photos_replaced or orphanage_changed


def delete_class_log(session: Session, class_log_id: int, user: User) -> None:
    class_log = _get_class_log_or_404(session, class_log_id)
    _ensure_can_modify(user, class_log, "delete")
    session.delete(class_log)
    session.commit()
    LOGGER.info("class_log_deleted", class_log_id=class_log_id, user_id=user.id)


# -------------------------------------------------------
# Vision analysis
# -------------------------------------------------------

def run_background_analysis(class_log_id: int) -> None:
    """Analyse a log's photos after the response has been sent.

    Runs in its own session; any failure is logged and leaves the log
    without vision results.
    """

    try:
        with session_scope() as session:
            class_log = _get_class_log_or_404(session, class_log_id)
            orphanage = class_log.orphanage
            analysis = analyze_class_log_photos(
                session,
                [photo.url for photo in class_log.photos],
                orphanage.name,
                class_log_id=class_log.id,
                photo_gps=_photo_gps_hint(class_log),
                exif_date_taken=class_log.exif_date_taken,
            )
            if analysis is None:
                return
            apply_photo_analysis(class_log, orphanage, analysis)
            session.add(class_log)
    except Exception as exc:  # noqa: BLE001
        LOGGER.error(
            "class_log_background_analysis_failed",
            class_log_id=class_log_id,
            error=str(exc),
        )


def reanalyze_class_log(
    session: Session,
    class_log_id: int,
    *,
    photo_urls: list[str] | None = None,
    photo_gps: PhotoGps | None = None,
) -> tuple[ClassLog, ClassLogPhotoAnalysis]:
    """Synchronously re-run the vision analysis and overwrite its results."""

    class_log = _get_class_log_or_404(session, class_log_id)
    orphanage = class_log.orphanage
    urls = photo_urls or [photo.url for photo in class_log.photos]
    if not urls:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Class log has no photos to analyze",
        )
    if photo_gps is not None:
        class_log.photo_latitude = photo_gps.latitude
        class_log.photo_longitude = photo_gps.longitude

    try:
        analysis = analyze_class_log_photos(
            session,
            urls,
            orphanage.name,
            class_log_id=class_log.id,
            photo_gps=_photo_gps_hint(class_log),
            exif_date_taken=class_log.exif_date_taken,
        )
    except PhotoAnalysisError as exc:
        session.rollback()
        LOGGER.error("class_log_reanalysis_failed", class_log_id=class_log_id, error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="AI analysis failed. Please try again later.",
        ) from exc

    if analysis is None:
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI analysis unavailable. OPENAI_API_KEY may not be set.",
        )

    apply_photo_analysis(class_log, orphanage, analysis)
    session.add(class_log)
    session.commit()
    LOGGER.info(
        "class_log_reanalyzed",
        class_log_id=class_log.id,
        orphanage_match=class_log.ai_orphanage_match,
        kids_count=class_log.ai_kids_count,
    )
    return _get_class_log_or_404(session, class_log.id), analysis


__all__ = [
    "apply_date_check",
    "apply_location_check",
    "apply_photo_analysis",
    "create_class_log",
    "delete_class_log",
    "get_class_log",
    "list_class_logs",
    "reanalyze_class_log",
    "run_background_analysis",
    "update_class_log",
]
