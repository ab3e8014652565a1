"""Orphanage and class group management."""

from __future__ import annotations

import re
import time

import structlog
from fastapi import HTTPException, status
from sqlalchemy.orm import Session, selectinload

from transforme.models import ClassGroup, Orphanage
from transforme.schemas.orphanage import (
    ClassGroupCreate,
    ClassGroupUpdate,
    OrphanageCreate,
    OrphanageUpdate,
)
from transforme.services.geocoding import GeocodingError, GeocodingResult, geocode_address

LOGGER = structlog.get_logger(__name__)


def slugify(name: str) -> str:
    """``"Bali Children's Home"`` -> ``"bali-childrens-home"`` (max 50 chars)."""

    slug = re.sub(r"['’]", "", name.lower())
    slug = re.sub(r"[^a-z0-9]+", "-", slug).strip("-")
    return slug[:50]


def _base36(value: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    encoded = ""
    while value:
        value, remainder = divmod(value, 36)
        encoded = digits[remainder] + encoded
    return encoded or "0"


def _get_orphanage_or_404(session: Session, orphanage_id: str) -> Orphanage:
    orphanage = session.get(Orphanage, orphanage_id)
    if not orphanage:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Orphanage not found",
        )
    return orphanage


def _get_class_group_or_404(session: Session, group_id: int) -> ClassGroup:
    group = session.get(ClassGroup, group_id)
    if not group:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Class group not found",
        )
    return group


# -------------------------------------------------------
# Orphanages
# -------------------------------------------------------

def list_orphanages(session: Session) -> list[Orphanage]:
    return (
        session.query(Orphanage)
        .options(selectinload(Orphanage.class_groups))
        .order_by(Orphanage.name.asc())
        .all()
    )


def get_orphanage(session: Session, orphanage_id: str) -> Orphanage:
    return _get_orphanage_or_404(session, orphanage_id)


def create_orphanage(session: Session, payload: OrphanageCreate) -> Orphanage:
    """Insert an orphanage under a slug id, geocoding its address when given."""

    orphanage_id = slugify(payload.name) or "orphanage"
    if session.get(Orphanage, orphanage_id) is not None:
        orphanage_id = f"{orphanage_id[:40]}-{_base36(int(time.time() * 1000))}"

    latitude = longitude = None
    if payload.address:
        try:
            geo = geocode_address(payload.address)
        except GeocodingError as exc:
            LOGGER.warning("orphanage_geocode_skipped", address=payload.address, error=str(exc))
            geo = None
        if geo:
            latitude, longitude = geo.latitude, geo.longitude

    orphanage = Orphanage(
        id=orphanage_id,
        latitude=latitude,
        longitude=longitude,
        **payload.model_dump(),
    )
    session.add(orphanage)
    session.commit()
    session.refresh(orphanage)
    LOGGER.info(
        "orphanage_created",
        orphanage_id=orphanage.id,
        geocoded=orphanage.has_coordinates,
    )
    return orphanage


def update_orphanage(session: Session, orphanage_id: str, payload: OrphanageUpdate) -> Orphanage:
    orphanage = _get_orphanage_or_404(session, orphanage_id)
    data = payload.model_dump()
    if data.get("image_url") is None:
        data.pop("image_url")
    for field, value in data.items():
        setattr(orphanage, field, value)
    session.add(orphanage)
    session.commit()
    session.refresh(orphanage)
    LOGGER.info("orphanage_updated", orphanage_id=orphanage.id)
    return orphanage


def geocode_orphanage(session: Session, orphanage_id: str, address: str) -> GeocodingResult:
    """Resolve ``address`` and store it with its coordinates on the orphanage."""

    orphanage = _get_orphanage_or_404(session, orphanage_id)
    try:
        geo = geocode_address(address)
    except GeocodingError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Geocoding service is unavailable. Please try again later.",
        ) from exc
    if geo is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=(
                "Could not geocode this address. Try a more specific address "
                "including city and country."
            ),
        )
    orphanage.address = address
    orphanage.latitude = geo.latitude
    orphanage.longitude = geo.longitude
    session.add(orphanage)
    session.commit()
    LOGGER.info(
        "orphanage_geocoded",
        orphanage_id=orphanage.id,
        latitude=geo.latitude,
        longitude=geo.longitude,
    )
    return geo


# -------------------------------------------------------
# Class groups
# -------------------------------------------------------

def list_class_groups(session: Session, orphanage_id: str | None = None) -> list[ClassGroup]:
    query = session.query(ClassGroup)
    if orphanage_id:
        query = query.filter(ClassGroup.orphanage_id == orphanage_id)
    return query.order_by(ClassGroup.sort_order.asc(), ClassGroup.id.asc()).all()


def create_class_group(session: Session, payload: ClassGroupCreate) -> ClassGroup:
    _get_orphanage_or_404(session, payload.orphanage_id)
    group = ClassGroup(
        orphanage_id=payload.orphanage_id,
        name=payload.name,
        student_count=payload.student_count,
        age_range=payload.age_range or None,
        sort_order=payload.sort_order if payload.sort_order is not None else 0,
    )
    session.add(group)
    session.commit()
    session.refresh(group)
    LOGGER.info("class_group_created", class_group_id=group.id, orphanage_id=group.orphanage_id)
    return group


def update_class_group(session: Session, group_id: int, payload: ClassGroupUpdate) -> ClassGroup:
    group = _get_class_group_or_404(session, group_id)
    group.name = payload.name
    group.student_count = payload.student_count
    group.age_range = payload.age_range
    if payload.sort_order is not None:
        group.sort_order = payload.sort_order
    session.add(group)
    session.commit()
    session.refresh(group)
    return group


def delete_class_group(session: Session, group_id: int) -> None:
    group = _get_class_group_or_404(session, group_id)
    session.delete(group)
    session.commit()
    LOGGER.info("class_group_deleted", class_group_id=group_id)


__all__ = [
    "create_class_group",
    "create_orphanage",
    "delete_class_group",
    "geocode_orphanage",
    "get_orphanage",
    "list_class_groups",
    "list_orphanages",
    "slugify",
    "update_class_group",
    "update_orphanage",
]
