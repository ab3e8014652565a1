"""Programme events."""

from __future__ import annotations

import structlog
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from transforme.models import Event, Orphanage, User
from transforme.schemas.event import EventCreate, EventUpdate

LOGGER = structlog.get_logger(__name__)


def _get_event_or_404(session: Session, event_id: int) -> Event:
    event = session.get(Event, event_id)
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found",
        )
    return event


def _check_orphanage(session: Session, orphanage_id: str | None) -> None:
    if orphanage_id and session.get(Orphanage, orphanage_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Orphanage not found",
        )


def list_events(session: Session) -> list[Event]:
    return (
        session.query(Event)
        .order_by(Event.event_date.desc().nullslast(), Event.id.desc())
        .all()
    )


def create_event(session: Session, payload: EventCreate, user: User) -> Event:
    _check_orphanage(session, payload.orphanage_id)
    event = Event(
        title=payload.title,
        description=payload.description,
        event_date=payload.event_date,
        orphanage_id=payload.orphanage_id or None,
        cover_image_url=payload.cover_image_url or None,
        active=payload.active,
        created_by_id=user.id,
    )
    session.add(event)
    session.commit()
    session.refresh(event)
    LOGGER.info("event_created", event_id=event.id, by=user.id)
    return event


def update_event(session: Session, event_id: int, payload: EventUpdate) -> Event:
    event = _get_event_or_404(session, event_id)
    changes = payload.model_dump(exclude_unset=True)
    if "orphanage_id" in changes:
        _check_orphanage(session, changes["orphanage_id"])
    for field, value in changes.items():
        if field in ("title", "description", "active") and value is None:
            continue
        setattr(event, field, value)
    session.add(event)
    session.commit()
    session.refresh(event)
    return event


def delete_event(session: Session, event_id: int) -> None:
    event = _get_event_or_404(session, event_id)
    session.delete(event)
    session.commit()
    LOGGER.info("event_deleted", event_id=event_id)


__all__ = ["create_event", "delete_event", "list_events", "update_event"]
