"""Event management endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from transforme.core.security import require_permission
from transforme.db import get_session_dependency
from transforme.models import Event, User
from transforme.schemas.event import EventCreate, EventList, EventOut, EventUpdate
from transforme.services import events as event_service

router = APIRouter(prefix="/admin/events", tags=["events"])

require_manage = require_permission("events:manage")


@router.get(
    "",
    response_model=EventList,
    dependencies=[Depends(require_permission("events:view"))],
)
def list_events(
    session: Annotated[Session, Depends(get_session_dependency)],
) -> dict[str, list[Event]]:
    return {"events": event_service.list_events(session)}


@router.post("", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    session: Annotated[Session, Depends(get_session_dependency)],
    user: Annotated[User, Depends(require_manage)],
) -> Event:
    return event_service.create_event(session, payload, user)


@router.put("/{event_id}", response_model=EventOut, dependencies=[Depends(require_manage)])
def update_event(
    event_id: int,
    payload: EventUpdate,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> Event:
    return event_service.update_event(session, event_id, payload)


@router.delete("/{event_id}", dependencies=[Depends(require_manage)])
def delete_event(
    event_id: int,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> dict[str, bool]:
    event_service.delete_event(session, event_id)
    return {"success": True}
