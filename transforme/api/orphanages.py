"""Orphanage management endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from transforme.core.security import require_permission
from transforme.db import get_session_dependency
from transforme.models import Orphanage
from transforme.schemas.orphanage import (
    GeocodeRequest,
    GeocodeResponse,
    OrphanageCreate,
    OrphanageList,
    OrphanageOut,
    OrphanageUpdate,
)
from transforme.services import orphanages as orphanage_service

router = APIRouter(prefix="/admin/orphanages", tags=["orphanages"])

require_view = require_permission("orphanages:view")
require_edit = require_permission("orphanages:edit")


@router.get("", response_model=OrphanageList, dependencies=[Depends(require_view)])
def list_orphanages(
    session: Annotated[Session, Depends(get_session_dependency)],
) -> dict[str, list[Orphanage]]:
    return {"orphanages": orphanage_service.list_orphanages(session)}


@router.post(
    "",
    response_model=OrphanageOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_edit)],
)
def create_orphanage(
    payload: OrphanageCreate,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> Orphanage:
    """Create an orphanage, geocoding its address when one is given."""

    return orphanage_service.create_orphanage(session, payload)


@router.get(
    "/{orphanage_id}",
    response_model=OrphanageOut,
    dependencies=[Depends(require_view)],
)
def get_orphanage(
    orphanage_id: str,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> Orphanage:
    return orphanage_service.get_orphanage(session, orphanage_id)


@router.put(
    "/{orphanage_id}",
    response_model=OrphanageOut,
    dependencies=[Depends(require_edit)],
)
def update_orphanage(
    orphanage_id: str,
    payload: OrphanageUpdate,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> Orphanage:
    return orphanage_service.update_orphanage(session, orphanage_id, payload)


@router.post(
    "/{orphanage_id}/geocode",
    response_model=GeocodeResponse,
    dependencies=[Depends(require_edit)],
)
def geocode_orphanage(
    orphanage_id: str,
    payload: GeocodeRequest,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> GeocodeResponse:
    """Resolve an address to coordinates and store both on the orphanage."""

    result = orphanage_service.geocode_orphanage(session, orphanage_id, payload.address)
    return GeocodeResponse(
        latitude=result.latitude,
        longitude=result.longitude,
        display_name=result.display_name,
    )
