"""Class group endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from transforme.core.security import require_permission
from transforme.db import get_session_dependency
from transforme.models import ClassGroup
from transforme.schemas.orphanage import (
    ClassGroupCreate,
    ClassGroupList,
    ClassGroupOut,
    ClassGroupUpdate,
)
from transforme.services import orphanages as orphanage_service

router = APIRouter(prefix="/admin/class-groups", tags=["class-groups"])

require_view = require_permission("orphanages:view")
require_edit = require_permission("orphanages:edit")


@router.get("", response_model=ClassGroupList, dependencies=[Depends(require_view)])
def list_class_groups(
    session: Annotated[Session, Depends(get_session_dependency)],
    orphanage_id: str | None = Query(default=None),
) -> dict[str, list[ClassGroup]]:
    return {"class_groups": orphanage_service.list_class_groups(session, orphanage_id)}


@router.post(
    "",
    response_model=ClassGroupOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_edit)],
)
def create_class_group(
    payload: ClassGroupCreate,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> ClassGroup:
    return orphanage_service.create_class_group(session, payload)


@router.put(
    "/{group_id}",
    response_model=ClassGroupOut,
    dependencies=[Depends(require_edit)],
)
def update_class_group(
    group_id: int,
    payload: ClassGroupUpdate,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> ClassGroup:
    return orphanage_service.update_class_group(session, group_id, payload)


@router.delete("/{group_id}", dependencies=[Depends(require_edit)])
def delete_class_group(
    group_id: int,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> dict[str, bool]:
    orphanage_service.delete_class_group(session, group_id)
    return {"success": True}
