"""Administrative endpoints for managing portal users."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from transforme.core.security import require_permission
from transforme.db import get_session_dependency
from transforme.models import User
from transforme.schemas.user import InviteResponse, UserInvite, UserList, UserOut, UserRolesUpdate
from transforme.services import admin_users as admin_user_service

router = APIRouter(prefix="/admin/users", tags=["Admin Users"])

require_view = require_permission("users:view")
require_invite = require_permission("users:invite")
require_deactivate = require_permission("users:deactivate")


@router.get("", response_model=UserList, dependencies=[Depends(require_view)])
def list_users(
    session: Annotated[Session, Depends(get_session_dependency)],
) -> dict[str, list[User]]:
    """Return all users in the system."""

    return {"users": admin_user_service.list_users(session)}


@router.post("/invite", response_model=InviteResponse, status_code=status.HTTP_201_CREATED)
def invite_user(
    payload: UserInvite,
    session: Annotated[Session, Depends(get_session_dependency)],
    admin_user: Annotated[User, Depends(require_invite)],
) -> dict[str, object]:
    """Invite a new user by email with one or more roles."""

    user, email_sent = admin_user_service.invite_user(
        session, email=payload.email, roles=payload.roles, invited_by=admin_user
    )
    return {"user": user, "email_sent": email_sent}


@router.patch("/{user_id}/roles", response_model=UserOut)
def update_user_roles(
    user_id: int,
    payload: UserRolesUpdate,
    session: Annotated[Session, Depends(get_session_dependency)],
    admin_user: Annotated[User, Depends(require_invite)],
) -> User:
    return admin_user_service.update_user_roles(
        session, user_id, payload.roles, acting_user=admin_user
    )


@router.patch("/{user_id}/deactivate", response_model=UserOut)
def deactivate_user(
    user_id: int,
    session: Annotated[Session, Depends(get_session_dependency)],
    admin_user: Annotated[User, Depends(require_deactivate)],
) -> User:
    """Deactivate a user; their next request is rejected."""

    return admin_user_service.deactivate_user(session, user_id, acting_user=admin_user)
