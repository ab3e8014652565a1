"""Service layer functions for administrative user management."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from transforme.models import User
from transforme.services.notifications import EmailDeliveryError, send_invite_email

LOGGER = structlog.get_logger(__name__)

_EXISTING_USER_MESSAGES = {
    "active": "User is already active",
    "invited": "User has already been invited",
    "deactivated": "User exists but is deactivated. Reactivate them instead.",
}


def _get_user_or_404(session: Session, user_id: int) -> User:
    user = session.query(User).filter(User.id == user_id).one_or_none()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user


def list_users(session: Session) -> list[User]:
    """Return all users ordered by creation time descending."""

    return session.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


def invite_user(
    session: Session, *, email: str, roles: list[str], invited_by: User
) -> tuple[User, bool]:
    """Create an invited user and email them; returns the user and whether mail went out.

    A failed email does not undo the invitation.
    """

    normalized = email.strip().lower()
    existing = session.query(User).filter(User.email == normalized).one_or_none()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=_EXISTING_USER_MESSAGES.get(existing.status, "User already exists"),
        )

    user = User(
        email=normalized,
        roles=list(roles),
        status="invited",
        invited_by_id=invited_by.id,
        invited_at=datetime.now(timezone.utc),
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    LOGGER.info("user_invited", user_id=user.id, roles=user.roles, invited_by=invited_by.id)

    try:
        email_sent = send_invite_email(
            normalized, invited_by=invited_by.name or invited_by.email, roles=list(roles)
        )
    except EmailDeliveryError as exc:
        LOGGER.error("invite_email_failed", user_id=user.id, error=str(exc))
        email_sent = False
    return user, email_sent


def update_user_roles(session: Session, user_id: int, roles: list[str], *, acting_user: User) -> User:
    user = _get_user_or_404(session, user_id)
    if user.id == acting_user.id and "admin" not in roles:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot remove the admin role from yourself",
        )
    user.roles = list(roles)
    session.add(user)
    session.commit()
    session.refresh(user)
    LOGGER.info("user_roles_updated", user_id=user.id, roles=user.roles, by=acting_user.id)
    return user


def deactivate_user(session: Session, user_id: int, *, acting_user: User) -> User:
    """Soft deactivate a user account."""

    if user_id == acting_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot deactivate yourself",
        )
    user = _get_user_or_404(session, user_id)
    if user.status == "deactivated":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User is already deactivated",
        )
    user.status = "deactivated"
    session.add(user)
    session.commit()
    session.refresh(user)
    LOGGER.info("user_deactivated", user_id=user.id, by=acting_user.id)
    return user


__all__ = [
    "deactivate_user",
    "invite_user",
    "list_users",
    "update_user_roles",
]
