"""Passwordless donor sign-in with emailed one-time codes.

A verified code yields an HS256 session token stored in an HTTP-only cookie.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from fastapi import Cookie, Depends, HTTPException, Response, status
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from transforme.core.config import get_settings
from transforme.db import get_session_dependency
from transforme.models import Donation, Donor, DonorOtp
from transforme.services.notifications import EmailDeliveryError, send_donor_otp_email

LOGGER = structlog.get_logger(__name__)

COOKIE_NAME = "donor_session"
ALGORITHM = "HS256"
INVALID_CODE = "Invalid or expired code"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _jwt_secret() -> str:
    secret = get_settings().donor_jwt_secret
    if not secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Donor sessions are not configured",
        )
    return secret


def generate_otp() -> str:
    return str(100_000 + secrets.randbelow(900_000))


def normalize_email(email: str) -> str:
    return email.strip().lower()


# -------------------------------------------------------
# Session tokens
# -------------------------------------------------------

def create_donor_session(donor: Donor, *, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    lifetime = timedelta(days=get_settings().donor_session_days)
    claims = {
        "sub": str(donor.id),
        "email": donor.email,
        "iat": int(now.timestamp()),
        "exp": int((now + lifetime).timestamp()),
    }
    return jwt.encode(claims, _jwt_secret(), algorithm=ALGORITHM)


def verify_donor_session(token: str) -> dict[str, Any] | None:
    """Return the session claims, or ``None`` for a bad or expired token."""

    try:
        payload = jwt.decode(token, _jwt_secret(), algorithms=[ALGORITHM])
    except JWTError:
        return None
    if not payload.get("sub") or not payload.get("email"):
        return None
    return payload


def set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        COOKIE_NAME,
        token,
        max_age=settings.donor_session_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(COOKIE_NAME, path="/")


def get_current_donor(
    donor_session: str | None = Cookie(default=None),
    session: Session = Depends(get_session_dependency),
) -> Donor:
    """Resolve the donor from the session cookie."""

    payload = verify_donor_session(donor_session) if donor_session else None
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    donor = session.get(Donor, int(payload["sub"]))
    if donor is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Donor not found",
        )
    return donor


# -------------------------------------------------------
# One-time codes
# -------------------------------------------------------

def send_otp(session: Session, email: str, *, now: datetime | None = None) -> DonorOtp:
    """Issue a code for ``email``, enrolling unknown donors; email failures are logged."""

    now = now or datetime.now(timezone.utc)
    normalized = normalize_email(email)
    donor = session.query(Donor).filter(Donor.email == normalized).one_or_none()
    if donor is None:
        donor = Donor(email=normalized)
        session.add(donor)
        session.flush()
        LOGGER.info("donor_auto_created", donor_id=donor.id)

    otp = DonorOtp(
        donor_id=donor.id,
        code=generate_otp(),
        expires_at=now + timedelta(minutes=get_settings().otp_ttl_minutes),
    )
    session.add(otp)
    session.commit()

    try:
        send_donor_otp_email(normalized, otp.code)
    except EmailDeliveryError as exc:
        LOGGER.error("donor_otp_email_failed", donor_id=donor.id, error=str(exc))
    LOGGER.info("donor_otp_issued", donor_id=donor.id)
    return otp


def verify_otp(session: Session, email: str, code: str, *, now: datetime | None = None) -> Donor:
    """Consume a valid code and return its donor; 401 otherwise."""

    now = now or datetime.now(timezone.utc)
    donor = session.query(Donor).filter(Donor.email == normalize_email(email)).one_or_none()
    if donor is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CODE)

    candidates = (
        session.query(DonorOtp)
        .filter(
            DonorOtp.donor_id == donor.id,
            DonorOtp.code == code.strip(),
            DonorOtp.used_at.is_(None),
        )
        .order_by(DonorOtp.created_at.desc(), DonorOtp.id.desc())
        .all()
    )
    otp = next((row for row in candidates if _as_utc(row.expires_at) > now), None)
    if otp is None:
        LOGGER.info("donor_otp_rejected", donor_id=donor.id)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CODE)

    otp.used_at = now
    donor.last_login_at = now
    session.add_all([otp, donor])
    session.commit()
    LOGGER.info("donor_otp_verified", donor_id=donor.id)
    return donor


def list_donor_donations(session: Session, donor: Donor, *, limit: int = 100) -> list[Donation]:
    return (
        session.query(Donation)
        .filter(Donation.donor_email == donor.email)
        .order_by(Donation.created_at.desc(), Donation.id.desc())
        .limit(limit)
        .all()
    )


__all__ = [
    "COOKIE_NAME",
    "clear_session_cookie",
    "create_donor_session",
    "generate_otp",
    "get_current_donor",
    "list_donor_donations",
    "normalize_email",
    "send_otp",
    "set_session_cookie",
    "verify_donor_session",
    "verify_otp",
]
