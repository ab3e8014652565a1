"""Security helpers for Auth0 integration and permission checks."""

from __future__ import annotations

import hmac
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Iterable

import httpx
import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from transforme.core.config import get_settings
from transforme.core.permissions import has_permission
from transforme.db import get_session_dependency
from transforme.models import User

LOGGER = structlog.get_logger(__name__)

ALGORITHMS = ["RS256"]
EMAIL_CLAIMS = ("email", "https://transformeacademy.org/email")
_scheme = HTTPBearer(auto_error=False)


# -------------------------------------------------------
# JWKS + Token Utilities
# -------------------------------------------------------

@lru_cache()
def _fetch_jwks(domain: str) -> dict[str, Any]:
    """Fetch (and cache) the JWKS for the given Auth0 domain."""
    jwks_url = f"https://{domain}/.well-known/jwks.json"
    try:
        with httpx.Client(timeout=5.0) as client:
            response = client.get(jwks_url)
            response.raise_for_status()
            return response.json()
    except httpx.HTTPError as exc:
        LOGGER.error("jwks_fetch_failed", domain=domain, error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Unable to retrieve JWKS",
        ) from exc


def _get_rsa_key(token: str, domain: str) -> dict[str, str] | None:
    """Return the RSA key that matches the token header."""
    try:
        unverified_header = jwt.get_unverified_header(token)
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header",
        ) from exc

    if "kid" not in unverified_header:
        return None

    jwks = _fetch_jwks(domain)
    for key in jwks.get("keys", []):
        if key.get("kid") == unverified_header["kid"]:
            return {
                "kty": key.get("kty"),
                "kid": key.get("kid"),
                "use": key.get("use"),
                "n": key.get("n"),
                "e": key.get("e"),
            }
    return None


def _collect_audience_values(raw_value: str | None) -> list[str]:
    """Split the configured audience string into individual values."""
    if not raw_value:
        return []
    expanded: list[str] = []
    for candidate in raw_value.replace("\n", " ").split():
        for part in candidate.split(","):
            value = part.strip().rstrip("/")
            if value and value not in expanded:
                expanded.append(value)
    return expanded


def _decode_token(token: str, *, domain: str, audiences: list[str]) -> dict[str, Any]:
    """Decode and validate an Auth0 access token."""
    rsa_key = _get_rsa_key(token, domain)
    if not rsa_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unable to validate token",
        )

    try:
        payload = jwt.decode(
            token,
            rsa_key,
            algorithms=ALGORITHMS,
            issuer=f"https://{domain}/",
            options={"verify_aud": False},
        )
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        ) from exc

    audience_claim = payload.get("aud")
    if isinstance(audience_claim, str):
        token_audiences = [audience_claim]
    elif isinstance(audience_claim, (list, tuple)):
        token_audiences = [entry for entry in audience_claim if isinstance(entry, str)]
    else:
        token_audiences = []

    normalized = {value.rstrip("/") for value in token_audiences}
    if not normalized & set(audiences):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token audience",
        )
    return payload


# -------------------------------------------------------
# User Resolution
# -------------------------------------------------------

def _resolve_user(session: Session, payload: dict[str, Any]) -> User:
    """Map a verified Auth0 payload to an invited or active user.

    Accounts are invite-only: an unknown email is rejected. The first sign-in
    of an invited user links the Auth0 subject and activates the account.
    """
    subject = payload.get("sub")
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing subject",
        )

    user = session.query(User).filter(User.auth0_sub == subject).one_or_none()
    if user is None:
        email = next((payload[claim] for claim in EMAIL_CLAIMS if payload.get(claim)), None)
        if email:
            user = (
                session.query(User)
                .filter(User.email == str(email).strip().lower())
                .one_or_none()
            )
        if user is None:
            LOGGER.warning("auth_user_not_invited", subject=subject)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="User record not found",
            )
        user.auth0_sub = subject

    changed = session.is_modified(user)
    if user.status == "invited":
        user.status = "active"
        user.activated_at = datetime.now(timezone.utc)
        changed = True
        LOGGER.info("user_activated", user_id=user.id, email=user.email)
    if not user.name and payload.get("name"):
        user.name = str(payload["name"]).strip()
        changed = True

    if changed:
        session.add(user)
        session.commit()
    return user


# -------------------------------------------------------
# Current User + Permission Enforcement
# -------------------------------------------------------

def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_scheme),
    session: Session = Depends(get_session_dependency),
) -> User:
    """Resolve the authenticated user from the Auth0 bearer token."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing",
        )

    settings = get_settings()
    configured_audiences = _collect_audience_values(settings.auth0_audience)
    if not settings.auth0_domain or not configured_audiences:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Auth0 configuration is incomplete",
        )

    payload = _decode_token(
        credentials.credentials,
        domain=settings.auth0_domain,
        audiences=configured_audiences,
    )
    user = _resolve_user(session, payload)

    if user.status == "deactivated":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )
    return user


def _enforce_permission(user: User, permission: str) -> User:
    """Ensure the authenticated user holds ``permission`` through a role."""
    if not user.roles:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User role not assigned",
        )
    if not has_permission(user.roles, permission):
        LOGGER.info(
            "permission_denied",
            user_id=user.id,
            permission=permission,
            roles=list(user.roles),
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )
    return user


def require_permission(permission: str):
    """Return a dependency that enforces ``permission``."""

    def dependency(user: User = Depends(get_current_user)) -> User:
        return _enforce_permission(user, permission)

    return dependency


def require_any_permission(permissions: Iterable[str]):
    """Return a dependency satisfied by any one of ``permissions``."""
    required = tuple(permissions)

    def dependency(user: User = Depends(get_current_user)) -> User:
        if any(has_permission(user.roles or [], value) for value in required):
            return user
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )

    return dependency


# -------------------------------------------------------
# Shared-secret bearer checks (cron jobs, usage ingestion)
# -------------------------------------------------------

def secrets_match(provided: str | None, expected: str | None) -> bool:
    """Constant-time comparison that is ``False`` when either side is empty."""
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def _require_bearer_secret(
    credentials: HTTPAuthorizationCredentials | None, expected: str | None
) -> None:
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Shared secret is not configured",
        )
    provided = credentials.credentials if credentials else None
    if not secrets_match(provided, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )


def require_cron_secret(
    credentials: HTTPAuthorizationCredentials | None = Depends(_scheme),
) -> None:
    """Dependency accepting only ``Authorization: Bearer <CRON_SECRET>``."""
    _require_bearer_secret(credentials, get_settings().cron_secret)


def require_usage_secret(
    credentials: HTTPAuthorizationCredentials | None = Depends(_scheme),
) -> None:
    """Dependency accepting only ``Authorization: Bearer <USAGE_API_SECRET>``."""
    _require_bearer_secret(credentials, get_settings().usage_api_secret)


__all__ = [
    "get_current_user",
    "require_any_permission",
    "require_cron_secret",
    "require_permission",
    "require_usage_secret",
    "secrets_match",
]
