"""Liveness, readiness and Prometheus endpoints.

Readiness covers the database, Redis when ``REDIS_ENABLED`` is set, and
reports which media storage backend is active.
"""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from redis import Redis
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from transforme.core.config import get_settings
from transforme.db import get_session_dependency
from transforme.services.storage import is_local_mode

LOGGER = structlog.get_logger(__name__)

router = APIRouter(tags=["health"])


def _database_status(session: Session) -> str:
    try:
        session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        LOGGER.error("readiness_database_failed", error=str(exc))
        return "unavailable"
    return "ok"


def _redis_status() -> str:
    settings = get_settings()
    if not settings.redis_enabled:
        return "disabled"
    try:
        Redis.from_url(settings.redis_url, socket_timeout=2).ping()
    except RedisError as exc:
        LOGGER.error("readiness_redis_failed", error=str(exc))
        return "unavailable"
    return "ok"


@router.get("/health/live")
def liveness() -> dict[str, str]:
    return {"status": "live"}


@router.get("/health/ready")
def readiness(session: Annotated[Session, Depends(get_session_dependency)]) -> JSONResponse:
    """503 with per-dependency detail when the database or Redis is unreachable."""

    checks = {
        "database": _database_status(session),
        "redis": _redis_status(),
        "storage": "local" if is_local_mode() else "s3",
    }
    healthy = "unavailable" not in (checks["database"], checks["redis"])
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "ready" if healthy else "unavailable", **checks},
    )


@router.get("/metrics")
def metrics() -> Response:
    """Expose Prometheus metrics."""

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
