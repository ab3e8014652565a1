"""Structured logging configuration."""

from __future__ import annotations

import logging

import structlog
from structlog.typing import EventDict, WrappedLogger

from transforme.core.config import get_settings
from transforme.services.app_logs import should_persist, write_app_log

_RESERVED_KEYS = frozenset({"event", "level", "logger", "timestamp"})


def persist_app_log(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Copy events at or above ``APP_LOG_LEVEL`` into the ``app_logs`` table."""

    level = str(event_dict.get("level", method_name))
    if should_persist(level, get_settings().app_log_level):
        meta = {key: value for key, value in event_dict.items() if key not in _RESERVED_KEYS}
        write_app_log(
            level,
            str(event_dict.get("logger") or "app"),
            str(event_dict.get("event", "")),
            meta,
        )
    return event_dict


def configure_logging(level: int = logging.INFO) -> None:
    """Configure JSON structlog output on top of the stdlib root logger."""

    logging.basicConfig(level=level, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            persist_app_log,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


__all__ = ["configure_logging", "persist_app_log"]
