"""Shared request/response helpers."""

from __future__ import annotations

import math
import re
from datetime import date
from typing import Any

from pydantic import BaseModel

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class Pagination(BaseModel):
    """Page metadata returned with list endpoints."""

    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, *, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit))


def parse_iso_date(value: Any) -> date:
    """Validator helper accepting only ``YYYY-MM-DD`` strings (or dates)."""

    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _ISO_DATE.match(value.strip()):
        raise ValueError("Must be YYYY-MM-DD")
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValueError("Must be YYYY-MM-DD") from exc


__all__ = ["Pagination", "parse_iso_date"]
