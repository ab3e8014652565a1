"""Application log viewer schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from .common import Pagination


class AppLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    level: str
    source: str
    message: str
    meta: dict[str, Any] | None
    created_at: datetime | None


class AppLogList(BaseModel):
    logs: list[AppLogOut]
    pagination: Pagination


__all__ = ["AppLogList", "AppLogOut"]
