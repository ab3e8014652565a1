"""Upload response schema."""

from __future__ import annotations

from pydantic import BaseModel

from .class_log import PhotoGps


class UploadOut(BaseModel):
    url: str
    key: str
    content_type: str
    size: int
    photo_gps: PhotoGps | None = None
    exif_date_taken: str | None = None


__all__ = ["UploadOut"]
