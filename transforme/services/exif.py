"""Capture time and GPS position read from image EXIF data."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from typing import Any

import structlog
from PIL import Image, UnidentifiedImageError

LOGGER = structlog.get_logger(__name__)

EXIF_IFD = 0x8769
GPS_IFD = 0x8825
TAG_DATETIME_ORIGINAL = 36867
TAG_DATETIME = 306


@dataclass(frozen=True, slots=True)
class PhotoMetadata:
    latitude: float | None = None
    longitude: float | None = None
    date_taken: str | None = None

    @property
    def gps(self) -> dict[str, float] | None:
        if self.latitude is None or self.longitude is None:
            return None
        return {"latitude": self.latitude, "longitude": self.longitude}


def _to_degrees(value: Any) -> float:
    degrees, minutes, seconds = (float(part) for part in value)
    return degrees + minutes / 60 + seconds / 3600


def _read_gps(gps: Any) -> tuple[float | None, float | None]:
    if not gps or 2 not in gps or 4 not in gps:
        return None, None
    latitude = _to_degrees(gps[2])
    longitude = _to_degrees(gps[4])
    if str(gps.get(1, "N")).upper().startswith("S"):
        latitude = -latitude
    if str(gps.get(3, "E")).upper().startswith("W"):
        longitude = -longitude
    if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
        return None, None
    return round(latitude, 7), round(longitude, 7)


def _read_date_taken(exif: Any) -> str | None:
    # Common EXIF format: "YYYY:MM:DD HH:MM:SS"
    value = exif.get_ifd(EXIF_IFD).get(TAG_DATETIME_ORIGINAL) or exif.get(TAG_DATETIME)
    if not value:
        return None
    try:
        return datetime.strptime(str(value).strip(), "%Y:%m:%d %H:%M:%S").isoformat()
    except ValueError:
        return None


def extract_photo_metadata(data: bytes) -> PhotoMetadata:
    """Return whatever GPS and capture-time hints ``data`` carries."""

    try:
        with Image.open(BytesIO(data)) as image:
            exif = image.getexif()
            if not exif:
                return PhotoMetadata()
            latitude, longitude = _read_gps(exif.get_ifd(GPS_IFD))
            return PhotoMetadata(
                latitude=latitude,
                longitude=longitude,
                date_taken=_read_date_taken(exif),
            )
    except (OSError, UnidentifiedImageError, ValueError, TypeError, ZeroDivisionError) as exc:
        LOGGER.debug("exif_read_failed", error=str(exc))
        return PhotoMetadata()


__all__ = ["PhotoMetadata", "extract_photo_metadata"]
