"""Class-log photo verification: GPS distance and date/time cross-checks.

Every check here degrades to "unknown" rather than failing. Missing EXIF
data, orphanages without coordinates and unreadable class times never block
saving a class log; they simply leave the corresponding result empty.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime

from transforme.core.config import Settings, get_settings
from transforme.services.class_time import parse_hour

EARTH_RADIUS_METERS = 6_371_000
MATCH_LABELS: tuple[str, ...] = ("high", "likely", "uncertain", "unlikely")
VERIFIED_MATCH_LABELS: frozenset[str] = frozenset({"high", "likely"})

_EXIF_NATIVE = re.compile(r"^(\d{4}):(\d{2}):(\d{2})[ T](\d{2}):(\d{2})(?::(\d{2}))?")


@dataclass(frozen=True, slots=True)
class GpsCheck:
    """Distance between the photo and the orphanage, with its confidence label."""

    distance_meters: int
    label: str

    @property
    def summary(self) -> str:
        return f"GPS ({self.distance_meters}m from orphanage)"


@dataclass(frozen=True, slots=True)
class DateTimeCheck:
    """Outcome of comparing the photo timestamp with the logged class."""

    date_match: str
    date_notes: str
    time_match: str
    time_notes: str


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two WGS84 points."""

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return EARTH_RADIUS_METERS * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def classify_distance(distance_meters: float, settings: Settings | None = None) -> str:
    """Map a distance to ``high``/``likely``/``uncertain``/``unlikely``."""

    settings = settings or get_settings()
    if distance_meters <= settings.gps_high_meters:
        return "high"
    if distance_meters <= settings.gps_likely_meters:
        return "likely"
    if distance_meters <= settings.gps_uncertain_meters:
        return "uncertain"
    return "unlikely"


def check_gps(
    photo_latitude: float | None,
    photo_longitude: float | None,
    orphanage_latitude: float | None,
    orphanage_longitude: float | None,
    settings: Settings | None = None,
) -> GpsCheck | None:
    """Return the GPS check, or ``None`` when either location is unknown."""

    if None in (photo_latitude, photo_longitude, orphanage_latitude, orphanage_longitude):
        return None
    distance = round(
        haversine_distance(photo_latitude, photo_longitude, orphanage_latitude, orphanage_longitude)
    )
    return GpsCheck(distance_meters=distance, label=classify_distance(distance, settings))


def combine_location_evidence(
    gps: GpsCheck | None,
    ai_label: str | None,
    ai_notes: str | None = None,
) -> tuple[str | None, str | None]:
    """Merge GPS and vision results into the stored label and notes.

    The GPS label wins whenever it exists; the vision label is the fallback.
    Notes start with a ``Verified by:`` line naming each contributing method.
    """

    methods: list[str] = []
    if gps is not None:
        methods.append(gps.summary)
    if ai_label:
        methods.append(f"AI vision ({ai_label})")
    if not methods:
        return None, None

    label = gps.label if gps is not None else ai_label
    summary = f"Verified by: {' + '.join(methods)}"
    notes = f"{summary}. {ai_notes}" if ai_notes else f"{summary}."
    return label, notes


def parse_exif_timestamp(value: str | None) -> datetime | None:
    """Parse ISO 8601 or native EXIF (``YYYY:MM:DD HH:MM:SS``) timestamps."""

    if not value or not value.strip():
        return None
    candidate = value.strip()

    native = _EXIF_NATIVE.match(candidate)
    if native:
        year, month, day, hour, minute, second = native.groups()
        try:
            return datetime(
                int(year), int(month), int(day), int(hour), int(minute), int(second or 0)
            )
        except ValueError:
            return None

    if candidate.endswith("Z"):
        candidate = f"{candidate[:-1]}+00:00"
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        return None


def _coerce_class_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def check_photo_date(
    exif_date_taken: str | None,
    class_date: date | str,
    class_time: str | None,
    settings: Settings | None = None,
) -> DateTimeCheck:
    """Compare the photo capture timestamp with the class date and time.

    The date matches when the calendar days differ by no more than
    ``date_match_tolerance_days``. The time is compared on hour of day only,
    wrapping at midnight, against ``time_match_tolerance_hours``.
    """

    settings = settings or get_settings()
    logged_date = _coerce_class_date(class_date)

    if not exif_date_taken:
        return DateTimeCheck(
            date_match="no_exif",
            date_notes="No date metadata found in photo. Cannot verify when the photo was taken.",
            time_match="no_exif",
            time_notes="No photo timestamp available to compare with the class time.",
        )

    taken = parse_exif_timestamp(exif_date_taken)
    if taken is None:
        return DateTimeCheck(
            date_match="no_exif",
            date_notes=f"Could not parse photo date: {exif_date_taken}",
            time_match="no_exif",
            time_notes="No photo timestamp available to compare with the class time.",
        )

    taken_date = taken.date()
    day_gap = abs((taken_date - logged_date).days)
    if day_gap == 0:
        date_match = "match"
        date_notes = f"Photo date {taken_date.isoformat()} matches class date {logged_date.isoformat()}."
    elif day_gap <= settings.date_match_tolerance_days:
        date_match = "match"
        date_notes = (
            f"Photo taken {taken_date.isoformat()}, class logged {logged_date.isoformat()} "
            f"({day_gap} day(s) apart, within tolerance)."
        )
    else:
        date_match = "mismatch"
        date_notes = (
            f"Photo was taken on {taken_date.isoformat()} but class was logged for "
            f"{logged_date.isoformat()} ({day_gap} days apart)."
        )

    taken_clock = f"{taken.hour}:{taken.minute:02d}"
    if not class_time or not class_time.strip():
        time_match = "no_time"
        time_notes = "No class time recorded."
    else:
        class_hour = parse_hour(class_time)
        if class_hour is None:
            time_match = "no_time"
            time_notes = f"Could not read an hour from class time '{class_time}'."
        else:
            hour_gap = abs(taken.hour - class_hour)
            hour_gap = min(hour_gap, 24 - hour_gap)
            if hour_gap <= settings.time_match_tolerance_hours:
                time_match = "match"
                time_notes = (
                    f"Photo taken at {taken_clock}, class at {class_time} ({hour_gap}h apart)."
                )
            else:
                time_match = "mismatch"
                time_notes = (
                    f"Photo taken at {taken_clock} but class was at {class_time} "
                    f"({hour_gap}h apart)."
                )

    return DateTimeCheck(
        date_match=date_match,
        date_notes=date_notes,
        time_match=time_match,
        time_notes=time_notes,
    )


def orphanage_match_verified(label: str | None) -> bool | None:
    """``True`` for high/likely, ``False`` for uncertain/unlikely, ``None`` if unknown."""

    if not label:
        return None
    return label in VERIFIED_MATCH_LABELS


def date_match_verified(value: str | None) -> bool | None:
    if not value or value == "no_exif":
        return None
    return value == "match"


def time_match_verified(value: str | None) -> bool | None:
    if not value or value in {"no_exif", "no_time"}:
        return None
    return value == "match"


__all__ = [
    "DateTimeCheck",
    "EARTH_RADIUS_METERS",
    "GpsCheck",
    "MATCH_LABELS",
    "check_gps",
    "check_photo_date",
    "classify_distance",
    "combine_location_evidence",
    "date_match_verified",
    "haversine_distance",
    "orphanage_match_verified",
    "parse_exif_timestamp",
    "time_match_verified",
]
