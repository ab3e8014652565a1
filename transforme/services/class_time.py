"""Parsing of the free-text class time entered by teachers.

Teachers type times the way they write them on paper: ``"09.00-10.00 am"``,
``"20.00-21.00 pm"``, ``"17.00-18.00"`` or ``"6pm"``. Only the start of a
range matters. An am/pm marker may sit on either end of the range, and an
hour already past 12 is treated as 24-hour even when a marker is present.

Nothing in this module raises on bad input: unparseable strings yield
``None`` from :func:`parse_start_time` and :func:`parse_hour`, and are
returned unchanged by :func:`format_start_time`.
"""

from __future__ import annotations

import re

_MERIDIEM_DOTS = re.compile(r"(?<![A-Za-z])([ap])\.?\s?m\.?(?![A-Za-z])", re.IGNORECASE)
_RANGE_SEPARATOR = re.compile(r"\s*(?:-|–|\bto\b)\s*", re.IGNORECASE)
_MERIDIEM_SUFFIX = re.compile(r"\s*(am|pm)$", re.IGNORECASE)
_CLOCK = re.compile(r"^(\d{1,2})(?::(\d{2}))?$")


def _split_meridiem(token: str) -> tuple[str, str | None]:
    match = _MERIDIEM_SUFFIX.search(token)
    if not match:
        return token, None
    return token[: match.start()].strip(), match.group(1).lower()


def parse_start_time(raw: str | None) -> tuple[int, int] | None:
    """Return the 24-hour ``(hour, minute)`` a class started at, if readable."""

    if not isinstance(raw, str):
        return None
    text = raw.strip()
    if not text:
        return None

    text = _MERIDIEM_DOTS.sub(lambda match: f"{match.group(1).lower()}m", text)
    text = text.replace(".", ":")

    parts = [part.strip() for part in _RANGE_SEPARATOR.split(text) if part.strip()]
    if not parts:
        return None

    start, meridiem = _split_meridiem(parts[0])
    if meridiem is None and len(parts) > 1:
        _, meridiem = _split_meridiem(parts[-1])

    clock = _CLOCK.match(start)
    if not clock:
        return None

    hour = int(clock.group(1))
    minute = int(clock.group(2) or 0)
    if hour > 23 or minute > 59:
        return None

    if meridiem and hour <= 12:
        if meridiem == "pm" and hour != 12:
            hour += 12
        elif meridiem == "am" and hour == 12:
            hour = 0
    return hour, minute


def format_start_time(raw: str | None) -> str | None:
    """Render the start of ``raw`` as ``"H:MM AM"``; unparseable input is returned as-is."""

    if raw is None or not raw.strip():
        return None
    parsed = parse_start_time(raw)
    if parsed is None:
        return raw
    hour, minute = parsed
    display_hour = hour % 12 or 12
    suffix = "PM" if hour >= 12 else "AM"
    return f"{display_hour}:{minute:02d} {suffix}"


def parse_hour(raw: str | None) -> int | None:
    """Return the starting hour (0-23) of ``raw`` or ``None``."""

    parsed = parse_start_time(raw)
    return parsed[0] if parsed else None


__all__ = ["format_start_time", "parse_hour", "parse_start_time"]
