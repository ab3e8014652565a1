"""Tests for GPS and date/time verification of class-log photos."""

from __future__ import annotations

from datetime import date

import pytest

from transforme.core.config import Settings
from transforme.services.verification import (
    check_gps,
    check_photo_date,
    classify_distance,
    combine_location_evidence,
    date_match_verified,
    haversine_distance,
    orphanage_match_verified,
    parse_exif_timestamp,
    time_match_verified,
)

ORPHANAGE = (-8.6705, 115.2126)


def test_haversine_distance_of_identical_points_is_zero() -> None:
    assert haversine_distance(*ORPHANAGE, *ORPHANAGE) == pytest.approx(0.0)


def test_haversine_distance_one_degree_latitude() -> None:
    assert haversine_distance(0.0, 0.0, 1.0, 0.0) == pytest.approx(111_195, rel=1e-3)


@pytest.mark.parametrize(
    ("distance", "label"),
    [(0, "high"), (200, "high"), (201, "likely"), (500, "likely"), (1999, "uncertain"), (2001, "unlikely")],
)
def test_classify_distance_thresholds(distance: int, label: str) -> None:
    assert classify_distance(distance, Settings()) == label


def test_classify_distance_uses_configured_thresholds() -> None:
    settings = Settings(GPS_HIGH_METERS=50, GPS_LIKELY_METERS=100, GPS_UNCERTAIN_METERS=150)
    assert classify_distance(120, settings) == "uncertain"


def test_check_gps_requires_both_locations() -> None:
    assert check_gps(None, 115.0, *ORPHANAGE) is None
    assert check_gps(-8.67, 115.21, None, None) is None


def test_check_gps_nearby_photo_is_high() -> None:
    result = check_gps(-8.6710, 115.2130, *ORPHANAGE)
    assert result is not None
    assert result.label == "high"
    assert result.distance_meters < 200


def test_gps_label_overrides_vision_label() -> None:
    gps = check_gps(-8.80, 115.40, *ORPHANAGE)
    label, notes = combine_location_evidence(gps, "high", "Sign visible on the wall.")
    assert label == "unlikely"
    assert notes.startswith("Verified by: GPS (")
    assert "AI vision (high)" in notes
    assert notes.endswith("Sign visible on the wall.")


def test_vision_label_used_without_gps() -> None:
    label, notes = combine_location_evidence(None, "likely")
    assert label == "likely"
    assert notes == "Verified by: AI vision (likely)."
    assert combine_location_evidence(None, None) == (None, None)


def test_parse_exif_timestamp_formats() -> None:
    assert parse_exif_timestamp("2024:03:05 09:15:00").hour == 9
    assert parse_exif_timestamp("2024-03-05T09:15:00Z").tzinfo is not None
    assert parse_exif_timestamp("yesterday") is None
    assert parse_exif_timestamp(None) is None


def test_check_photo_date_without_exif() -> None:
    result = check_photo_date(None, date(2024, 3, 5), "9am")
    assert result.date_match == "no_exif"
    assert result.time_match == "no_exif"


def test_check_photo_date_match_and_time_within_tolerance() -> None:
    result = check_photo_date("2024:03:05 10:40:00", date(2024, 3, 5), "09.00-10.00 am")
    assert result.date_match == "match"
    assert result.time_match == "match"
    assert "1h apart" in result.time_notes


def test_check_photo_date_mismatch() -> None:
    result = check_photo_date("2024-03-01T18:00:00", date(2024, 3, 5), "9am")
    assert result.date_match == "mismatch"
    assert "4 days apart" in result.date_notes
    assert result.time_match == "mismatch"


def test_time_difference_wraps_at_midnight() -> None:
    result = check_photo_date("2024-03-05T00:30:00", date(2024, 3, 5), "23.00-24.00")
    assert result.time_match == "match"


def test_missing_or_unreadable_class_time() -> None:
    assert check_photo_date("2024-03-05T09:00:00", "2024-03-05", None).time_match == "no_time"
    assert check_photo_date("2024-03-05T09:00:00", "2024-03-05", "morning").time_match == "no_time"


def test_date_tolerance_setting() -> None:
    settings = Settings(DATE_MATCH_TOLERANCE_DAYS=1)
    result = check_photo_date("2024-03-04T09:00:00", date(2024, 3, 5), "9am", settings)
    assert result.date_match == "match"


@pytest.mark.parametrize(
    ("label", "expected"),
    [("high", True), ("likely", True), ("uncertain", False), ("unlikely", False), (None, None)],
)
def test_orphanage_match_verified(label: str | None, expected: bool | None) -> None:
    assert orphanage_match_verified(label) is expected


def test_date_and_time_badges() -> None:
    assert date_match_verified("match") is True
    assert date_match_verified("mismatch") is False
    assert date_match_verified("no_exif") is None
    assert time_match_verified("no_time") is None
    assert time_match_verified("mismatch") is False
