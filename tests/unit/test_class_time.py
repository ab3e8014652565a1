"""Tests for free-text class time parsing."""

from __future__ import annotations

import pytest

from transforme.services.class_time import format_start_time, parse_hour, parse_start_time


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("09.00-10.00 am", "9:00 AM"),
        ("20.00-21.00 pm", "8:00 PM"),
        ("17.00-18.00", "5:00 PM"),
        ("6pm", "6:00 PM"),
        ("4:30 p.m. - 5:30 p.m.", "4:30 PM"),
        ("12.00-13.00", "12:00 PM"),
        ("12 am", "12:00 AM"),
        ("10 to 11 am", "10:00 AM"),
        ("7:15", "7:15 AM"),
    ],
)
def test_format_start_time_examples(raw: str, expected: str) -> None:
    assert format_start_time(raw) == expected


@pytest.mark.parametrize("raw", ["09.00-10.00 am", "20.00-21.00 pm", "6pm", "17.00-18.00"])
def test_format_start_time_is_idempotent(raw: str) -> None:
    once = format_start_time(raw)
    assert format_start_time(once) == once


def test_format_start_time_returns_unparseable_input_unchanged() -> None:
    assert format_start_time("after lunch") == "after lunch"
    assert format_start_time("") is None
    assert format_start_time(None) is None


@pytest.mark.parametrize("raw", [None, "", "   ", "morning", "25:00", "9:75", "abc-def"])
def test_parse_hour_never_raises(raw: str | None) -> None:
    assert parse_hour(raw) is None


def test_parse_start_time_keeps_minutes() -> None:
    assert parse_start_time("3.45 pm") == (15, 45)
    assert parse_hour("3.45 pm") == 15
