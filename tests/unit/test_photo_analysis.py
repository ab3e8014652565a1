"""Unit tests for the vision-model photo analysis service."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import Mock

import httpx
import pytest
from openai import APIConnectionError

from transforme.db import session_scope
from transforme.models import ApiUsage
from transforme.services.api_usage import calculate_cost_cents
from transforme.services.photo_analysis import (
    PhotoAnalysisError,
    analyze_class_log_photos,
    build_photo_prompt,
    parse_analysis_response,
)


def _completion(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=2_000_000, completion_tokens=500_000),
    )


def test_parse_analysis_response_reads_fenced_json() -> None:
    raw = '```json\n{"kidsCount": "7", "location": "Open pavilion", "orphanageMatch": "high", "confidenceNotes": "Sign reads Sunrise"}\n```'
    result = parse_analysis_response(raw)

    assert result.kids_count == 7
    assert result.location == "Open pavilion"
    assert result.orphanage_match == "high"
    assert result.photo_timestamp is None


def test_parse_analysis_response_normalises_bad_values() -> None:
    result = parse_analysis_response('{"kidsCount": "many", "orphanageMatch": "definitely"}')

    assert result.kids_count == 0
    assert result.orphanage_match == "uncertain"
    assert result.confidence_notes == "No additional confidence notes"


def test_parse_analysis_response_unparseable_text() -> None:
    result = parse_analysis_response("I cannot see any children.")

    assert result.orphanage_match == "uncertain"
    assert result.confidence_notes.startswith("AI analysis response could not be parsed")
    assert parse_analysis_response(None).kids_count == 0


def test_prompt_includes_metadata_hints() -> None:
    prompt = build_photo_prompt(
        "Sunrise Home",
        photo_gps={"latitude": -8.67, "longitude": 115.21},
        exif_date_taken="2024-03-05T09:00:00",
    )

    assert '"Sunrise Home"' in prompt
    assert "-8.670000, 115.210000" in prompt
    assert "2024-03-05T09:00:00" in prompt


def test_analysis_unavailable_without_client(monkeypatch: pytest.MonkeyPatch) -> None:
    from transforme.services import photo_analysis

    monkeypatch.setattr(photo_analysis, "get_vision_client", lambda: None)
    with session_scope() as session:
        assert analyze_class_log_photos(session, ["https://x/a.jpg"], "Sunrise Home") is None
        assert analyze_class_log_photos(session, [], "Sunrise Home") is None


def test_failed_photo_is_skipped_and_usage_recorded() -> None:
    client = Mock()
    client.chat.completions.create.side_effect = [
        APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")),
        _completion('{"kidsCount": 5, "orphanageMatch": "likely", "confidenceNotes": "ok"}'),
    ]

    with session_scope() as session:
        analysis = analyze_class_log_photos(
            session,
            ["https://x/a.jpg", "https://x/b.jpg"],
            "Sunrise Home",
            client=client,
        )

    assert analysis is not None
    assert analysis.primary_photo_url == "https://x/b.jpg"
    assert analysis.photos_analyzed == 1
    with session_scope() as session:
        usage = session.query(ApiUsage).one()
        assert usage.use_case == "photo_analysis"
        assert usage.cost_cents == calculate_cost_cents(usage.model, 2_000_000, 500_000)


def test_all_photos_failing_raises() -> None:
    client = Mock()
    client.chat.completions.create.side_effect = APIConnectionError(
        request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    )

    with session_scope() as session:
        with pytest.raises(PhotoAnalysisError):
            analyze_class_log_photos(session, ["https://x/a.jpg"], "Sunrise Home", client=client)


def test_cost_uses_price_table() -> None:
    assert calculate_cost_cents("gpt-4o-mini", 1_000_000, 1_000_000) == 75
    assert calculate_cost_cents("unknown-model", 1_000_000, 0) == 250
