"""Vision-model analysis of class-log photos."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from time import perf_counter
from typing import Any

import structlog
from openai import OpenAI, OpenAIError
from sqlalchemy.orm import Session

from transforme.core.config import get_settings
from transforme.services.api_usage import record_usage
from transforme.services.metrics import photo_analyses_total, vision_call_seconds
from transforme.services.verification import MATCH_LABELS

LOGGER = structlog.get_logger(__name__)

USE_CASE = "photo_analysis"


class PhotoAnalysisError(RuntimeError):
    """Raised when every photo of a class log failed to analyse."""


@dataclass(frozen=True, slots=True)
class PhotoAnalysisResult:
    """What the vision model reported for a single photo."""

    kids_count: int
    location: str | None
    photo_timestamp: str | None
    orphanage_match: str
    confidence_notes: str


@dataclass(frozen=True, slots=True)
class ClassLogPhotoAnalysis:
    """Aggregated analysis for a class log, taken from its primary photo."""

    primary_photo_url: str
    kids_count: int
    location: str | None
    photo_timestamp: str | None
    orphanage_match: str
    confidence_notes: str
    photos_analyzed: int


def build_photo_prompt(
    orphanage_name: str,
    *,
    photo_gps: dict[str, float] | None = None,
    exif_date_taken: str | None = None,
) -> str:
    """Instruction sent alongside each photo."""

    hints: list[str] = []
    if photo_gps:
        hints.append(
            f"- Photo GPS metadata: {photo_gps['latitude']:.6f}, {photo_gps['longitude']:.6f}"
        )
    if exif_date_taken:
        hints.append(f"- Photo capture time from metadata: {exif_date_taken}")
    hint_block = ""
    if hints:
        hint_block = "\nKnown photo metadata:\n" + "\n".join(hints) + "\n"

    return f"""Analyze this classroom photo from an orphanage called "{orphanage_name}" in Bali, Indonesia.
{hint_block}
Extract the following:
1. kidsCount: how many children or students are visible. Return 0 if none.
2. location: visible location cues (signage, building features, landscape, indoor/outdoor), or null.
3. photoTimestamp: any visible clock, date display or on-image time stamp, or null.
4. orphanageMatch: does this look like a class at an orphanage/school called "{orphanage_name}"?
   Consider whether children are in a classroom setting, whether the setting looks like a Balinese
   orphanage or school, and whether any signage matches the name.
   Rate as "high", "likely", "uncertain" or "unlikely".

Respond ONLY with one JSON object, no markdown:
{{"kidsCount": <number>, "location": <string or null>, "photoTimestamp": <string or null>, "orphanageMatch": "<high|likely|uncertain|unlikely>", "confidenceNotes": "<brief notes on your confidence>"}}"""


def _extract_json_object(raw: str) -> dict[str, Any]:
    """Return the first ``{...}`` block of ``raw`` parsed as JSON."""

    match = re.search(r"\{.*\}", raw.strip(), flags=re.DOTALL)
    if not match:
        raise ValueError("Model did not return a JSON object")
    parsed = json.loads(match.group(0))
    if not isinstance(parsed, dict):
        raise ValueError("Model JSON is not an object")
    return parsed


def _coerce_kids_count(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return max(0, int(value))
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return 0


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_analysis_response(raw: str | None) -> PhotoAnalysisResult:
    """Normalise a model reply; unreadable replies become an ``uncertain`` result."""

    if not raw or not raw.strip():
        return PhotoAnalysisResult(
            kids_count=0,
            location=None,
            photo_timestamp=None,
            orphanage_match="uncertain",
            confidence_notes="AI analysis returned no text response",
        )

    try:
        payload = _extract_json_object(raw)
    except (ValueError, json.JSONDecodeError):
        LOGGER.warning("photo_analysis_unparseable", raw_preview=raw[:200])
        return PhotoAnalysisResult(
            kids_count=0,
            location=None,
            photo_timestamp=None,
            orphanage_match="uncertain",
            confidence_notes=f"AI analysis response could not be parsed: {raw.strip()[:200]}",
        )

    label = payload.get("orphanageMatch")
    return PhotoAnalysisResult(
        kids_count=_coerce_kids_count(payload.get("kidsCount")),
        location=_optional_text(payload.get("location")),
        photo_timestamp=_optional_text(payload.get("photoTimestamp")),
        orphanage_match=label if label in MATCH_LABELS else "uncertain",
        confidence_notes=_optional_text(payload.get("confidenceNotes"))
        or "No additional confidence notes",
    )


def get_vision_client() -> OpenAI | None:
    """Return a configured client, or ``None`` when no API key is set."""

    settings = get_settings()
    if not settings.openai_api_key:
        return None
    return OpenAI(api_key=settings.openai_api_key, timeout=settings.vision_timeout_seconds)


def analyze_photo(
    client: OpenAI,
    photo_url: str,
    prompt: str,
    *,
    model: str,
) -> tuple[PhotoAnalysisResult, int, int]:
    """Analyse one photo; returns the result with input and output token counts."""

    start = perf_counter()
    response = client.chat.completions.create(
        model=model,
        max_tokens=1024,
        temperature=0,
        messages=[
            {
                "role": "user",
                "content": [
                    {"type": "image_url", "image_url": {"url": photo_url}},
                    {"type": "text", "text": prompt},
                ],
            }
        ],
    )
    vision_call_seconds.observe(perf_counter() - start)

    content = response.choices[0].message.content if response.choices else None
    usage = getattr(response, "usage", None)
    input_tokens = getattr(usage, "prompt_tokens", 0) or 0
    output_tokens = getattr(usage, "completion_tokens", 0) or 0
    return parse_analysis_response(content), input_tokens, output_tokens


def analyze_class_log_photos(
    session: Session,
    photo_urls: list[str],
    orphanage_name: str,
    *,
    class_log_id: int | None = None,
    photo_gps: dict[str, float] | None = None,
    exif_date_taken: str | None = None,
    client: OpenAI | None = None,
) -> ClassLogPhotoAnalysis | None:
    """Analyse each photo and keep the one showing the most children.

    Returns ``None`` when analysis is unavailable (no API key or no photos).
    Raises :class:`PhotoAnalysisError` when every photo failed. Usage rows for
    successful calls are added to ``session`` for the caller to commit.
    """

    if not photo_urls:
        return None
    client = client or get_vision_client()
    if client is None:
        LOGGER.warning("photo_analysis_skipped", reason="missing_api_key", class_log_id=class_log_id)
        photo_analyses_total.labels(status="unavailable").inc()
        return None

    model = get_settings().vision_model
    prompt = build_photo_prompt(
        orphanage_name, photo_gps=photo_gps, exif_date_taken=exif_date_taken
    )

    successes: list[tuple[str, PhotoAnalysisResult]] = []
    errors: list[str] = []
    for url in photo_urls:
        try:
            result, input_tokens, output_tokens = analyze_photo(client, url, prompt, model=model)
        except OpenAIError as exc:
            LOGGER.warning(
                "photo_analysis_call_failed",
                class_log_id=class_log_id,
                photo_url=url,
                error=str(exc),
            )
            errors.append(str(exc))
            continue
        record_usage(
            session,
            use_case=USE_CASE,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            class_log_id=class_log_id,
            metadata={"photo_url": url},
        )
        successes.append((url, result))

    if not successes:
        photo_analyses_total.labels(status="failed").inc()
        raise PhotoAnalysisError(errors[-1] if errors else "Photo analysis failed")

    primary_url, primary = successes[0]
    for url, result in successes[1:]:
        if result.kids_count > primary.kids_count:
            primary_url, primary = url, result

    photo_analyses_total.labels(status="success").inc()
    LOGGER.info(
        "photo_analysis_completed",
        class_log_id=class_log_id,
        photos=len(photo_urls),
        analyzed=len(successes),
        kids_count=primary.kids_count,
        orphanage_match=primary.orphanage_match,
    )
    return ClassLogPhotoAnalysis(
        primary_photo_url=primary_url,
        kids_count=primary.kids_count,
        location=primary.location,
        photo_timestamp=primary.photo_timestamp,
        orphanage_match=primary.orphanage_match,
        confidence_notes=primary.confidence_notes,
        photos_analyzed=len(successes),
    )


__all__ = [
    "ClassLogPhotoAnalysis",
    "PhotoAnalysisError",
    "PhotoAnalysisResult",
    "analyze_class_log_photos",
    "analyze_photo",
    "build_photo_prompt",
    "get_vision_client",
    "parse_analysis_response",
]
