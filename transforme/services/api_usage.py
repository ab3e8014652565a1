"""Recording and summarising model API usage and cost."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import func
from sqlalchemy.orm import Session

from transforme.models import ApiUsage

LOGGER = structlog.get_logger(__name__)

# USD cents per one million tokens: (input, output).
MODEL_PRICING_CENTS: dict[str, tuple[int, int]] = {
    "gpt-4o": (250, 1000),
    "gpt-4o-mini": (15, 60),
    "gpt-4.1": (200, 800),
    "gpt-4.1-mini": (40, 160),
    "claude-sonnet-4-20250514": (300, 1500),
    "claude-haiku-4-5-20251001": (100, 500),
}
DEFAULT_PRICING_CENTS: tuple[int, int] = (250, 1000)


def calculate_cost_cents(model: str, input_tokens: int, output_tokens: int) -> int:
    """Return the rounded USD-cent cost of a call."""

    input_rate, output_rate = MODEL_PRICING_CENTS.get(model, DEFAULT_PRICING_CENTS)
    cost = (input_tokens * input_rate + output_tokens * output_rate) / 1_000_000
    return round(cost)


def record_usage(
    session: Session,
    *,
    use_case: str,
    model: str,
    input_tokens: int,
    output_tokens: int,
    class_log_id: int | None = None,
    metadata: dict[str, Any] | None = None,
) -> ApiUsage:
    """Add a usage row to ``session``; the caller owns the commit."""

    entry = ApiUsage(
        use_case=use_case,
        model=model,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cost_cents=calculate_cost_cents(model, input_tokens, output_tokens),
        class_log_id=class_log_id,
        metadata_json=metadata,
    )
    session.add(entry)
    LOGGER.info(
        "api_usage_recorded",
        use_case=use_case,
        model=model,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cost_cents=entry.cost_cents,
    )
    return entry


def summarize_usage(session: Session, *, recent_limit: int = 50) -> dict[str, Any]:
    """Totals overall, by use case and by calendar month, plus recent calls."""

    totals = session.query(
        func.count(ApiUsage.id),
        func.coalesce(func.sum(ApiUsage.input_tokens), 0),
        func.coalesce(func.sum(ApiUsage.output_tokens), 0),
        func.coalesce(func.sum(ApiUsage.cost_cents), 0),
    ).one()

    by_use_case = [
        {
            "use_case": use_case,
            "calls": int(calls),
            "cost_cents": int(cost or 0),
        }
        for use_case, calls, cost in (
            session.query(
                ApiUsage.use_case,
                func.count(ApiUsage.id),
                func.sum(ApiUsage.cost_cents),
            )
            .group_by(ApiUsage.use_case)
            .order_by(ApiUsage.use_case)
            .all()
        )
    ]

    monthly: dict[str, dict[str, int]] = defaultdict(lambda: {"calls": 0, "cost_cents": 0})
    for created_at, cost in session.query(ApiUsage.created_at, ApiUsage.cost_cents).all():
        stamp = created_at or datetime.now(timezone.utc)
        bucket = monthly[f"{stamp.year:04d}-{stamp.month:02d}"]
        bucket["calls"] += 1
        bucket["cost_cents"] += cost or 0

    recent = (
        session.query(ApiUsage)
        .order_by(ApiUsage.created_at.desc(), ApiUsage.id.desc())
        .limit(recent_limit)
        .all()
    )

    return {
        "total_calls": int(totals[0]),
        "total_input_tokens": int(totals[1]),
        "total_output_tokens": int(totals[2]),
        "total_cost_cents": int(totals[3]),
        "by_use_case": by_use_case,
        "by_month": [
            {"month": month, **values} for month, values in sorted(monthly.items(), reverse=True)
        ],
        "recent": recent,
    }


__all__ = [
    "MODEL_PRICING_CENTS",
    "calculate_cost_cents",
    "record_usage",
    "summarize_usage",
]
