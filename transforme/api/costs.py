"""AI API cost tracking endpoints."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from transforme.core.security import require_permission, require_usage_secret
from transforme.db import get_session_dependency
from transforme.schemas.banking import ApiUsageIn, ApiUsageRecorded, CostSummary
from transforme.services.api_usage import record_usage, summarize_usage

router = APIRouter(prefix="/admin", tags=["costs"])


@router.get(
    "/costs",
    response_model=CostSummary,
    dependencies=[Depends(require_permission("costs:view"))],
)
def get_costs(
    session: Annotated[Session, Depends(get_session_dependency)],
) -> dict[str, Any]:
    """Return API spend by use case and by month, with the latest calls."""

    return summarize_usage(session)


@router.post(
    "/api-usage",
    response_model=ApiUsageRecorded,
    dependencies=[Depends(require_usage_secret)],
)
def ingest_api_usage(
    payload: ApiUsageIn,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> ApiUsageRecorded:
    """Record token usage reported by an external job."""

    entry = record_usage(
        session,
        use_case=payload.use_case,
        model=payload.model,
        input_tokens=payload.input_tokens,
        output_tokens=payload.output_tokens,
        metadata=payload.metadata,
    )
    session.commit()
    return ApiUsageRecorded(success=True, cost_cents=entry.cost_cents)
