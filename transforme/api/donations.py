"""Donation listing and statistics."""

from __future__ import annotations

from datetime import date
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from transforme.core.security import require_permission
from transforme.db import get_session_dependency
from transforme.schemas.common import Pagination
from transforme.schemas.donation import DonationList, DonationOut, DonationStats
from transforme.services.donations import donation_stats, list_donations

router = APIRouter(
    prefix="/admin/donations",
    tags=["donations"],
    dependencies=[Depends(require_permission("donations:view"))],
)


@router.get("", response_model=DonationList)
def get_donations(
    session: Annotated[Session, Depends(get_session_dependency)],
    frequency: Literal["one_time", "monthly", "yearly"] | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=25, ge=1, le=50),
) -> DonationList:
    rows, total = list_donations(
        session,
        frequency=frequency,
        status_value=status_filter,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    return DonationList(
        donations=[DonationOut.model_validate(row) for row in rows],
        pagination=Pagination.build(page=page, limit=limit, total=total),
    )


@router.get("/stats", response_model=DonationStats)
def get_donation_stats(
    session: Annotated[Session, Depends(get_session_dependency)],
) -> dict[str, object]:
    """Totals over completed donations, split by frequency and currency."""

    return donation_stats(session)
