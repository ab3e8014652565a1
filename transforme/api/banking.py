"""Banking overview and manual bank sync."""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from transforme.core.rate_limit import enforce_rate_limit
from transforme.core.security import require_permission
from transforme.db import get_session_dependency
from transforme.models import User
from transforme.schemas.banking import BankingOverview, BankSyncResponse, RunwayOut
from transforme.schemas.common import Pagination
from transforme.services.bank_sync import run_bank_sync
from transforme.services.banking import banking_overview

LOGGER = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin/banking", tags=["banking"])


@router.get(
    "",
    response_model=BankingOverview,
    dependencies=[Depends(require_permission("banking:view"))],
)
def get_banking_overview(
    session: Annotated[Session, Depends(get_session_dependency)],
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=25, ge=1, le=100),
) -> BankingOverview:
    """Balances, recent transactions, the exchange rate and runway."""

    overview = banking_overview(session, page=page, limit=limit)
    return BankingOverview(
        accounts=overview["accounts"],
        combined_balance_usd_cents=overview["combined_balance_usd_cents"],
        exchange_rate=overview["exchange_rate"],
        transactions=overview["transactions"],
        pagination=Pagination.build(
            page=overview["page"],
            limit=overview["limit"],
            total=overview["total_transactions"],
        ),
        runway=RunwayOut.model_validate(overview["runway"]),
    )


@router.post("/sync", response_model=BankSyncResponse)
def sync_bank_accounts(
    session: Annotated[Session, Depends(get_session_dependency)],
    user: Annotated[User, Depends(require_permission("banking:sync"))],
) -> BankSyncResponse:
    """Pull balances and transactions from every provider now."""

    enforce_rate_limit("bank_sync", user.id, "Too many sync requests. Please try again later.")
    summary = run_bank_sync(session)
    LOGGER.info(
        "bank_sync_manual",
        user_id=user.id,
        total_items=summary.total_items,
        errors=len(summary.errors),
    )
    if summary.failed:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="; ".join(summary.errors),
        )
    return BankSyncResponse(
        success=not summary.errors,
        total_items=summary.total_items,
        errors=summary.errors,
    )
