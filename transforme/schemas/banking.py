"""Banking, API cost and sync schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .common import Pagination


class BankAccountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    provider: str
    external_id: str
    name: str
    currency: str
    balance_cents: int
    last_synced_at: datetime | None


class BankTransactionOut(BaseModel):
    id: int
    bank_account_id: int
    external_id: str
    transaction_date: date
    description: str | None
    amount_cents: int
    currency: str
    status: str
    counterparty: str | None
    provider: str | None
    account_name: str | None


class ExchangeRate(BaseModel):
    usd_idr: float | None
    updated_at: str | None


class RunwayOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    last_month_invoice_idr: int | None
    three_month_average_idr: int | None
    runway_last_month: float | None
    runway_three_month: float | None


class BankingOverview(BaseModel):
    accounts: list[BankAccountOut]
    combined_balance_usd_cents: int
    exchange_rate: ExchangeRate
    transactions: list[BankTransactionOut]
    pagination: Pagination
    runway: RunwayOut


class BankSyncResponse(BaseModel):
    success: bool
    total_items: int
    errors: list[str] = Field(default_factory=list)


class ApiUsageIn(BaseModel):
    use_case: str = Field(min_length=1, max_length=50)
    model: str = Field(min_length=1, max_length=100)
    input_tokens: int = Field(ge=0)
    output_tokens: int = Field(ge=0)
    metadata: dict[str, Any] | None = None


class ApiUsageRecorded(BaseModel):
    success: bool
    cost_cents: int


class ApiUsageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    use_case: str
    model: str
    input_tokens: int
    output_tokens: int
    cost_cents: int
    class_log_id: int | None
    created_at: datetime | None


class UseCaseCost(BaseModel):
    use_case: str
    calls: int
    cost_cents: int


class MonthCost(BaseModel):
    month: str
    calls: int
    cost_cents: int


class CostSummary(BaseModel):
    total_calls: int
    total_input_tokens: int
    total_output_tokens: int
    total_cost_cents: int
    by_use_case: list[UseCaseCost]
    by_month: list[MonthCost]
    recent: list[ApiUsageOut]


class CronResult(BaseModel):
    success: bool
    message: str
    total_items: int = 0
    errors: list[str] = Field(default_factory=list)


__all__ = [
    "ApiUsageIn",
    "ApiUsageOut",
    "ApiUsageRecorded",
    "BankAccountOut",
    "BankSyncResponse",
    "BankTransactionOut",
    "BankingOverview",
    "CostSummary",
    "CronResult",
    "ExchangeRate",
    "RunwayOut",
]
