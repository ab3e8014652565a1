"""Banking overview: balances, exchange rate and runway."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from transforme.models import BankAccount, BankTransaction, Invoice, SiteSetting

USD_IDR_RATE_KEY = "usd_idr_rate"
EXCHANGE_RATE_UPDATED_KEY = "exchange_rate_updated_at"


def get_setting(session: Session, key: str) -> str | None:
    row = session.get(SiteSetting, key)
    return row.value if row else None


def set_setting(session: Session, key: str, value: str) -> None:
    """Upsert a site setting; the caller commits."""

    row = session.get(SiteSetting, key)
    if row is None:
        session.add(SiteSetting(key=key, value=value))
    else:
        row.value = value
        session.add(row)


def get_usd_idr_rate(session: Session) -> float | None:
    raw = get_setting(session, USD_IDR_RATE_KEY)
    if raw is None:
        return None
    try:
        rate = float(raw)
    except ValueError:
        return None
    return rate if rate > 0 else None


def combined_balance_usd_cents(accounts: list[BankAccount], usd_idr_rate: float | None) -> int:
    """Sum USD balances plus IDR balances converted at ``usd_idr_rate``."""

    total = 0
    for account in accounts:
        if account.currency == "usd":
            total += account.balance_cents
        elif account.currency == "idr" and usd_idr_rate:
            total += round(account.balance_cents / usd_idr_rate)
    return total


@dataclass(frozen=True, slots=True)
class Runway:
    last_month_invoice_idr: int | None = None
    three_month_average_idr: int | None = None
    runway_last_month: float | None = None
    runway_three_month: float | None = None


def calculate_runway(
    balance_usd_cents: int, usd_idr_rate: float | None, invoice_totals_idr: list[int]
) -> Runway:
    """Months of runway against the latest and the averaged recent invoices.

    ``invoice_totals_idr`` is newest first and holds at most three entries.
    """

    if not invoice_totals_idr or not usd_idr_rate:
        return Runway()

    balance_idr = balance_usd_cents * usd_idr_rate / 100
    last_month = invoice_totals_idr[0]
    average = round(sum(invoice_totals_idr) / len(invoice_totals_idr))
    return Runway(
        last_month_invoice_idr=last_month,
        three_month_average_idr=average,
        runway_last_month=round(balance_idr / last_month, 1) if last_month > 0 else None,
        runway_three_month=round(balance_idr / average, 1) if average > 0 else None,
    )


def banking_overview(session: Session, *, page: int = 1, limit: int = 25) -> dict[str, Any]:
    page = max(1, page)
    limit = min(100, max(1, limit))

    accounts = (
        session.query(BankAccount)
        .order_by(BankAccount.provider.asc(), BankAccount.currency.asc())
        .all()
    )
    rate = get_usd_idr_rate(session)
    balance = combined_balance_usd_cents(accounts, rate)

    total = session.query(func.count(BankTransaction.id)).scalar() or 0
    transactions = (
        session.query(BankTransaction, BankAccount.provider, BankAccount.name)
        .outerjoin(BankAccount, BankAccount.id == BankTransaction.bank_account_id)
        .order_by(BankTransaction.transaction_date.desc(), BankTransaction.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    recent_totals = [
        int(amount)
        for (amount,) in session.query(Invoice.total_amount_idr)
        .filter(Invoice.status == "final")
        .order_by(Invoice.period_start.desc())
        .limit(3)
        .all()
    ]

    return {
        "accounts": accounts,
        "combined_balance_usd_cents": balance,
        "exchange_rate": {
            "usd_idr": rate,
            "updated_at": get_setting(session, EXCHANGE_RATE_UPDATED_KEY),
        },
        "transactions": [
            {
                "id": txn.id,
                "bank_account_id": txn.bank_account_id,
                "external_id": txn.external_id,
                "transaction_date": txn.transaction_date,
                "description": txn.description,
                "amount_cents": txn.amount_cents,
                "currency": txn.currency,
                "status": txn.status,
                "counterparty": txn.counterparty,
                "provider": provider,
                "account_name": account_name,
            }
            for txn, provider, account_name in transactions
        ],
        "total_transactions": int(total),
        "page": page,
        "limit": limit,
        "runway": calculate_runway(balance, rate, recent_totals),
    }


__all__ = [
    "EXCHANGE_RATE_UPDATED_KEY",
    "Runway",
    "USD_IDR_RATE_KEY",
    "banking_overview",
    "calculate_runway",
    "combined_balance_usd_cents",
    "get_setting",
    "get_usd_idr_rate",
    "set_setting",
]
