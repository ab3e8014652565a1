"""Mercury and Wise account sync plus the USD to IDR exchange rate.

Accounts are upserted by external id; transactions are inserted once and
never rewritten, so repeated syncs are idempotent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any

import httpx
import structlog
from sqlalchemy.orm import Session

from transforme.core.config import get_settings
from transforme.models import BankAccount, BankTransaction
from transforme.services.banking import (
    EXCHANGE_RATE_UPDATED_KEY,
    USD_IDR_RATE_KEY,
    set_setting,
)
from transforme.services.metrics import bank_sync_items_total

LOGGER = structlog.get_logger(__name__)

WISE_STATEMENT_DAYS = 90


class BankSyncError(RuntimeError):
    """Raised when a provider's account listing cannot be fetched."""


@dataclass(slots=True)
class BankSyncSummary:
    total_items: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return bool(self.errors) and self.total_items == 0


def _to_cents(value: Any) -> int:
    return round(float(value or 0) * 100)


def _parse_date(raw: str | None) -> date:
    if raw:
        try:
            return date.fromisoformat(raw.split("T")[0])
        except ValueError:
            pass
    return datetime.now(timezone.utc).date()


def _upsert_account(
    session: Session,
    *,
    provider: str,
    external_id: str,
    name: str,
    currency: str,
    balance_cents: int,
) -> BankAccount:
    now = datetime.now(timezone.utc)
    account = (
        session.query(BankAccount).filter(BankAccount.external_id == external_id).one_or_none()
    )
    if account is None:
        account = BankAccount(
            provider=provider,
            external_id=external_id,
            name=name,
            currency=currency,
            balance_cents=balance_cents,
            last_synced_at=now,
        )
    else:
        account.name = name
        account.balance_cents = balance_cents
        account.last_synced_at = now
    session.add(account)
    session.flush()
    return account


def _insert_transaction(session: Session, account: BankAccount, **values: Any) -> bool:
    """Insert a transaction unless its external id is already stored."""

    exists = (
        session.query(BankTransaction.id)
        .filter(BankTransaction.external_id == values["external_id"])
        .first()
    )
    if exists:
        return False
    session.add(BankTransaction(bank_account_id=account.id, **values))
    session.flush()
    return True


def _get_json(client: httpx.Client, url: str, token: str, **params: Any) -> Any:
    response = client.get(url, headers={"Authorization": f"Bearer {token}"}, params=params or None)
    response.raise_for_status()
    return response.json()


# -------------------------------------------------------
# Mercury
# -------------------------------------------------------

def _mercury_status(raw: str | None) -> str:
    if raw in ("sent", "cancelled") or not raw:
        return "posted"
    return raw


def sync_mercury(session: Session, client: httpx.Client) -> int:
    settings = get_settings()
    token = settings.mercury_api_token
    if not token:
        LOGGER.warning("bank_sync_skipped", provider="mercury", reason="missing_token")
        return 0

    base_url = settings.mercury_api_url.rstrip("/")
    try:
        accounts = _get_json(client, f"{base_url}/accounts", token).get("accounts", [])
    except httpx.HTTPError as exc:
        raise BankSyncError(f"Mercury accounts request failed: {exc}") from exc

    items = 0
    for remote in accounts:
        if remote.get("status") != "active":
            continue
        currency = (remote.get("currency") or "USD").lower()
        account = _upsert_account(
            session,
            provider="mercury",
            external_id=str(remote["id"]),
            name=remote.get("name") or "Mercury Account",
            currency=currency,
            balance_cents=_to_cents(remote.get("currentBalance")),
        )
        try:
            payload = _get_json(
                client, f"{base_url}/account/{remote['id']}/transactions", token, limit=500
            )
        except httpx.HTTPError as exc:
            LOGGER.warning("mercury_transactions_failed", account=remote["id"], error=str(exc))
            continue

        for txn in payload.get("transactions", []):
            _insert_transaction(
                session,
                account,
                external_id=f"mercury-{txn['id']}",
                transaction_date=_parse_date(txn.get("postedDate")),
                description=txn.get("note") or txn.get("kind") or None,
                amount_cents=_to_cents(txn.get("amount")),
                currency=currency,
                status=_mercury_status(txn.get("status")),
                counterparty=txn.get("counterpartyName") or None,
            )
            items += 1

    session.commit()
    bank_sync_items_total.labels(provider="mercury").inc(items)
    LOGGER.info("bank_sync_completed", provider="mercury", items=items)
    return items


# -------------------------------------------------------
# Wise
# -------------------------------------------------------

def sync_wise(session: Session, client: httpx.Client, *, now: datetime | None = None) -> int:
    settings = get_settings()
    token, profile_id = settings.wise_api_token, settings.wise_profile_id
    if not token or not profile_id:
        LOGGER.warning("bank_sync_skipped", provider="wise", reason="missing_token")
        return 0

    now = now or datetime.now(timezone.utc)
    base_url = settings.wise_api_url.rstrip("/")
    try:
        balances = _get_json(
            client, f"{base_url}/v4/profiles/{profile_id}/balances", token, types="STANDARD"
        )
    except httpx.HTTPError as exc:
        raise BankSyncError(f"Wise balances request failed: {exc}") from exc

    interval_start = (now - timedelta(days=WISE_STATEMENT_DAYS)).strftime("%Y-%m-%dT00:00:00.000Z")
    interval_end = now.strftime("%Y-%m-%dT%H:%M:%S.000Z")

    items = 0
    for balance in balances:
        currency_code = balance["currency"]
        currency = currency_code.lower()
        account = _upsert_account(
            session,
            provider="wise",
            external_id=f"wise-{balance['id']}-{currency}",
            name=f"Wise {currency_code}",
            currency=currency,
            balance_cents=_to_cents((balance.get("amount") or {}).get("value")),
        )
        try:
            statement = _get_json(
                client,
                f"{base_url}/v3/profiles/{profile_id}/borderless-accounts/{balance['id']}/statement.json",
                token,
                currency=currency_code,
                intervalStart=interval_start,
                intervalEnd=interval_end,
            )
        except httpx.HTTPError as exc:
            LOGGER.warning("wise_statement_failed", balance=balance["id"], error=str(exc))
            continue

        for txn in statement.get("transactions") or []:
            details = txn.get("details") or {}
            merchant = txn.get("merchant") or {}
            _insert_transaction(
                session,
                account,
                external_id=f"wise-{txn['referenceNumber']}",
                transaction_date=_parse_date(txn.get("date")),
                description=details.get("description") or details.get("type") or None,
                amount_cents=_to_cents((txn.get("amount") or {}).get("value")),
                currency=currency,
                status="posted",
                counterparty=merchant.get("name") or None,
            )
            items += 1

    session.commit()
    bank_sync_items_total.labels(provider="wise").inc(items)
    LOGGER.info("bank_sync_completed", provider="wise", items=items)
    return items


# -------------------------------------------------------
# Exchange rate
# -------------------------------------------------------

def sync_exchange_rate(session: Session, client: httpx.Client) -> float | None:
    """Store the current USD to IDR rate; failures are logged and return ``None``."""

    try:
        response = client.get(get_settings().exchange_rate_url)
        response.raise_for_status()
        rate = (response.json().get("rates") or {}).get("IDR")
    except (httpx.HTTPError, ValueError) as exc:
        LOGGER.error("exchange_rate_sync_failed", error=str(exc))
        return None

    if not isinstance(rate, (int, float)) or isinstance(rate, bool) or rate <= 0:
        LOGGER.error("exchange_rate_sync_failed", error="IDR rate missing from response")
        return None

    set_setting(session, USD_IDR_RATE_KEY, str(rate))
    set_setting(session, EXCHANGE_RATE_UPDATED_KEY, datetime.now(timezone.utc).isoformat())
    session.commit()
    LOGGER.info("exchange_rate_synced", usd_idr=rate)
    return float(rate)


def run_bank_sync(session: Session, *, client: httpx.Client | None = None) -> BankSyncSummary:
    """Sync every provider then the exchange rate, collecting per-provider errors."""

    summary = BankSyncSummary()
    owned = client is None
    client = client or httpx.Client(timeout=30.0)
    try:
        for provider, sync in (("Mercury", sync_mercury), ("Wise", sync_wise)):
            try:
                summary.total_items += sync(session, client)
            except (BankSyncError, httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
                session.rollback()
                summary.errors.append(f"{provider}: {exc}")
                LOGGER.error("bank_sync_failed", provider=provider.lower(), error=str(exc))
        sync_exchange_rate(session, client)
    finally:
        if owned:
            client.close()
    return summary


__all__ = [
    "BankSyncError",
    "BankSyncSummary",
    "run_bank_sync",
    "sync_exchange_rate",
    "sync_mercury",
    "sync_wise",
]
