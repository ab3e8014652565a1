"""Tests for bank sync, the banking overview and runway."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date

import httpx
import pytest
from fastapi.testclient import TestClient

from transforme.api import banking as banking_api
from transforme.core.config import Settings
from transforme.db import session_scope
from transforme.models import BankAccount, BankTransaction, Invoice
from transforme.services import bank_sync
from transforme.services.banking import (
    USD_IDR_RATE_KEY,
    calculate_runway,
    combined_balance_usd_cents,
    get_usd_idr_rate,
    set_setting,
)


def _bank_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if request.url.host == "open.er-api.com":
        return httpx.Response(200, json={"rates": {"IDR": 16000}})
    assert request.headers["Authorization"].startswith("Bearer ")
    if path == "/api/v1/accounts":
        return httpx.Response(
            200,
            json={
                "accounts": [
                    {
                        "id": "acc-1",
                        "status": "active",
                        "currency": "USD",
                        "name": "Operating",
                        "currentBalance": 1500.25,
                    },
                    {"id": "acc-2", "status": "archived", "currency": "USD", "name": "Old"},
                ]
            },
        )
    if path == "/api/v1/account/acc-1/transactions":
        return httpx.Response(
            200,
            json={
                "transactions": [
                    {
                        "id": "t1",
                        "postedDate": "2024-03-02T10:00:00Z",
                        "note": "Grant",
                        "kind": "externalTransfer",
                        "amount": 1000,
                        "status": "sent",
                        "counterpartyName": "Foundation",
                    },
                    {
                        "id": "t2",
                        "postedDate": None,
                        "note": "",
                        "kind": "debitCardTransaction",
                        "amount": -12.5,
                        "status": "pending",
                        "counterpartyName": "",
                    },
                ]
            },
        )
    if path == "/v4/profiles/42/balances":
        return httpx.Response(
            200, json=[{"id": 9, "currency": "IDR", "amount": {"value": 32000000}}]
        )
    if path == "/v3/profiles/42/borderless-accounts/9/statement.json":
        return httpx.Response(
            200,
            json={
                "transactions": [
                    {
                        "referenceNumber": "W-1",
                        "date": "2024-03-05T08:00:00Z",
                        "details": {"description": "Teacher payout"},
                        "amount": {"value": -3000000},
                        "merchant": {"name": "Bank Mandiri"},
                    }
                ]
            },
        )
    return httpx.Response(404, json={"error": "not found"})


@pytest.fixture()
def provider_settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    settings = Settings(
        MERCURY_API_TOKEN="mercury-token",
        WISE_API_TOKEN="wise-token",
        WISE_PROFILE_ID="42",
    )
    monkeypatch.setattr(bank_sync, "get_settings", lambda: settings)
    return settings


@pytest.fixture()
def mock_client() -> Iterator[httpx.Client]:
    client = httpx.Client(transport=httpx.MockTransport(_bank_handler))
    yield client
    client.close()


def test_combined_balance_converts_idr() -> None:
    accounts = [
        BankAccount(provider="mercury", external_id="a", name="A", currency="usd", balance_cents=150_000),
        BankAccount(provider="wise", external_id="b", name="B", currency="idr", balance_cents=3_200_000_000),
    ]

    assert combined_balance_usd_cents(accounts, 16000) == 150_000 + 200_000
    assert combined_balance_usd_cents(accounts, None) == 150_000


def test_runway_uses_latest_and_average_invoices() -> None:
    runway = calculate_runway(1_000_000, 16000, [40_000_000, 32_000_000, 24_000_000])

    assert runway.last_month_invoice_idr == 40_000_000
    assert runway.three_month_average_idr == 32_000_000
    assert runway.runway_last_month == 4.0
    assert runway.runway_three_month == 5.0


def test_runway_is_empty_without_rate_or_invoices() -> None:
    assert calculate_runway(1_000_000, None, [10]).runway_last_month is None
    assert calculate_runway(1_000_000, 16000, []).last_month_invoice_idr is None


def test_sync_stores_accounts_transactions_and_rate(
    provider_settings: Settings, mock_client: httpx.Client
) -> None:
    with session_scope() as session:
        summary = bank_sync.run_bank_sync(session, client=mock_client)

    assert summary.errors == []
    assert summary.total_items == 3
    with session_scope() as session:
        accounts = {account.external_id: account for account in session.query(BankAccount).all()}
        assert set(accounts) == {"acc-1", "wise-9-idr"}
        assert accounts["acc-1"].balance_cents == 150_025
        assert accounts["wise-9-idr"].currency == "idr"

        grant = session.query(BankTransaction).filter_by(external_id="mercury-t1").one()
        assert grant.status == "posted"
        assert grant.transaction_date == date(2024, 3, 2)
        assert grant.counterparty == "Foundation"
        card = session.query(BankTransaction).filter_by(external_id="mercury-t2").one()
        assert card.status == "pending"
        assert card.description == "debitCardTransaction"
        assert card.amount_cents == -1250
        assert get_usd_idr_rate(session) == 16000.0


def test_resync_does_not_duplicate_transactions(
    provider_settings: Settings, mock_client: httpx.Client
) -> None:
    with session_scope() as session:
        bank_sync.run_bank_sync(session, client=mock_client)
    with session_scope() as session:
        bank_sync.run_bank_sync(session, client=mock_client)
        assert session.query(BankTransaction).count() == 3
        assert session.query(BankAccount).count() == 2


def test_sync_without_tokens_skips_providers(
    monkeypatch: pytest.MonkeyPatch, mock_client: httpx.Client
) -> None:
    monkeypatch.setattr(bank_sync, "get_settings", lambda: Settings())

    with session_scope() as session:
        summary = bank_sync.run_bank_sync(session, client=mock_client)

    assert summary.total_items == 0
    assert not summary.failed


def test_provider_failure_is_reported(provider_settings: Settings) -> None:
    def failing(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.mercury.com":
            return httpx.Response(500)
        return _bank_handler(request)

    with httpx.Client(transport=httpx.MockTransport(failing)) as client:
        with session_scope() as session:
            summary = bank_sync.run_bank_sync(session, client=client)

    assert summary.total_items == 1
    assert len(summary.errors) == 1
    assert summary.errors[0].startswith("Mercury:")
    assert not summary.failed


def test_banking_overview_endpoint(client: TestClient, admin_id: int) -> None:
    with session_scope() as session:
        account = BankAccount(
            provider="mercury", external_id="acc-1", name="Operating", currency="usd", balance_cents=200_000
        )
        session.add(account)
        session.flush()
        session.add(
            BankTransaction(
                bank_account_id=account.id,
                external_id="mercury-t1",
                transaction_date=date(2024, 3, 2),
                amount_cents=100_000,
                currency="usd",
            )
        )
        set_setting(session, USD_IDR_RATE_KEY, "16000")
        for month, total in ((1, 16_000_000), (2, 32_000_000)):
            session.add(
                Invoice(
                    invoice_number=f"INV-2024-{month:02d}",
                    period_start=date(2024, month, 1),
                    period_end=date(2024, month, 28),
                    from_entity="TransforMe",
                    to_entity="Partner",
                    total_amount_idr=total,
                    status="final",
                )
            )
        session.add(
            Invoice(
                invoice_number="INV-2024-03",
                period_start=date(2024, 3, 1),
                period_end=date(2024, 3, 31),
                from_entity="TransforMe",
                to_entity="Partner",
                total_amount_idr=1,
                status="draft",
            )
        )

    response = client.get("/api/admin/banking")

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["combined_balance_usd_cents"] == 200_000
    assert body["exchange_rate"]["usd_idr"] == 16000.0
    assert body["transactions"][0]["provider"] == "mercury"
    assert body["pagination"]["total"] == 1
    assert body["runway"]["last_month_invoice_idr"] == 32_000_000
    assert body["runway"]["three_month_average_idr"] == 24_000_000
    assert body["runway"]["runway_last_month"] == 1.0


def test_manual_sync_endpoint(
    client: TestClient,
    admin_id: int,
    provider_settings: Settings,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    transport = httpx.MockTransport(_bank_handler)
    monkeypatch.setattr(
        banking_api,
        "run_bank_sync",
        lambda session: bank_sync.run_bank_sync(session, client=httpx.Client(transport=transport)),
    )

    response = client.post("/api/admin/banking/sync")

    assert response.status_code == 200, response.text
    assert response.json() == {"success": True, "total_items": 3, "errors": []}


def test_manual_sync_requires_permission(client: TestClient, make_user, login) -> None:
    login(make_user("teacher@example.com", ["teacher_manager"]))

    assert client.post("/api/admin/banking/sync").status_code == 403
