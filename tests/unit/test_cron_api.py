"""Tests for the scheduled job endpoints."""

from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from transforme.api import cron as cron_api
from transforme.db import session_scope
from transforme.models import CronRun
from transforme.services import bank_sync
from transforme.services.invoices import resolve_period

CRON_HEADERS = {"Authorization": "Bearer cron-secret"}


def _runs(job_name: str) -> list[CronRun]:
    with session_scope() as session:
        return session.query(CronRun).filter(CronRun.job_name == job_name).order_by(CronRun.id).all()


@pytest.mark.parametrize(
    "path",
    ["/api/cron/generate-invoice", "/api/cron/sync-bank-accounts", "/api/cron/cleanup-logs"],
)
def test_cron_requires_secret(client: TestClient, path: str) -> None:
    assert client.get(path).status_code == 401
    assert client.get(path, headers={"Authorization": "Bearer wrong"}).status_code == 401


def test_generate_invoice_runs_once_per_month(client: TestClient) -> None:
    _, _, invoice_number = resolve_period(None)

    first = client.get("/api/cron/generate-invoice", headers=CRON_HEADERS)
    assert first.status_code == 200, first.text
    assert first.json()["message"] == f"Generated {invoice_number}"

    second = client.get("/api/cron/generate-invoice", headers=CRON_HEADERS)
    assert second.status_code == 200
    assert second.json() == {
        "success": True,
        "message": f"Invoice {invoice_number} already exists",
        "total_items": 0,
        "errors": [],
    }

    assert [run.status for run in _runs("generate-invoice")] == ["success", "success"]
    assert all(run.finished_at is not None for run in _runs("generate-invoice"))


def test_sync_without_provider_tokens(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(503))
    monkeypatch.setattr(
        cron_api,
        "run_bank_sync",
        lambda session: bank_sync.run_bank_sync(session, client=httpx.Client(transport=transport)),
    )

    response = client.get("/api/cron/sync-bank-accounts", headers=CRON_HEADERS)

    assert response.status_code == 200
    assert response.json()["total_items"] == 0
    assert response.json()["success"] is True
    assert [run.status for run in _runs("sync-bank-accounts")] == ["success"]


def test_sync_failure_is_recorded(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        cron_api,
        "run_bank_sync",
        lambda session: bank_sync.BankSyncSummary(errors=["Mercury: boom"]),
    )

    response = client.get("/api/cron/sync-bank-accounts", headers=CRON_HEADERS)

    assert response.status_code == 502
    run = _runs("sync-bank-accounts")[0]
    assert run.status == "error"
    assert run.message == "Mercury: boom"


def test_partial_sync_is_recorded_as_error(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(
        cron_api,
        "run_bank_sync",
        lambda session: bank_sync.BankSyncSummary(total_items=4, errors=["Wise: timeout"]),
    )

    response = client.get("/api/cron/sync-bank-accounts", headers=CRON_HEADERS)

    assert response.status_code == 200
    assert response.json()["success"] is False
    run = _runs("sync-bank-accounts")[0]
    assert run.status == "error"
    assert run.message == "Partial sync. Errors: Wise: timeout"
    assert run.items_processed == 4


def test_unexpected_sync_exception_closes_run_as_error(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    def explode(session: object) -> bank_sync.BankSyncSummary:
        raise RuntimeError("database went away")

    monkeypatch.setattr(cron_api, "run_bank_sync", explode)

    with pytest.raises(RuntimeError):
        client.get("/api/cron/sync-bank-accounts", headers=CRON_HEADERS)

    run = _runs("sync-bank-accounts")[0]
    assert run.status == "error"
    assert run.message == "database went away"
    assert run.finished_at is not None


def test_invoice_generation_failure_closes_run_as_error(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    def explode(session: object) -> None:
        raise RuntimeError("pdf font missing")

    monkeypatch.setattr(cron_api, "generate_invoice", explode)

    with pytest.raises(RuntimeError):
        client.get("/api/cron/generate-invoice", headers=CRON_HEADERS)

    assert [run.status for run in _runs("generate-invoice")] == ["error"]
