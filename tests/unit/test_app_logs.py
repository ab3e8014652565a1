"""Tests for persisted application logs and the admin log viewer."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import pytest
import structlog
from fastapi.testclient import TestClient

from transforme.core import logging as app_logging
from transforme.core.config import Settings
from transforme.db import session_scope
from transforme.models import AppLog, CronRun
from transforme.services.app_logs import should_persist

CRON_HEADERS = {"Authorization": "Bearer cron-secret"}


def _add_log(level: str, source: str, message: str, created_at: datetime) -> None:
    with session_scope() as session:
        session.add(AppLog(level=level, source=source, message=message, created_at=created_at))


@pytest.mark.parametrize(
    ("level", "threshold", "expected"),
    [
        ("error", "warning", True),
        ("warning", "warning", True),
        ("info", "warning", False),
        ("critical", "ERROR", True),
        ("error", "off", False),
    ],
)
def test_should_persist(level: str, threshold: str, expected: bool) -> None:
    assert should_persist(level, threshold) is expected


def test_warning_events_are_written_to_app_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(app_logging, "get_settings", lambda: Settings(APP_LOG_LEVEL="warning"))
    logger = structlog.get_logger("transforme.tests")

    logger.info("routine_event")
    logger.warning("provider_slow", provider="wise", elapsed=timedelta(seconds=3))

    with session_scope() as session:
        rows = session.query(AppLog).all()
        assert len(rows) == 1
        row = rows[0]
        assert row.level == "warning"
        assert row.source == "transforme.tests"
        assert row.message == "provider_slow"
        assert row.meta == {"provider": "wise", "elapsed": "0:00:03"}


def test_list_logs_filters_and_paginates(client: TestClient, admin_id: int) -> None:
    now = datetime.now(timezone.utc)
    _add_log("error", "transforme.services.bank_sync", "bank_sync_failed", now - timedelta(hours=1))
    _add_log("error", "transforme.services.bank_sync", "bank_sync_failed", now - timedelta(days=3))
    _add_log("error", "transforme.api.cron", "cron_job_failed", now - timedelta(minutes=5))
    _add_log("warning", "transforme.services.bank_sync", "bank_sync_skipped", now)

    response = client.get(
        "/api/admin/logs",
        params={"level": "error", "source": "transforme.services.bank_sync", "limit": 1},
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["pagination"] == {"page": 1, "limit": 1, "total": 2, "total_pages": 2}
    assert data["logs"][0]["message"] == "bank_sync_failed"

    recent = client.get(
        "/api/admin/logs",
        params={"level": "error", "since": (now - timedelta(days=1)).isoformat()},
    ).json()
    assert [row["source"] for row in recent["logs"]] == [
        "transforme.api.cron",
        "transforme.services.bank_sync",
    ]

    assert client.get("/api/admin/logs").json()["pagination"]["limit"] == 50


def test_list_logs_rejects_oversized_page(client: TestClient, admin_id: int) -> None:
    assert client.get("/api/admin/logs", params={"limit": 201}).status_code == 400


def test_list_logs_requires_logs_permission(
    client: TestClient, make_user: Callable[..., int], login: Callable[[int], None]
) -> None:
    login(make_user("teacher@example.com", ["teacher_manager"]))

    assert client.get("/api/admin/logs").status_code == 403


def test_cleanup_logs_removes_rows_past_retention(client: TestClient) -> None:
    now = datetime.now(timezone.utc)
    _add_log("info", "transforme.api.cron", "old_event", now - timedelta(days=45))
    _add_log("info", "transforme.api.cron", "recent_event", now - timedelta(days=2))

    assert client.get("/api/cron/cleanup-logs").status_code == 401
    response = client.get("/api/cron/cleanup-logs", headers=CRON_HEADERS)

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["success"] is True
    assert body["total_items"] == 1
    assert body["message"].startswith("Cleaned up logs older than ")
    with session_scope() as session:
        assert [row.message for row in session.query(AppLog).all()] == ["recent_event"]
        run = session.query(CronRun).filter(CronRun.job_name == "cleanup-logs").one()
        assert run.status == "success"
        assert run.items_processed == 1
