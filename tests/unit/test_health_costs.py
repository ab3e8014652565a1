"""Tests for health probes, metrics and API cost tracking."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from transforme.api import health
from transforme.core.config import Settings

USAGE = {
    "use_case": "newsletter",
    "model": "gpt-4o",
    "input_tokens": 1_000_000,
    "output_tokens": 1_000_000,
    "metadata": {"issue": 12},
}


def test_health_probes(client: TestClient) -> None:
    assert client.get("/api/health/live").json() == {"status": "live"}
    assert client.get("/api/health/ready").json() == {
        "status": "ready",
        "database": "ok",
        "redis": "disabled",
        "storage": "local",
    }


class _FakeRedis:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error

    def ping(self) -> bool:
        if self.error is not None:
            raise self.error
        return True


@pytest.mark.parametrize(
    ("error", "status_code", "redis_status"),
    [(None, 200, "ok"), (RedisConnectionError("refused"), 503, "unavailable")],
)
def test_readiness_pings_redis_when_enabled(
    client: TestClient,
    monkeypatch: pytest.MonkeyPatch,
    error: Exception | None,
    status_code: int,
    redis_status: str,
) -> None:
    monkeypatch.setattr(health, "get_settings", lambda: Settings(REDIS_ENABLED=True))
    monkeypatch.setattr(
        health, "Redis", SimpleNamespace(from_url=lambda *args, **kwargs: _FakeRedis(error))
    )

    response = client.get("/api/health/ready")

    assert response.status_code == status_code
    assert response.json()["redis"] == redis_status
    assert response.json()["database"] == "ok"

def test_metrics_are_exposed(client: TestClient) -> None:
    response = client.get("/api/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")


def test_api_usage_requires_secret(client: TestClient) -> None:
    assert client.post("/api/admin/api-usage", json=USAGE).status_code == 401
    wrong = client.post(
        "/api/admin/api-usage", json=USAGE, headers={"Authorization": "Bearer nope"}
    )
    assert wrong.status_code == 401


def test_api_usage_is_recorded_and_summarized(client: TestClient, admin_id: int) -> None:
    response = client.post(
        "/api/admin/api-usage", json=USAGE, headers={"Authorization": "Bearer usage-secret"}
    )
    assert response.status_code == 200
    assert response.json() == {"success": True, "cost_cents": 1250}

    client.post(
        "/api/admin/api-usage",
        json={**USAGE, "use_case": "class_log_analysis", "model": "gpt-4o-mini"},
        headers={"Authorization": "Bearer usage-secret"},
    )

    summary = client.get("/api/admin/costs").json()
    assert summary["total_calls"] == 2
    assert summary["total_cost_cents"] == 1250 + 75
    assert [row["use_case"] for row in summary["by_use_case"]] == ["class_log_analysis", "newsletter"]
    assert summary["by_month"][0]["calls"] == 2
    assert len(summary["recent"]) == 2


def test_negative_tokens_are_rejected(client: TestClient) -> None:
    response = client.post(
        "/api/admin/api-usage",
        json={**USAGE, "input_tokens": -1},
        headers={"Authorization": "Bearer usage-secret"},
    )
    assert response.status_code == 400


def test_costs_are_admin_only(client: TestClient, make_user, login) -> None:
    login(make_user("teacher@example.com", ["teacher_manager"]))

    assert client.get("/api/admin/costs").status_code == 403
