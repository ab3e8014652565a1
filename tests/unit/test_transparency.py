"""API tests for quarterly transparency reports."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date

import pytest
from fastapi.testclient import TestClient

from transforme.db import session_scope
from transforme.models import ClassLog
from transforme.services.transparency import quarter_bounds


@pytest.fixture()
def class_logs(orphanage_id: str, make_user: Callable[..., int]) -> None:
    first = make_user("t1@example.com", ["teacher_manager"])
    second = make_user("t2@example.com", ["teacher_manager"])
    with session_scope() as session:
        session.add_all(
            [
                ClassLog(orphanage_id=orphanage_id, teacher_id=first, class_date=date(2024, 1, 9), student_count=10),
                ClassLog(orphanage_id=orphanage_id, teacher_id=second, class_date=date(2024, 3, 28), student_count=8),
                ClassLog(orphanage_id=orphanage_id, teacher_id=second, class_date=date(2024, 4, 2), student_count=30),
            ]
        )


def test_quarter_bounds() -> None:
    assert quarter_bounds(2024, 1) == (date(2024, 1, 1), date(2024, 3, 31))
    assert quarter_bounds(2024, 4) == (date(2024, 10, 1), date(2024, 12, 31))


def test_generate_publish_and_freeze_report(
    client: TestClient, admin_id: int, class_logs: None
) -> None:
    response = client.post(
        "/api/admin/transparency-reports/generate", json={"quarter": 1, "year": 2024}
    )

    assert response.status_code == 201, response.text
    report = response.json()
    assert report["title"] == "Transparency Report - Q1 2024"
    assert report["total_classes"] == 2
    assert report["total_students"] == 18
    assert report["total_teachers"] == 2
    assert report["orphanage_count"] == 1
    assert report["published"] is False
    assert "**Total Classes:** 2" in report["content"]

    duplicate = client.post(
        "/api/admin/transparency-reports/generate", json={"quarter": 1, "year": 2024}
    )
    assert duplicate.status_code == 409

    edited = client.put(
        f"/api/admin/transparency-reports/{report['id']}", json={"content": "# Q1\n\nGreat quarter."}
    )
    assert edited.status_code == 200
    assert edited.json()["content"] == "# Q1\n\nGreat quarter."

    published = client.post(f"/api/admin/transparency-reports/{report['id']}/publish")
    assert published.status_code == 200
    assert published.json()["published"] is True
    assert published.json()["published_at"] is not None

    again = client.post(f"/api/admin/transparency-reports/{report['id']}/publish")
    assert again.status_code == 400
    assert again.json()["detail"] == "Report is already published"

    frozen = client.put(f"/api/admin/transparency-reports/{report['id']}", json={"title": "New"})
    assert frozen.status_code == 400

    listing = client.get("/api/admin/transparency-reports")
    assert [entry["id"] for entry in listing.json()["reports"]] == [report["id"]]


def test_invalid_quarter_is_rejected(client: TestClient, admin_id: int) -> None:
    response = client.post(
        "/api/admin/transparency-reports/generate", json={"quarter": 5, "year": 2024}
    )
    assert response.status_code == 400


def test_teacher_manager_cannot_publish(
    client: TestClient,
    make_user: Callable[..., int],
    login: Callable[[int], None],
    class_logs: None,
) -> None:
    login(make_user("manager@example.com", ["teacher_manager"]))
    report = client.post(
        "/api/admin/transparency-reports/generate", json={"quarter": 2, "year": 2024}
    ).json()

    assert report["total_students"] == 30
    response = client.post(f"/api/admin/transparency-reports/{report['id']}/publish")
    assert response.status_code == 403
