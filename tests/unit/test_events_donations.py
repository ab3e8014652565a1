"""Tests for the events board and donation reporting."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from transforme.db import session_scope
from transforme.models import Donation


def test_event_lifecycle(client: TestClient, admin_id: int, orphanage_id: str) -> None:
    created = client.post(
        "/api/admin/events",
        json={
            "title": "Sports day",
            "description": "Games with the kids",
            "event_date": "2024-05-01",
            "orphanage_id": orphanage_id,
        },
    )
    assert created.status_code == 201, created.text
    event = created.json()
    assert event["created_by_id"] == admin_id
    assert event["active"] is True

    client.post("/api/admin/events", json={"title": "Undated", "description": "Someday"})
    titles = [row["title"] for row in client.get("/api/admin/events").json()["events"]]
    assert titles == ["Sports day", "Undated"]

    updated = client.put(f"/api/admin/events/{event['id']}", json={"active": False, "title": None})
    assert updated.status_code == 200
    assert updated.json()["active"] is False
    assert updated.json()["title"] == "Sports day"

    assert client.delete(f"/api/admin/events/{event['id']}").json() == {"success": True}
    assert client.put(f"/api/admin/events/{event['id']}", json={"active": True}).status_code == 404


def test_event_validation(client: TestClient, admin_id: int) -> None:
    bad_date = client.post(
        "/api/admin/events",
        json={"title": "Trip", "description": "Beach", "event_date": "01/05/2024"},
    )
    assert bad_date.status_code == 400
    assert bad_date.json()["detail"] == "Must be YYYY-MM-DD"

    unknown = client.post(
        "/api/admin/events",
        json={"title": "Trip", "description": "Beach", "orphanage_id": "missing"},
    )
    assert unknown.status_code == 404


def test_donor_manager_can_view_but_not_manage_events(
    client: TestClient, make_user, login
) -> None:
    login(make_user("donors@example.com", ["donor_manager"]))

    assert client.get("/api/admin/events").status_code == 200
    response = client.post("/api/admin/events", json={"title": "Trip", "description": "Beach"})
    assert response.status_code == 403


@pytest.fixture()
def donations() -> None:
    def stamp(day: int) -> datetime:
        return datetime(2024, 3, day, 10, 0, tzinfo=timezone.utc)

    with session_scope() as session:
        session.add_all(
            [
                Donation(donor_email="a@example.com", amount=5000, frequency="monthly", status="completed", created_at=stamp(1)),
                Donation(donor_email="a@example.com", amount=5000, frequency="monthly", status="completed", created_at=stamp(2)),
                Donation(donor_email="b@example.com", amount=20000, frequency="one_time", status="completed", created_at=stamp(3)),
                Donation(donor_email="c@example.com", amount=100000, currency="idr", frequency="yearly", status="completed", created_at=stamp(4)),
                Donation(donor_email="d@example.com", amount=9999, frequency="one_time", status="failed", created_at=stamp(5)),
            ]
        )


def test_donation_list_filters(client: TestClient, admin_id: int, donations: None) -> None:
    everything = client.get("/api/admin/donations").json()
    assert everything["pagination"]["total"] == 5
    assert everything["donations"][0]["donor_email"] == "d@example.com"

    monthly = client.get("/api/admin/donations", params={"frequency": "monthly"}).json()
    assert monthly["pagination"]["total"] == 2

    failed = client.get("/api/admin/donations", params={"status": "failed"}).json()
    assert [row["amount"] for row in failed["donations"]] == [9999]

    paged = client.get("/api/admin/donations", params={"limit": 2, "page": 3}).json()
    assert len(paged["donations"]) == 1
    assert paged["pagination"]["total_pages"] == 3


def test_donation_frequency_must_be_known(client: TestClient, admin_id: int) -> None:
    assert client.get("/api/admin/donations", params={"frequency": "weekly"}).status_code == 400


def test_donation_stats_count_completed_only(
    client: TestClient, admin_id: int, donations: None
) -> None:
    stats = client.get("/api/admin/donations/stats").json()

    assert stats["total_raised"] == 130000
    assert stats["total_donations"] == 4
    assert stats["recurring_total"] == 110000
    assert stats["recurring_count"] == 3
    assert stats["one_time_total"] == 20000
    assert stats["one_time_count"] == 1
    assert stats["unique_donors"] == 3
    assert stats["totals_by_currency"] == {"usd": 30000, "idr": 100000}


def test_teacher_manager_cannot_see_donations(client: TestClient, make_user, login) -> None:
    login(make_user("teacher@example.com", ["teacher_manager"]))

    assert client.get("/api/admin/donations").status_code == 403
