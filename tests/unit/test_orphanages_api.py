"""Tests for orphanage management, geocoding and class groups."""

from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from transforme.services import orphanages as orphanage_service
from transforme.services.geocoding import GeocodingError, GeocodingResult, geocode_address

ORPHANAGE_PAYLOAD = {
    "name": "Bali Children's Home",
    "location": "Ubud, Bali",
    "description": "A home for thirty children",
    "student_count": 30,
    "classes_per_week": 4,
}


@pytest.fixture()
def fake_geocoder(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    calls: list[str] = []

    def _geocode(address: str) -> GeocodingResult | None:
        calls.append(address)
        if "nowhere" in address.lower():
            return None
        if "outage" in address.lower():
            raise GeocodingError("Geocoding service request failed: 503")
        return GeocodingResult(latitude=-8.5069, longitude=115.2625, display_name="Ubud, Bali, Indonesia")

    monkeypatch.setattr(orphanage_service, "geocode_address", _geocode)
    return calls


def test_slugify() -> None:
    assert orphanage_service.slugify("Bali Children's Home") == "bali-childrens-home"
    assert orphanage_service.slugify("  Panti Asuhan -- Kasih!  ") == "panti-asuhan-kasih"
    assert len(orphanage_service.slugify("x" * 80)) == 50


def test_create_orphanage_uses_slug_and_geocodes(
    client: TestClient, admin_id: int, fake_geocoder: list[str]
) -> None:
    response = client.post(
        "/api/admin/orphanages", json={**ORPHANAGE_PAYLOAD, "address": "Jl. Raya Ubud"}
    )

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["id"] == "bali-childrens-home"
    assert body["latitude"] == -8.5069
    assert body["class_groups"] == []
    assert fake_geocoder == ["Jl. Raya Ubud"]


def test_duplicate_name_gets_unique_id(client: TestClient, admin_id: int) -> None:
    first = client.post("/api/admin/orphanages", json=ORPHANAGE_PAYLOAD).json()
    second = client.post("/api/admin/orphanages", json=ORPHANAGE_PAYLOAD).json()

    assert first["id"] == "bali-childrens-home"
    assert second["id"].startswith("bali-childrens-home-")
    assert first["latitude"] is None


def test_create_requires_name(client: TestClient, admin_id: int) -> None:
    payload = {key: value for key, value in ORPHANAGE_PAYLOAD.items() if key != "name"}

    response = client.post("/api/admin/orphanages", json=payload)

    assert response.status_code == 400
    assert response.json()["detail"] == "name is required"


def test_update_keeps_image_when_omitted(
    client: TestClient, admin_id: int, orphanage_id: str
) -> None:
    client.put(
        f"/api/admin/orphanages/{orphanage_id}",
        json={**ORPHANAGE_PAYLOAD, "image_url": "https://media.example.org/a.jpg"},
    )

    response = client.put(
        f"/api/admin/orphanages/{orphanage_id}", json={**ORPHANAGE_PAYLOAD, "student_count": 31}
    )

    assert response.status_code == 200
    assert response.json()["image_url"] == "https://media.example.org/a.jpg"
    assert response.json()["student_count"] == 31


def test_geocode_endpoint_stores_coordinates(
    client: TestClient, admin_id: int, orphanage_id: str, fake_geocoder: list[str]
) -> None:
    response = client.post(
        f"/api/admin/orphanages/{orphanage_id}/geocode", json={"address": "Jl. Raya Ubud"}
    )

    assert response.status_code == 200
    assert response.json() == {
        "latitude": -8.5069,
        "longitude": 115.2625,
        "display_name": "Ubud, Bali, Indonesia",
    }
    stored = client.get(f"/api/admin/orphanages/{orphanage_id}").json()
    assert stored["address"] == "Jl. Raya Ubud"
    assert stored["longitude"] == 115.2625


def test_geocode_unresolvable_address(
    client: TestClient, admin_id: int, orphanage_id: str, fake_geocoder: list[str]
) -> None:
    response = client.post(
        f"/api/admin/orphanages/{orphanage_id}/geocode", json={"address": "Nowhere"}
    )

    assert response.status_code == 422
    assert response.json()["detail"].startswith("Could not geocode this address")


def test_geocoder_outage_is_bad_gateway(
    client: TestClient, admin_id: int, orphanage_id: str, fake_geocoder: list[str]
) -> None:
    response = client.post(
        f"/api/admin/orphanages/{orphanage_id}/geocode", json={"address": "Outage Street"}
    )

    assert response.status_code == 502
    stored = client.get(f"/api/admin/orphanages/{orphanage_id}").json()
    assert stored["latitude"] == -8.6705


def test_create_orphanage_survives_geocoder_outage(
    client: TestClient, admin_id: int, fake_geocoder: list[str]
) -> None:
    response = client.post(
        "/api/admin/orphanages", json={**ORPHANAGE_PAYLOAD, "address": "Outage Street"}
    )

    assert response.status_code == 201
    assert response.json()["latitude"] is None


def test_unknown_orphanage_is_404(client: TestClient, admin_id: int) -> None:
    assert client.get("/api/admin/orphanages/missing").status_code == 404


def test_donor_manager_cannot_edit(
    client: TestClient, make_user, login, orphanage_id: str
) -> None:
    login(make_user("donors@example.com", ["donor_manager"]))

    assert client.get("/api/admin/orphanages").status_code == 200
    assert client.post("/api/admin/orphanages", json=ORPHANAGE_PAYLOAD).status_code == 403


def test_geocode_address_parses_first_result() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["q"] == "Ubud"
        assert request.headers["User-Agent"]
        return httpx.Response(200, json=[{"lat": "-8.5", "lon": "115.26", "display_name": "Ubud"}])

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        result = geocode_address("  Ubud ", client=client)

    assert result == GeocodingResult(latitude=-8.5, longitude=115.26, display_name="Ubud")


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json=[]),
        httpx.Response(200, json=[{"lat": "north"}]),
    ],
)
def test_geocode_address_unresolved_returns_none(response: httpx.Response) -> None:
    with httpx.Client(transport=httpx.MockTransport(lambda request: response)) as client:
        assert geocode_address("Ubud", client=client) is None


def test_geocode_address_upstream_error_raises() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(503))) as client:
        with pytest.raises(GeocodingError):
            geocode_address("Ubud", client=client)
    with httpx.Client(transport=httpx.MockTransport(refuse)) as client:
        with pytest.raises(GeocodingError):
            geocode_address("Ubud", client=client)


def test_class_group_lifecycle(client: TestClient, admin_id: int, orphanage_id: str) -> None:
    created = client.post(
        "/api/admin/class-groups",
        json={"orphanage_id": orphanage_id, "name": "Juniors", "student_count": 12, "age_range": "6-9"},
    )
    assert created.status_code == 201, created.text
    group = created.json()
    assert group["sort_order"] == 0

    client.post(
        "/api/admin/class-groups",
        json={"orphanage_id": orphanage_id, "name": "Seniors", "student_count": 8, "sort_order": 1},
    )
    listed = client.get("/api/admin/class-groups", params={"orphanage_id": orphanage_id}).json()
    assert [row["name"] for row in listed["class_groups"]] == ["Juniors", "Seniors"]

    updated = client.put(
        f"/api/admin/class-groups/{group['id']}",
        json={"name": "Juniors A", "student_count": 14},
    )
    assert updated.status_code == 200
    assert updated.json()["name"] == "Juniors A"
    assert updated.json()["age_range"] is None

    orphanage = client.get(f"/api/admin/orphanages/{orphanage_id}").json()
    assert len(orphanage["class_groups"]) == 2

    assert client.delete(f"/api/admin/class-groups/{group['id']}").json() == {"success": True}
    assert client.delete(f"/api/admin/class-groups/{group['id']}").status_code == 404


def test_class_group_for_unknown_orphanage(client: TestClient, admin_id: int) -> None:
    response = client.post(
        "/api/admin/class-groups",
        json={"orphanage_id": "missing", "name": "Juniors", "student_count": 5},
    )
    assert response.status_code == 404
