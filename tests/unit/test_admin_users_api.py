"""API tests for administrative user management endpoints."""

from __future__ import annotations

from collections.abc import Callable

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from transforme.core import security
from transforme.db import session_scope
from transforme.models import User


def test_current_user_includes_permissions(client: TestClient, admin_id: int) -> None:
    response = client.get("/api/auth/me")

    assert response.status_code == 200
    data = response.json()
    assert data["email"] == "admin@example.com"
    assert "invoices:edit" in data["permissions"]
    assert data["permissions"] == sorted(data["permissions"])


def test_invite_user_creates_invited_account(client: TestClient, admin_id: int) -> None:
    response = client.post(
        "/api/admin/users/invite",
        json={"email": "New.Teacher@Example.com", "roles": ["teacher_manager"]},
    )

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["email_sent"] is False
    assert data["user"]["email"] == "new.teacher@example.com"
    assert data["user"]["status"] == "invited"
    assert data["user"]["roles"] == ["teacher_manager"]

    listing = client.get("/api/admin/users")
    assert {user["email"] for user in listing.json()["users"]} == {
        "admin@example.com",
        "new.teacher@example.com",
    }


@pytest.mark.parametrize(
    ("status", "detail"),
    [
        ("active", "User is already active"),
        ("invited", "User has already been invited"),
        ("deactivated", "User exists but is deactivated. Reactivate them instead."),
    ],
)
def test_invite_existing_user_conflicts(
    client: TestClient,
    admin_id: int,
    make_user: Callable[..., int],
    status: str,
    detail: str,
) -> None:
    make_user("existing@example.com", ["donor_manager"], status=status)

    response = client.post(
        "/api/admin/users/invite",
        json={"email": "existing@example.com", "roles": ["donor_manager"]},
    )

    assert response.status_code == 409
    assert response.json()["detail"] == detail


def test_invite_rejects_unknown_role(client: TestClient, admin_id: int) -> None:
    response = client.post(
        "/api/admin/users/invite", json={"email": "x@example.com", "roles": ["janitor"]}
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid role: janitor"


def test_admin_cannot_remove_own_admin_role(client: TestClient, admin_id: int) -> None:
    response = client.patch(
        f"/api/admin/users/{admin_id}/roles", json={"roles": ["teacher_manager"]}
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "You cannot remove the admin role from yourself"


def test_update_roles_of_other_user(
    client: TestClient, admin_id: int, make_user: Callable[..., int]
) -> None:
    user_id = make_user("teacher@example.com", ["teacher_manager"])

    response = client.patch(
        f"/api/admin/users/{user_id}/roles", json={"roles": ["teacher_manager", "donor_manager"]}
    )

    assert response.status_code == 200
    assert response.json()["roles"] == ["teacher_manager", "donor_manager"]


def test_deactivate_user_rules(
    client: TestClient, admin_id: int, make_user: Callable[..., int]
) -> None:
    user_id = make_user("teacher@example.com", ["teacher_manager"])

    assert client.patch(f"/api/admin/users/{admin_id}/deactivate").status_code == 400
    response = client.patch(f"/api/admin/users/{user_id}/deactivate")
    assert response.status_code == 200
    assert response.json()["status"] == "deactivated"

    again = client.patch(f"/api/admin/users/{user_id}/deactivate")
    assert again.status_code == 400
    assert again.json()["detail"] == "User is already deactivated"


def test_teacher_manager_cannot_invite(
    client: TestClient, make_user: Callable[..., int], login: Callable[[int], None]
) -> None:
    login(make_user("teacher@example.com", ["teacher_manager"]))

    assert client.get("/api/admin/users").status_code == 200
    response = client.post(
        "/api/admin/users/invite", json={"email": "x@example.com", "roles": ["donor_manager"]}
    )
    assert response.status_code == 403


def test_first_login_activates_invited_user(make_user: Callable[..., int]) -> None:
    user_id = make_user("invitee@example.com", ["donor_manager"], status="invited")

    with session_scope() as session:
        user = security._resolve_user(
            session, {"sub": "auth0|abc", "email": "Invitee@example.com", "name": "Ina"}
        )
        assert user.id == user_id

    with session_scope() as session:
        user = session.get(User, user_id)
        assert user.status == "active"
        assert user.auth0_sub == "auth0|abc"
        assert user.name == "Ina"
        assert user.activated_at is not None


def test_uninvited_login_is_rejected() -> None:
    with session_scope() as session:
        with pytest.raises(HTTPException) as exc_info:
            security._resolve_user(session, {"sub": "auth0|zzz", "email": "stranger@example.com"})
    assert exc_info.value.status_code == 403
