"""Role to permission mapping for admin-portal users."""

from __future__ import annotations

from collections.abc import Iterable

ROLES: tuple[str, ...] = ("admin", "teacher_manager", "donor_manager")

_TEACHER_MANAGER: frozenset[str] = frozenset(
    {
        "users:view",
        "orphanages:view",
        "orphanages:edit",
        "class_logs:view_all",
        "class_logs:create",
        "class_logs:edit_own",
        "class_logs:edit_all",
        "class_logs:delete_own",
        "class_logs:delete_all",
        "events:view",
        "events:manage",
        "media:upload",
        "transparency:view",
        "transparency:generate",
    }
)

_DONOR_MANAGER: frozenset[str] = frozenset(
    {
        "orphanages:view",
        "class_logs:view_all",
        "events:view",
        "donations:view",
        "transparency:view",
    }
)

_ADMIN_ONLY: frozenset[str] = frozenset(
    {
        "users:invite",
        "users:deactivate",
        "donations:view",
        "transparency:publish",
        "invoices:view",
        "invoices:edit",
        "banking:view",
        "banking:sync",
        "costs:view",
        "logs:view",
    }
)

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    "admin": _TEACHER_MANAGER | _DONOR_MANAGER | _ADMIN_ONLY,
    "teacher_manager": _TEACHER_MANAGER,
    "donor_manager": _DONOR_MANAGER,
}

ALL_PERMISSIONS: frozenset[str] = ROLE_PERMISSIONS["admin"]


def is_valid_role(role: str) -> bool:
    return role in ROLE_PERMISSIONS


def get_permissions(roles: Iterable[str]) -> set[str]:
    """Return the union of permissions granted by ``roles``."""

    granted: set[str] = set()
    for role in roles or ():
        granted.update(ROLE_PERMISSIONS.get(role, ()))
    return granted


def has_permission(roles: Iterable[str], permission: str) -> bool:
    """Return ``True`` when any of ``roles`` grants ``permission``."""

    return permission in get_permissions(roles)


__all__ = [
    "ALL_PERMISSIONS",
    "ROLES",
    "ROLE_PERMISSIONS",
    "get_permissions",
    "has_permission",
    "is_valid_role",
]
