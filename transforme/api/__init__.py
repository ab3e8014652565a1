"""Public API routers exposed by the FastAPI application."""

from . import (
    admin_users,
    auth,
    banking,
    class_groups,
    class_logs,
    costs,
    cron,
    donations,
    donor,
    events,
    health,
    invoices,
    logs,
    orphanages,
    transparency,
    uploads,
)

__all__ = [
    "admin_users",
    "auth",
    "banking",
    "class_groups",
    "class_logs",
    "costs",
    "cron",
    "donations",
    "donor",
    "events",
    "health",
    "invoices",
    "logs",
    "orphanages",
    "transparency",
    "uploads",
]
