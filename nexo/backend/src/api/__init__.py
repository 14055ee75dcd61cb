"""Public API routers exposed by the FastAPI application."""

from . import (
    admin_users,
    approvals,
    attachments,
    audit,
    failures,
    health,
    inventory,
    maintenance,
    meta,
    tickets,
)

__all__ = [
    "admin_users",
    "approvals",
    "attachments",
    "audit",
    "failures",
    "health",
    "inventory",
    "maintenance",
    "meta",
    "tickets",
]
