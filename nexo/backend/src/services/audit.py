"""Append-only audit trail.

Entries are written in their own session after the business transaction
has committed, so a failed audit write can never undo the action it
describes.
"""

from __future__ import annotations

import structlog
from sqlalchemy.orm import Session

from ..db import session_scope
from ..models import AuditLogEntry
from .display_ids import AUDIT_LOG_ENTITY, allocate_display_id

LOGGER = structlog.get_logger(__name__)

DEFAULT_AUDIT_LIMIT = 200


def record_audit_event(actor_email: str, action: str, details: str | None = None) -> None:
    """Append one audit entry; errors are logged and swallowed."""

    try:
        with session_scope() as session:
            session.add(
                AuditLogEntry(
                    display_id=allocate_display_id(session, AUDIT_LOG_ENTITY),
                    user_email=actor_email,
                    action=action,
                    details=details,
                )
            )
    except Exception as exc:
        LOGGER.error(
            "audit_log_write_failed",
            actor=actor_email,
            action=action,
            error=str(exc),
        )


def list_audit_events(session: Session, limit: int = DEFAULT_AUDIT_LIMIT) -> list[AuditLogEntry]:
    """Return the most recent audit entries, newest first."""

    return (
        session.query(AuditLogEntry)
        .order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc())
        .limit(limit)
        .all()
    )


__all__ = ["DEFAULT_AUDIT_LIMIT", "list_audit_events", "record_audit_event"]
