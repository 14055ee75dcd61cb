"""Equipment failure reports.

Every report carries an append-only log: creation, each status change and
each free-text note add one entry, and nothing ever edits or removes one.
Closed, duplicate and not-reproducible reports accept no further updates.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy.orm import Session, selectinload

from ..core.enums import (
    CLOSED_FAILURE_STATUSES,
    FAILURE_SEVERITY_LABELS,
    FAILURE_STATUS_LABELS,
    FailureSeverity,
    FailureStatus,
)
from ..core.errors import ActionError, NotFoundError, StateConflictError
from ..core.redis_cache import DASHBOARD_VIEW, FAILURES_VIEW, invalidate_views
from ..models import FailureLogEntry, FailureReport, InventoryItem, User
from ..schemas.common import ActionResult
from ..schemas.failure import FailureCreate, FailureNoteCreate, FailureUpdate
from .actions import action_boundary
from .audit import record_audit_event
from .display_ids import FAILURE_ENTITY, FAILURE_LOG_ENTITY, allocate_display_id
from .notifications import DEFAULT_PRIORITY, ELEVATED_PRIORITY, send_notification

LOGGER = structlog.get_logger(__name__)

ACTION_REPORTED = "Failure Reported"
ACTION_NOTE = "Note Added"

_CLOSED_VALUES = tuple(item.value for item in CLOSED_FAILURE_STATUSES)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _notification_priority(severity: str) -> int:
    if severity in (FailureSeverity.CRITICAL.value, FailureSeverity.HIGH.value):
        return ELEVATED_PRIORITY
    return DEFAULT_PRIORITY


def _get_failure_or_404(session: Session, failure_id: int) -> FailureReport:
    failure = session.get(FailureReport, failure_id)
    if failure is None:
        raise NotFoundError("Failure report not found.")
    return failure


def _get_assignee(session: Session, user_id: int | None) -> User | None:
    if user_id is None:
        return None
    assignee = session.get(User, user_id)
    if assignee is None or not assignee.is_active:
        raise NotFoundError("Assigned user not found.")
    return assignee


def _append_log(
    session: Session,
    failure: FailureReport,
    actor: User,
    action: str,
    details: str | None,
) -> FailureLogEntry:
    entry = FailureLogEntry(
        display_id=allocate_display_id(session, FAILURE_LOG_ENTITY),
        failure_id=failure.id,
        action=action,
        details=details,
        user_id=actor.id,
        user_name=actor.name,
        user_email=actor.email,
        status_after_action=failure.status,
    )
    session.add(entry)
    return entry


def _ensure_open(failure: FailureReport) -> None:
    if failure.status in _CLOSED_VALUES:
        raise StateConflictError(
            f"Failure {failure.display_id} is {failure.status} and cannot be updated."
        )


@action_boundary("failure_create")
def create_failure(session: Session, actor: User, payload: dict) -> ActionResult:
    data = FailureCreate.model_validate(payload)

    item = None
    if data.inventory_item_id is not None:
        item = session.get(InventoryItem, data.inventory_item_id)
        if item is None:
            raise NotFoundError("Inventory item not found.")
    equipment_name = data.equipment_name or (item.name if item else None)
    if not equipment_name:
        raise ActionError("Name the affected equipment or link an inventory item.")
    assignee = _get_assignee(session, data.assigned_to_user_id)

    failure = FailureReport(
        display_id=allocate_display_id(session, FAILURE_ENTITY),
        title=data.title,
        description=data.description,
        inventory_item_id=item.id if item else None,
        equipment_name=equipment_name,
        equipment_model=data.equipment_model or (item.model if item else None),
        equipment_serial_number=(
            data.equipment_serial_number or (item.serial_number if item else None)
        ),
        location=data.location,
        severity=data.severity.value,
        failure_type=data.failure_type.value,
        impact=data.impact,
        status=FailureStatus.REPORTED.value,
        reported_by_user_id=actor.id,
        reported_by_user_name=actor.name,
        assigned_to_user_id=assignee.id if assignee else None,
        assigned_to_user_name=assignee.name if assignee else None,
        detected_at=data.detected_at or _utcnow(),
    )
    session.add(failure)
    session.flush()
    details = f"Reported at {failure.location} on {failure.equipment_name}."
    if assignee is not None:
        details += f" Assigned to {assignee.name}."
    _append_log(session, failure, actor, ACTION_REPORTED, details)
    session.commit()
    LOGGER.info("failure_reported", failure_id=failure.id, display_id=failure.display_id)

    record_audit_event(
        actor.email,
        "Failure Reported",
        f"Failure {failure.display_id}: {failure.title}",
    )
    send_notification(
        f"{failure.equipment_name} at {failure.location}: {failure.title}. "
        f"Severity: {FAILURE_SEVERITY_LABELS.label(failure.severity)}.",
        title=f"New failure {failure.display_id}",
        priority=_notification_priority(failure.severity),
        tags=["failure"],
    )
    invalidate_views(FAILURES_VIEW, DASHBOARD_VIEW)
    return ActionResult.ok(
        "Failure reported.", entity_id=failure.id, display_id=failure.display_id
    )


@action_boundary("failure_update")
def update_failure(
    session: Session, actor: User, failure_id: int, payload: dict
) -> ActionResult:
    data = FailureUpdate.model_validate(payload)
    failure = _get_failure_or_404(session, failure_id)
    _ensure_open(failure)

    if data.assigned_to_user_id is not None:
        assignee = _get_assignee(session, data.assigned_to_user_id)
        failure.assigned_to_user_id = assignee.id
        failure.assigned_to_user_name = assignee.name
    failure.status = data.status.value
    failure.resolved_at = _utcnow() if data.status is FailureStatus.RESOLVED else None
    failure.updated_at = _utcnow()
    _append_log(session, failure, actor, f"Status Update: {data.status.value}", data.notes)
    session.commit()

    status_label = FAILURE_STATUS_LABELS.label(data.status)
    record_audit_event(
        actor.email,
        f"Failure Updated: {data.status.value}",
        f"Failure {failure.display_id}. Notes: {data.notes}",
    )
    send_notification(
        f"{failure.title}: {data.notes}",
        title=f"Failure {failure.display_id}: {status_label}",
        priority=_notification_priority(failure.severity),
        tags=["failure"],
    )
    invalidate_views(FAILURES_VIEW, DASHBOARD_VIEW)
    return ActionResult.ok(
        f"Failure updated to {data.status.value}.",
        entity_id=failure.id,
        display_id=failure.display_id,
    )


@action_boundary("failure_note_add")
def add_failure_note(
    session: Session, actor: User, failure_id: int, payload: dict
) -> ActionResult:
    data = FailureNoteCreate.model_validate(payload)
    failure = _get_failure_or_404(session, failure_id)
    _ensure_open(failure)

    failure.updated_at = _utcnow()
    entry = _append_log(session, failure, actor, ACTION_NOTE, data.notes)
    session.commit()

    invalidate_views(FAILURES_VIEW)
    return ActionResult.ok("Note added.", entity_id=entry.id, display_id=entry.display_id)


def list_failures(
    session: Session,
    *,
    status: FailureStatus | None = None,
    severity: FailureSeverity | None = None,
    location: str | None = None,
) -> list[FailureReport]:
    query = session.query(FailureReport)
    if status is not None:
        query = query.filter(FailureReport.status == status.value)
    if severity is not None:
        query = query.filter(FailureReport.severity == severity.value)
    if location:
        query = query.filter(FailureReport.location.ilike(f"%{location.strip()}%"))
    return query.order_by(FailureReport.created_at.desc(), FailureReport.id.desc()).all()


def get_failure(session: Session, failure_id: int) -> FailureReport | None:
    return (
        session.query(FailureReport)
        .options(selectinload(FailureReport.log))
        .filter(FailureReport.id == failure_id)
        .one_or_none()
    )


__all__ = [
    "ACTION_NOTE",
    "ACTION_REPORTED",
    "add_failure_note",
    "create_failure",
    "get_failure",
    "list_failures",
    "update_failure",
]
