"""Maintenance case actions."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy.orm import Session, selectinload

from ..core.enums import (
    MAINTENANCE_PRIORITY_LABELS,
    MAINTENANCE_STATUS_LABELS,
    MaintenancePriority,
    MaintenanceStatus,
)
from ..core.errors import NotFoundError
from ..core.redis_cache import DASHBOARD_VIEW, MAINTENANCE_VIEW, invalidate_views
from ..models import MaintenanceCase, MaintenanceLogEntry, User
from ..schemas.common import ActionResult
from ..schemas.maintenance import MaintenanceCaseCreate, MaintenanceCaseUpdate
from .actions import action_boundary
from .audit import record_audit_event
from .display_ids import MAINTENANCE_CASE_ENTITY, allocate_display_id
from .notifications import DEFAULT_PRIORITY, ELEVATED_PRIORITY, send_notification

LOGGER = structlog.get_logger(__name__)

ACTION_REGISTERED = "Case Registered"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _notification_priority(priority: str) -> int:
    if priority in (MaintenancePriority.HIGH.value, MaintenancePriority.CRITICAL.value):
        return ELEVATED_PRIORITY
    return DEFAULT_PRIORITY


@action_boundary("maintenance_case_create")
def create_maintenance_case(session: Session, actor: User, payload: dict) -> ActionResult:
    data = MaintenanceCaseCreate.model_validate(payload)
    case = MaintenanceCase(
        display_id=allocate_display_id(session, MAINTENANCE_CASE_ENTITY),
        title=data.title,
        description=data.description,
        location=data.location,
        equipment=data.equipment,
        priority=data.priority.value,
        assigned_provider_name=data.assigned_provider_name,
        current_status=MaintenanceStatus.REGISTERED.value,
        registered_by_user_id=actor.id,
        registered_by_user_name=actor.name,
        next_follow_up_date=data.next_follow_up_date,
    )
    session.add(case)
    session.flush()
    session.add(
        MaintenanceLogEntry(
            case_id=case.id,
            action=ACTION_REGISTERED,
            notes=f"Case registered and assigned to {data.assigned_provider_name}.",
            user_id=actor.id,
            user_name=actor.name,
            status_after_action=MaintenanceStatus.REGISTERED.value,
        )
    )
    session.commit()
    LOGGER.info("maintenance_case_created", case_id=case.id, display_id=case.display_id)

    record_audit_event(
        actor.email,
        "Maintenance Case Registered",
        f"Case {case.display_id}: {case.title}",
    )
    send_notification(
        f"{case.title} at {case.location}. Provider: {case.assigned_provider_name}. "
        f"Priority: {MAINTENANCE_PRIORITY_LABELS.label(case.priority)}.",
        title=f"New maintenance case {case.display_id}",
        priority=_notification_priority(case.priority),
        tags=["maintenance"],
    )
    invalidate_views(MAINTENANCE_VIEW, DASHBOARD_VIEW)
    return ActionResult.ok(
        "Maintenance case registered.", entity_id=case.id, display_id=case.display_id
    )


@action_boundary("maintenance_case_update")
def update_maintenance_case(
    session: Session, actor: User, case_id: int, payload: dict
) -> ActionResult:
    """Move a case to a new status and log the follow-up.

    Resolution fields are only kept while the case is Resolved.
    """

    data = MaintenanceCaseUpdate.model_validate(payload)
    case = session.get(MaintenanceCase, case_id)
    if case is None:
        raise NotFoundError("Maintenance case not found.")

    case.current_status = data.current_status.value
    case.assigned_provider_name = data.assigned_provider_name
    case.next_follow_up_date = data.next_follow_up_date
    case.last_follow_up_date = _utcnow()
    if data.current_status is MaintenanceStatus.RESOLVED:
        case.resolution_details = data.resolution_details
        case.cost = data.cost
        case.invoicing_details = data.invoicing_details
        case.resolved_at = data.resolved_at
    else:
        case.resolution_details = None
        case.cost = None
        case.invoicing_details = None
        case.resolved_at = None

    session.add(
        MaintenanceLogEntry(
            case_id=case.id,
            action=f"Status Update: {data.current_status.value}",
            notes=data.notes,
            user_id=actor.id,
            user_name=actor.name,
            status_after_action=data.current_status.value,
        )
    )
    session.commit()

    status_label = MAINTENANCE_STATUS_LABELS.label(data.current_status)
    record_audit_event(
        actor.email,
        f"Maintenance Case Updated: {data.current_status.value}",
        f"Case {case.display_id}. Notes: {data.notes}",
    )
    send_notification(
        f"{case.title}: {data.notes}",
        title=f"Maintenance case {case.display_id}: {status_label}",
        priority=_notification_priority(case.priority),
        tags=["maintenance"],
    )
    invalidate_views(MAINTENANCE_VIEW, DASHBOARD_VIEW)
    return ActionResult.ok(
        f"Maintenance case updated to {data.current_status.value}.",
        entity_id=case.id,
        display_id=case.display_id,
    )


def list_maintenance_cases(
    session: Session, *, status: MaintenanceStatus | None = None
) -> list[MaintenanceCase]:
    query = session.query(MaintenanceCase)
    if status is not None:
        query = query.filter(MaintenanceCase.current_status == status.value)
    return query.order_by(MaintenanceCase.registered_at.desc(), MaintenanceCase.id.desc()).all()


def get_maintenance_case(session: Session, case_id: int) -> MaintenanceCase | None:
    return (
        session.query(MaintenanceCase)
        .options(selectinload(MaintenanceCase.log))
        .filter(MaintenanceCase.id == case_id)
        .one_or_none()
    )


__all__ = [
    "create_maintenance_case",
    "get_maintenance_case",
    "list_maintenance_cases",
    "update_maintenance_case",
]
