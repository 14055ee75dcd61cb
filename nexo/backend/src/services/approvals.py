"""Approval request lifecycle.

``Pending`` and ``InfoRequested`` requests can be approved, rejected or sent
back for more information; ``Approved`` and ``Rejected`` are terminal.

Every decision claims the row with a compare-and-set ``UPDATE ... WHERE
status IN (Pending, InfoRequested)`` inside the decision's transaction. The
status read before that statement is only used for an early, friendlier
refusal: when two approvers race, the database lets exactly one update
match and the other gets the same "not in a decidable state" failure.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

import structlog
from sqlalchemy import delete, update
from sqlalchemy.orm import Session, selectinload

from ..core.enums import (
    APPROVAL_TYPE_LABELS,
    DECIDABLE_APPROVAL_STATUSES,
    ApprovalRequestType,
    ApprovalStatus,
    InstallmentStatus,
    PaymentType,
)
from ..core.errors import NotFoundError, PermissionDeniedError, StateConflictError
from ..core.redis_cache import APPROVALS_VIEW, DASHBOARD_VIEW, invalidate_views
from ..models import (
    ApprovalActivityLogEntry,
    ApprovalRequest,
    Attachment,
    PaymentInstallment,
    User,
)
from ..schemas.approval import (
    APPROVAL_REQUEST_CREATE_ADAPTER,
    ApprovePayload,
    DecisionCommentPayload,
    InstallmentStatusUpdate,
    PurchaseRequestCreate,
)
from ..schemas.common import VALIDATION_FAILED, ActionResult
from .actions import action_boundary
from .audit import record_audit_event
from .display_ids import (
    APPROVAL_REQUEST_ENTITY,
    ATTACHMENT_ENTITY,
    PAYMENT_INSTALLMENT_ENTITY,
    allocate_display_id,
)
from .metrics import approval_decisions_total
from .notifications import DEFAULT_PRIORITY, ELEVATED_PRIORITY, send_notification

LOGGER = structlog.get_logger(__name__)

NOT_DECIDABLE_MESSAGE = "The request is not in a decidable state."

ACTION_CREATED = "Request Created"
ACTION_APPROVED = "Request Approved"
ACTION_REJECTED = "Request Rejected"
ACTION_INFO_REQUESTED = "Information Requested"

_DECIDABLE_VALUES = tuple(status.value for status in DECIDABLE_APPROVAL_STATUSES)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_approver(actor: User) -> None:
    if not actor.is_approver:
        raise PermissionDeniedError("Only approvers can decide approval requests.")


def _get_request_or_404(session: Session, request_id: int) -> ApprovalRequest:
    request = session.get(ApprovalRequest, request_id)
    if request is None:
        raise NotFoundError("Approval request not found.")
    return request


def _ensure_decidable(request: ApprovalRequest) -> None:
    if request.status not in _DECIDABLE_VALUES:
        raise StateConflictError(NOT_DECIDABLE_MESSAGE)


def _claim_for_decision(session: Session, request_id: int, values: dict[str, Any]) -> None:
    """Apply ``values`` only if the row is still decidable."""

    result = session.execute(
        update(ApprovalRequest)
        .where(
            ApprovalRequest.id == request_id,
            ApprovalRequest.status.in_(_DECIDABLE_VALUES),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise StateConflictError(NOT_DECIDABLE_MESSAGE)


def _log_activity(
    session: Session,
    request_id: int,
    actor: User,
    action: str,
    comment: str | None,
) -> None:
    session.add(
        ApprovalActivityLogEntry(
            approval_request_id=request_id,
            action=action,
            user_id=actor.id,
            user_name=actor.name,
            comment=comment,
        )
    )


def _after_approval_change() -> None:
    invalidate_views(APPROVALS_VIEW, DASHBOARD_VIEW)


def _days_overdue(due_date: date, today: date) -> int:
    return max((today - due_date).days, 0)


def recompute_payment_tracking(session: Session, request: ApprovalRequest) -> None:
    """Refresh the paid/remaining/next-due summary kept on the request row."""

    installments = (
        session.query(PaymentInstallment)
        .filter(PaymentInstallment.approval_request_id == request.id)
        .order_by(PaymentInstallment.due_date, PaymentInstallment.id)
        .all()
    )
    if not installments:
        request.total_paid_amount = 0.0
        if request.approved_payment_type == PaymentType.FULL_PAYMENT.value:
            request.remaining_amount = request.approved_amount or 0.0
        else:
            request.remaining_amount = 0.0
        request.next_due_date = None
        request.has_overdue_payments = False
        return

    paid = InstallmentStatus.PAID.value
    request.total_paid_amount = round(
        sum(item.amount for item in installments if item.status == paid), 2
    )
    request.remaining_amount = round(
        sum(item.amount for item in installments if item.status != paid), 2
    )
    request.next_due_date = next(
        (
            item.due_date
            for item in installments
            if item.status == InstallmentStatus.PENDING.value
        ),
        None,
    )
    request.has_overdue_payments = any(
        item.status == InstallmentStatus.OVERDUE.value for item in installments
    )


@action_boundary("approval_request_create")
def create_approval_request(session: Session, actor: User, payload: dict) -> ActionResult:
    """Create a Purchase or ProviderPayment request in ``Pending``."""

    data = APPROVAL_REQUEST_CREATE_ADAPTER.validate_python(payload)

    request = ApprovalRequest(
        display_id=allocate_display_id(session, APPROVAL_REQUEST_ENTITY),
        type=data.type,
        subject=data.subject,
        description=data.description,
        status=ApprovalStatus.PENDING.value,
        requester_id=actor.id,
        requester_name=actor.name,
        requester_email=actor.email,
        total_paid_amount=0.0,
        remaining_amount=0.0,
    )
    if isinstance(data, PurchaseRequestCreate):
        request.item_description = data.item_description
        request.estimated_price = data.estimated_price
        request.supplier = data.supplier
    else:
        request.supplier = data.supplier
        request.total_amount_to_pay = data.total_amount_to_pay
    session.add(request)
    session.flush()

    for attachment in data.attachments:
        session.add(
            Attachment(
                display_id=allocate_display_id(session, ATTACHMENT_ENTITY),
                file_name=attachment.file_name,
                size=attachment.size,
                content_type=attachment.content_type,
                storage_key=attachment.storage_key,
                approval_request_id=request.id,
                uploaded_by_id=actor.id,
            )
        )
    _log_activity(session, request.id, actor, ACTION_CREATED, "Request created.")
    session.commit()
    LOGGER.info(
        "approval_request_created",
        request_id=request.id,
        display_id=request.display_id,
        type=request.type,
    )

    type_label = APPROVAL_TYPE_LABELS.label(request.type)
    record_audit_event(
        actor.email,
        f"Approval Request Created ({request.type})",
        f"Request {request.display_id}: {request.subject}",
    )
    send_notification(
        f"{actor.name} submitted '{request.subject}' for approval.",
        title=f"New approval request {request.display_id} ({type_label})",
        priority=DEFAULT_PRIORITY,
        tags=["approval"],
    )
    _after_approval_change()
    return ActionResult.ok(
        f"Approval request {request.display_id} created.",
        entity_id=request.id,
        display_id=request.display_id,
    )


@action_boundary("approval_request_approve")
def approve_request(
    session: Session, actor: User, request_id: int, payload: dict
) -> ActionResult:
    """Approve a request, replacing any stored installment plan atomically."""

    _require_approver(actor)
    data = ApprovePayload.model_validate(payload)
    request = _get_request_or_404(session, request_id)
    _ensure_decidable(request)

    is_payment = request.type == ApprovalRequestType.PROVIDER_PAYMENT.value
    if not is_payment and data.has_payment_terms:
        return ActionResult.failure(
            VALIDATION_FAILED,
            errors={"approved_payment_type": ["Purchase requests do not take payment terms."]},
        )
    if is_payment and data.approved_payment_type is None:
        return ActionResult.failure(
            VALIDATION_FAILED,
            errors={"approved_payment_type": ["A payment type is required for provider payments."]},
        )

    now = _utcnow()
    values: dict[str, Any] = {
        "status": ApprovalStatus.APPROVED.value,
        "approver_id": actor.id,
        "approver_name": actor.name,
        "approver_comment": data.comment,
        "approved_at": now,
        "updated_at": now,
    }
    if is_payment:
        values["approved_payment_type"] = data.approved_payment_type.value
        values["approved_amount"] = data.approved_amount
    _claim_for_decision(session, request.id, values)
    session.expire(request)

    if is_payment:
        session.execute(
            delete(PaymentInstallment)
            .where(PaymentInstallment.approval_request_id == request.id)
            .execution_options(synchronize_session=False)
        )
        if data.approved_payment_type is PaymentType.INSTALLMENTS:
            for installment in sorted(data.installments, key=lambda item: item.due_date):
                session.add(
                    PaymentInstallment(
                        display_id=allocate_display_id(session, PAYMENT_INSTALLMENT_ENTITY),
                        approval_request_id=request.id,
                        amount=installment.amount,
                        due_date=installment.due_date,
                        status=InstallmentStatus.PENDING.value,
                        days_overdue=0,
                    )
                )
        session.flush()
        recompute_payment_tracking(session, request)

    _log_activity(
        session,
        request.id,
        actor,
        ACTION_APPROVED,
        data.comment or "Approved without additional comments.",
    )
    session.commit()
    approval_decisions_total.labels(decision="approved").inc()
    LOGGER.info("approval_request_approved", request_id=request.id, approver_id=actor.id)

    record_audit_event(
        actor.email,
        "Approval Request Approved",
        f"Request {request.display_id}, approver {actor.name}. Comment: {data.comment or 'N/A'}.",
    )
    send_notification(
        f"{actor.name} approved '{request.subject}'.",
        title=f"Request {request.display_id} approved",
        priority=DEFAULT_PRIORITY,
        tags=["approval", "white_check_mark"],
    )
    _after_approval_change()
    return ActionResult.ok(
        "Request approved.", entity_id=request.id, display_id=request.display_id
    )


def _decide_with_comment(
    session: Session,
    actor: User,
    request_id: int,
    payload: dict,
    *,
    status: ApprovalStatus,
    stamp_field: str,
    action: str,
    decision: str,
    message: str,
    priority: int,
) -> ActionResult:
    _require_approver(actor)
    data = DecisionCommentPayload.model_validate(payload)
    request = _get_request_or_404(session, request_id)
    _ensure_decidable(request)

    now = _utcnow()
    _claim_for_decision(
        session,
        request.id,
        {
            "status": status.value,
            "approver_id": actor.id,
            "approver_name": actor.name,
            "approver_comment": data.comment,
            stamp_field: now,
            "updated_at": now,
        },
    )
    session.expire(request)
    _log_activity(session, request.id, actor, action, data.comment)
    session.commit()
    approval_decisions_total.labels(decision=decision).inc()
    LOGGER.info(f"approval_request_{decision}", request_id=request.id, approver_id=actor.id)

    record_audit_event(
        actor.email,
        f"Approval {action}",
        f"Request {request.display_id}, approver {actor.name}. Comment: {data.comment}",
    )
    send_notification(
        f"{actor.name}: {data.comment}",
        title=f"Request {request.display_id}: {action.lower()}",
        priority=priority,
        tags=["approval", decision],
    )
    _after_approval_change()
    return ActionResult.ok(message, entity_id=request.id, display_id=request.display_id)


@action_boundary("approval_request_reject")
def reject_request(
    session: Session, actor: User, request_id: int, payload: dict
) -> ActionResult:
    return _decide_with_comment(
        session,
        actor,
        request_id,
        payload,
        status=ApprovalStatus.REJECTED,
        stamp_field="rejected_at",
        action=ACTION_REJECTED,
        decision="rejected",
        message="Request rejected.",
        priority=ELEVATED_PRIORITY,
    )


@action_boundary("approval_request_info")
def request_more_info(
    session: Session, actor: User, request_id: int, payload: dict
) -> ActionResult:
    return _decide_with_comment(
        session,
        actor,
        request_id,
        payload,
        status=ApprovalStatus.INFO_REQUESTED,
        stamp_field="info_requested_at",
        action=ACTION_INFO_REQUESTED,
        decision="info_requested",
        message="More information was requested.",
        priority=DEFAULT_PRIORITY,
    )


def refresh_overdue_installments(
    session: Session,
    *,
    request_id: int | None = None,
    today: date | None = None,
) -> int:
    """Mark past-due pending installments as Overdue and refresh day counts.

    Returns the number of installments that changed. Commits when anything
    changed.
    """

    today = today or date.today()
    query = session.query(PaymentInstallment).filter(
        PaymentInstallment.status.in_(
            (InstallmentStatus.PENDING.value, InstallmentStatus.OVERDUE.value)
        ),
        PaymentInstallment.due_date < today,
    )
    if request_id is not None:
        query = query.filter(PaymentInstallment.approval_request_id == request_id)

    changed = 0
    touched_requests: set[int] = set()
    for installment in query.all():
        days = _days_overdue(installment.due_date, today)
        if installment.status == InstallmentStatus.OVERDUE.value and installment.days_overdue == days:
            continue
        installment.status = InstallmentStatus.OVERDUE.value
        installment.days_overdue = days
        touched_requests.add(installment.approval_request_id)
        changed += 1

    if not changed:
        return 0

    session.flush()
    for touched_id in touched_requests:
        request = session.get(ApprovalRequest, touched_id)
        if request is not None:
            recompute_payment_tracking(session, request)
    session.commit()
    LOGGER.info("installments_marked_overdue", count=changed, requests=len(touched_requests))
    return changed


@action_boundary("installment_status_update")
def update_installment_status(
    session: Session,
    actor: User,
    installment_id: int,
    payload: dict,
    *,
    today: date | None = None,
) -> ActionResult:
    """Track payment of one installment; amounts are never changed here."""

    _require_approver(actor)
    data = InstallmentStatusUpdate.model_validate(payload)
    installment = session.get(PaymentInstallment, installment_id)
    if installment is None:
        raise NotFoundError("Installment not found.")
    request = _get_request_or_404(session, installment.approval_request_id)
    if request.status != ApprovalStatus.APPROVED.value:
        raise StateConflictError("Installments can only be tracked on approved requests.")

    today = today or date.today()
    installment.status = data.status.value
    installment.paid_at = _utcnow() if data.status is InstallmentStatus.PAID else None
    installment.days_overdue = (
        _days_overdue(installment.due_date, today)
        if data.status is InstallmentStatus.OVERDUE
        else 0
    )
    session.flush()
    recompute_payment_tracking(session, request)
    request.updated_at = _utcnow()
    session.commit()

    record_audit_event(
        actor.email,
        "Installment Status Updated",
        f"Installment {installment.display_id} of {request.display_id} -> {installment.status}",
    )
    _after_approval_change()
    return ActionResult.ok(
        f"Installment {installment.display_id} marked {installment.status}.",
        entity_id=installment.id,
        display_id=installment.display_id,
    )


def can_view_request(actor: User, request: ApprovalRequest) -> bool:
    return actor.is_approver or request.requester_id == actor.id


def list_approval_requests(session: Session, actor: User) -> list[ApprovalRequest]:
    """Approvers see the decision queue; everyone else sees their own requests."""

    query = session.query(ApprovalRequest)
    if actor.is_approver:
        query = query.filter(ApprovalRequest.status.in_(_DECIDABLE_VALUES))
    else:
        query = query.filter(ApprovalRequest.requester_id == actor.id)
    return query.order_by(ApprovalRequest.created_at.desc(), ApprovalRequest.id.desc()).all()


def get_approval_request(
    session: Session,
    request_id: int,
    *,
    actor: User | None = None,
    today: date | None = None,
) -> ApprovalRequest | None:
    """Return a request with attachments, activity and installments loaded.

    When ``actor`` is given, requests they may not see come back as ``None``
    before any overdue state is written.
    """

    request = session.get(ApprovalRequest, request_id)
    if request is None or (actor is not None and not can_view_request(actor, request)):
        return None
    refresh_overdue_installments(session, request_id=request_id, today=today)
    return (
        session.query(ApprovalRequest)
        .options(
            selectinload(ApprovalRequest.attachments),
            selectinload(ApprovalRequest.activity_log),
            selectinload(ApprovalRequest.installments),
        )
        .filter(ApprovalRequest.id == request_id)
        .populate_existing()
        .one_or_none()
    )


def list_installments(
    session: Session, *, overdue_only: bool = False, today: date | None = None
) -> list[PaymentInstallment]:
    refresh_overdue_installments(session, today=today)
    query = session.query(PaymentInstallment)
    if overdue_only:
        query = query.filter(PaymentInstallment.status == InstallmentStatus.OVERDUE.value)
    return query.order_by(PaymentInstallment.due_date.desc(), PaymentInstallment.id.desc()).all()


__all__ = [
    "NOT_DECIDABLE_MESSAGE",
    "approve_request",
    "can_view_request",
    "create_approval_request",
    "get_approval_request",
    "list_approval_requests",
    "list_installments",
    "recompute_payment_tracking",
    "refresh_overdue_installments",
    "reject_request",
    "request_more_info",
    "update_installment_status",
]
