"""Approval request endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..core.security import get_current_user, require_approver_user
from ..db import get_session_dependency
from ..models import ApprovalRequest, PaymentInstallment, User
from ..schemas.approval import ApprovalRequestRead, ApprovalRequestSummary, InstallmentRead
from ..schemas.common import ActionResult
from ..services import approvals as approval_service
from .responses import action_response

router = APIRouter(prefix="/approvals", tags=["Approvals"])

SessionDep = Annotated[Session, Depends(get_session_dependency)]
ApproverDep = Annotated[User, Depends(require_approver_user)]


@router.get("", response_model=list[ApprovalRequestSummary])
def list_requests(
    session: SessionDep,
    user: Annotated[User, Depends(get_current_user)],
) -> list[ApprovalRequest]:
    """Approvers get the pending queue; requesters get their own requests."""

    return approval_service.list_approval_requests(session, user)


@router.post("", response_model=ActionResult)
def create_request(
    payload: Annotated[dict, Body()],
    session: SessionDep,
    user: Annotated[User, Depends(get_current_user)],
) -> JSONResponse:
    return action_response(approval_service.create_approval_request(session, user, payload))


@router.get("/installments", response_model=list[InstallmentRead])
def list_installments(
    session: SessionDep,
    _: ApproverDep,
    overdue_only: bool = False,
) -> list[PaymentInstallment]:
    return approval_service.list_installments(session, overdue_only=overdue_only)


@router.patch("/installments/{installment_id}/status", response_model=ActionResult)
def update_installment_status(
    installment_id: int,
    payload: Annotated[dict, Body()],
    session: SessionDep,
    user: ApproverDep,
) -> JSONResponse:
    return action_response(
        approval_service.update_installment_status(session, user, installment_id, payload)
    )


@router.get("/{request_id}", response_model=ApprovalRequestRead)
def get_request(
    request_id: int,
    session: SessionDep,
    user: Annotated[User, Depends(get_current_user)],
) -> ApprovalRequest:
    request = approval_service.get_approval_request(session, request_id, actor=user)
    if request is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Approval request not found"
        )
    return request


@router.post("/{request_id}/approve", response_model=ActionResult)
def approve(
    request_id: int, payload: Annotated[dict, Body()], session: SessionDep, user: ApproverDep
) -> JSONResponse:
    return action_response(approval_service.approve_request(session, user, request_id, payload))


@router.post("/{request_id}/reject", response_model=ActionResult)
def reject(
    request_id: int, payload: Annotated[dict, Body()], session: SessionDep, user: ApproverDep
) -> JSONResponse:
    return action_response(approval_service.reject_request(session, user, request_id, payload))


@router.post("/{request_id}/request-info", response_model=ActionResult)
def request_info(
    request_id: int, payload: Annotated[dict, Body()], session: SessionDep, user: ApproverDep
) -> JSONResponse:
    return action_response(
        approval_service.request_more_info(session, user, request_id, payload)
    )
