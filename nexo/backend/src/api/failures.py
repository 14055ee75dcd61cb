"""Equipment failure endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..core.enums import FailureSeverity, FailureStatus
from ..core.security import require_admin_user, require_approver_user
from ..db import get_session_dependency
from ..models import FailureReport, User
from ..schemas.common import ActionResult
from ..schemas.failure import FailureRead, FailureSummary
from ..services import failures as failure_service
from .responses import action_response

router = APIRouter(prefix="/failures", tags=["Failures"])

SessionDep = Annotated[Session, Depends(get_session_dependency)]
AdminDep = Annotated[User, Depends(require_admin_user)]
ViewerDep = Annotated[User, Depends(require_approver_user)]


@router.get("", response_model=list[FailureSummary])
def list_failures(
    session: SessionDep,
    _: ViewerDep,
    status_filter: Annotated[FailureStatus | None, Query(alias="status")] = None,
    severity: FailureSeverity | None = None,
    location: str | None = None,
) -> list[FailureReport]:
    return failure_service.list_failures(
        session, status=status_filter, severity=severity, location=location
    )


@router.post("", response_model=ActionResult)
def report_failure(
    payload: Annotated[dict, Body()], session: SessionDep, user: AdminDep
) -> JSONResponse:
    return action_response(failure_service.create_failure(session, user, payload))


@router.get("/{failure_id}", response_model=FailureRead)
def get_failure(failure_id: int, session: SessionDep, _: ViewerDep) -> FailureReport:
    failure = failure_service.get_failure(session, failure_id)
    if failure is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Failure report not found"
        )
    return failure


@router.patch("/{failure_id}", response_model=ActionResult)
def update_failure(
    failure_id: int, payload: Annotated[dict, Body()], session: SessionDep, user: AdminDep
) -> JSONResponse:
    return action_response(failure_service.update_failure(session, user, failure_id, payload))


@router.post("/{failure_id}/notes", response_model=ActionResult)
def add_note(
    failure_id: int, payload: Annotated[dict, Body()], session: SessionDep, user: AdminDep
) -> JSONResponse:
    return action_response(failure_service.add_failure_note(session, user, failure_id, payload))
