"""Maintenance case endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..core.enums import MaintenanceStatus
from ..core.security import require_admin_user
from ..db import get_session_dependency
from ..models import MaintenanceCase, User
from ..schemas.common import ActionResult
from ..schemas.maintenance import MaintenanceCaseRead, MaintenanceCaseSummary
from ..services import maintenance as maintenance_service
from .responses import action_response

router = APIRouter(prefix="/maintenance", tags=["Maintenance"])

SessionDep = Annotated[Session, Depends(get_session_dependency)]
AdminDep = Annotated[User, Depends(require_admin_user)]


@router.get("", response_model=list[MaintenanceCaseSummary])
def list_cases(
    session: SessionDep,
    _: AdminDep,
    status_filter: Annotated[MaintenanceStatus | None, Query(alias="status")] = None,
) -> list[MaintenanceCase]:
    return maintenance_service.list_maintenance_cases(session, status=status_filter)


@router.post("", response_model=ActionResult)
def create_case(payload: Annotated[dict, Body()], session: SessionDep, user: AdminDep) -> JSONResponse:
    return action_response(maintenance_service.create_maintenance_case(session, user, payload))


@router.get("/{case_id}", response_model=MaintenanceCaseRead)
def get_case(case_id: int, session: SessionDep, _: AdminDep) -> MaintenanceCase:
    case = maintenance_service.get_maintenance_case(session, case_id)
    if case is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Maintenance case not found"
        )
    return case


@router.patch("/{case_id}", response_model=ActionResult)
def update_case(
    case_id: int, payload: Annotated[dict, Body()], session: SessionDep, user: AdminDep
) -> JSONResponse:
    return action_response(
        maintenance_service.update_maintenance_case(session, user, case_id, payload)
    )
