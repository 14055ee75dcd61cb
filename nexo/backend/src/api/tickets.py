"""Support ticket endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..core.enums import TicketPriority, TicketStatus
from ..core.security import get_current_user, require_admin_user
from ..db import get_session_dependency
from ..models import Ticket, User
from ..schemas.common import ActionResult
from ..schemas.ticket import TicketRead, TicketStats, TicketSummary
from ..services import tickets as ticket_service
from .responses import action_response

router = APIRouter(prefix="/tickets", tags=["Tickets"])

SessionDep = Annotated[Session, Depends(get_session_dependency)]


@router.get("", response_model=list[TicketSummary])
def list_tickets(
    session: SessionDep,
    user: Annotated[User, Depends(get_current_user)],
    status_filter: Annotated[TicketStatus | None, Query(alias="status")] = None,
    priority: TicketPriority | None = None,
) -> list[Ticket]:
    """Admins see every ticket; staff see the tickets they opened."""

    return ticket_service.list_tickets(session, user, status=status_filter, priority=priority)


@router.post("", response_model=ActionResult, status_code=status.HTTP_200_OK)
def create_ticket(
    payload: Annotated[dict, Body()],
    session: SessionDep,
    user: Annotated[User, Depends(get_current_user)],
) -> JSONResponse:
    return action_response(ticket_service.create_ticket(session, user, payload))


@router.get("/stats", response_model=TicketStats)
def ticket_stats(
    session: SessionDep,
    _: Annotated[User, Depends(get_current_user)],
) -> TicketStats:
    return ticket_service.get_ticket_stats(session)


@router.get("/{ticket_id}", response_model=TicketRead)
def get_ticket(
    ticket_id: int,
    session: SessionDep,
    user: Annotated[User, Depends(get_current_user)],
) -> Ticket:
    ticket = ticket_service.get_ticket(session, ticket_id)
    if ticket is None or (not user.is_admin and ticket.user_id != user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ticket not found")
    return ticket


@router.patch("/{ticket_id}/status", response_model=ActionResult)
def update_ticket_status(
    ticket_id: int,
    payload: Annotated[dict, Body()],
    session: SessionDep,
    user: Annotated[User, Depends(require_admin_user)],
) -> JSONResponse:
    return action_response(
        ticket_service.update_ticket_status(session, user, ticket_id, payload)
    )


@router.post("/{ticket_id}/comments", response_model=ActionResult)
def add_comment(
    ticket_id: int,
    payload: Annotated[dict, Body()],
    session: SessionDep,
    user: Annotated[User, Depends(get_current_user)],
) -> JSONResponse:
    ticket = session.get(Ticket, ticket_id)
    if ticket is not None and not user.is_admin and ticket.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ticket not found")
    return action_response(ticket_service.add_comment(session, user, ticket_id, payload))


@router.post("/{ticket_id}/suggestion", response_model=ticket_service.SuggestionResult)
def suggest_solution(
    ticket_id: int,
    session: SessionDep,
    _: Annotated[User, Depends(require_admin_user)],
) -> JSONResponse:
    return action_response(ticket_service.suggest_solution(session, ticket_id))
