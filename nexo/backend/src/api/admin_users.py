"""Administrative endpoints for managing user accounts."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..core.security import require_admin_user
from ..db import get_session_dependency
from ..models import User
from ..schemas.common import ActionResult
from ..schemas.user import UserRead
from ..services import admin_users as admin_user_service
from .responses import action_response

router = APIRouter(prefix="/admin", tags=["Admin Users"])

SessionDep = Annotated[Session, Depends(get_session_dependency)]
AdminDep = Annotated[User, Depends(require_admin_user)]


@router.get("/users", response_model=list[UserRead])
def list_users(session: SessionDep, _: AdminDep) -> list[User]:
    """Return all users in the system."""

    return admin_user_service.list_users(session)


@router.post("/users", response_model=ActionResult)
def register_user(
    payload: Annotated[dict, Body()], session: SessionDep, admin: AdminDep
) -> JSONResponse:
    return action_response(admin_user_service.register_user(session, admin, payload))


@router.put("/users/{user_id}", response_model=ActionResult)
def update_user(
    user_id: int, payload: Annotated[dict, Body()], session: SessionDep, admin: AdminDep
) -> JSONResponse:
    return action_response(admin_user_service.update_user(session, admin, user_id, payload))


@router.delete("/users/{user_id}", response_model=ActionResult)
def delete_user(user_id: int, session: SessionDep, admin: AdminDep) -> JSONResponse:
    """Delete a user unless they own tickets, comments or approval requests."""

    return action_response(admin_user_service.delete_user(session, admin, user_id))
