"""Audit trail endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from ..core.security import require_admin_user
from ..db import get_session_dependency
from ..models import AuditLogEntry, User
from ..services.audit import DEFAULT_AUDIT_LIMIT, list_audit_events


class AuditEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    display_id: str
    user_email: str
    action: str
    details: str | None
    created_at: datetime


router = APIRouter(prefix="/admin", tags=["Admin Audit"])


@router.get("/audit", response_model=list[AuditEntryOut])
def list_audit(
    session: Annotated[Session, Depends(get_session_dependency)],
    _: Annotated[User, Depends(require_admin_user)],
    limit: Annotated[int, Query(ge=1, le=1000)] = DEFAULT_AUDIT_LIMIT,
) -> list[AuditLogEntry]:
    """Return the newest audit entries first."""

    return list_audit_events(session, limit=limit)
