"""Liveness, readiness and metrics endpoints for the clinic operations API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import func, select, text
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..db import get_session_dependency
from ..models import IdCounter

router = APIRouter(tags=["health"])

SERVICE_NAME = "nexo-clinic-operations"


@router.get("/health/live")
def liveness() -> dict[str, str]:
    return {"status": "live", "service": SERVICE_NAME}


@router.get("/health/ready")
def readiness(session: Session = Depends(get_session_dependency)) -> dict[str, object]:
    """Check the database and report which backing services are switched on.

    Counting the display-id counters also proves the schema has been created.
    """

    session.execute(text("SELECT 1"))
    counters = session.execute(select(func.count()).select_from(IdCounter)).scalar_one()
    settings = get_settings()
    return {
        "status": "ready",
        "service": SERVICE_NAME,
        "database": session.get_bind().dialect.name,
        "display_id_counters": counters,
        "notifications_enabled": settings.ntfy_enabled,
        "cache_enabled": settings.redis_enabled,
    }


@router.get("/metrics")
def metrics() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
