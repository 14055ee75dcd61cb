"""Tests for maintenance case tracking."""

from __future__ import annotations

import os
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_nexo.db")
os.environ.setdefault("NTFY_ENABLED", "false")
os.environ.setdefault("REDIS_ENABLED", "false")

import pytest

from nexo.backend.src.core.enums import MaintenanceStatus
from nexo.backend.src.db import get_engine, session_scope
from nexo.backend.src.models import User
from nexo.backend.src.models.base import Base
from nexo.backend.src.services import maintenance
from nexo.backend.src.services.admin_users import provision_user


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def admin() -> User:
    with session_scope() as session:
        return provision_user(session, email="it@ieq-nexo.org", name="IT", role="admin")


@pytest.fixture()
def case_id(admin: User) -> int:
    with session_scope() as session:
        result = maintenance.create_maintenance_case(
            session,
            admin,
            {
                "title": "Air conditioning failure",
                "description": "The unit in the operating room blows warm air.",
                "location": "Quirofano 1",
                "equipment": "Split 24000 BTU",
                "priority": "Alta",
                "assigned_provider_name": "FrioTec",
            },
        )
    assert result.success, result.errors
    return result.entity_id


def _update(admin: User, case_id: int, **payload: object):
    body = {"notes": "Follow-up call", "assigned_provider_name": "FrioTec"}
    body.update(payload)
    with session_scope() as session:
        return maintenance.update_maintenance_case(session, admin, case_id, body)


def test_create_case_is_registered_with_log(case_id: int) -> None:
    with session_scope() as session:
        case = maintenance.get_maintenance_case(session, case_id)
        assert case.display_id == "CasoDeMantenimiento-000001"
        assert case.current_status == MaintenanceStatus.REGISTERED.value
        assert case.priority == "High"
        assert [entry.action for entry in case.log] == [maintenance.ACTION_REGISTERED]


def test_resolving_requires_details(admin: User, case_id: int) -> None:
    result = _update(admin, case_id, current_status="Resolved")

    assert result.success is False
    assert result.errors == {
        "__root__": ["Resolution details and resolution date are required to resolve a case."]
    }


def test_resolve_then_reopen_clears_resolution(admin: User, case_id: int) -> None:
    resolved = _update(
        admin,
        case_id,
        current_status="Resuelto",
        resolution_details="Compressor replaced",
        cost=450.0,
        resolved_at="2024-05-02T10:00:00Z",
    )
    assert resolved.success, resolved.errors

    with session_scope() as session:
        case = maintenance.get_maintenance_case(session, case_id)
        assert case.current_status == "Resolved"
        assert case.resolution_details == "Compressor replaced"
        assert case.cost == 450.0

    reopened = _update(
        admin,
        case_id,
        current_status="En Servicio/Reparación",
        resolution_details="ignored",
        cost=10,
    )
    assert reopened.success, reopened.errors

    with session_scope() as session:
        case = maintenance.get_maintenance_case(session, case_id)
        assert case.current_status == "InService"
        assert case.resolution_details is None
        assert case.cost is None
        assert case.resolved_at is None
        assert case.log[0].action == "Status Update: InService"
        assert len(case.log) == 3


def test_update_requires_notes_and_positive_cost(admin: User, case_id: int) -> None:
    result = _update(admin, case_id, current_status="PendingQuote", notes="", cost=-5)

    assert result.success is False
    assert {"notes", "cost"} <= set(result.errors)


def test_update_refuses_infinite_cost(admin: User, case_id: int) -> None:
    result = _update(
        admin,
        case_id,
        current_status="Resolved",
        notes="Board replaced",
        resolution_details="Power board replaced by the provider",
        resolved_at="2024-05-01T10:00:00",
        cost="inf",
    )

    assert result.success is False
    assert "cost" in result.errors


def test_update_missing_case(admin: User) -> None:
    result = _update(admin, 404, current_status="PendingQuote")

    assert result.success is False
    assert result.status_code == 404


def test_list_filters_by_status(admin: User, case_id: int) -> None:
    _update(admin, case_id, current_status="PendingQuote")

    with session_scope() as session:
        pending = maintenance.list_maintenance_cases(session, status=MaintenanceStatus.PENDING_QUOTE)
        registered = maintenance.list_maintenance_cases(session, status=MaintenanceStatus.REGISTERED)

    assert [case.id for case in pending] == [case_id]
    assert registered == []
