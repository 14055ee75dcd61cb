"""Tests for equipment failure reports and their log."""

from __future__ import annotations

import os
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_nexo.db")
os.environ.setdefault("NTFY_ENABLED", "false")
os.environ.setdefault("REDIS_ENABLED", "false")

import pytest

from nexo.backend.src.core.enums import FailureSeverity, FailureStatus
from nexo.backend.src.db import get_engine, session_scope
from nexo.backend.src.models import FailureLogEntry, FailureReport, User
from nexo.backend.src.models.base import Base
from nexo.backend.src.services import failures, inventory
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
        return provision_user(
            session, email="electromedicina@ieq-nexo.org", name="Electromedicina", role="admin"
        )


def _report(admin: User, **overrides: object):
    payload: dict[str, object] = {
        "title": "Infusion pump alarm",
        "description": "The pump raises an occlusion alarm with no line attached.",
        "equipment_name": "Bomba de infusion BBraun",
        "location": "UCI",
        "severity": "Alta",
        "failure_type": "Mecánica",
    }
    payload.update(overrides)
    with session_scope() as session:
        return failures.create_failure(session, admin, payload)


def _log(failure_id: int) -> list[FailureLogEntry]:
    with session_scope() as session:
        return (
            session.query(FailureLogEntry)
            .filter(FailureLogEntry.failure_id == failure_id)
            .order_by(FailureLogEntry.id)
            .all()
        )


def test_report_failure_allocates_ids_and_logs(admin: User) -> None:
    result = _report(admin)

    assert result.success, result.errors
    assert result.display_id == "Falla-000001"
    with session_scope() as session:
        failure = session.get(FailureReport, result.entity_id)
        assert failure.status == FailureStatus.REPORTED.value
        assert failure.severity == FailureSeverity.HIGH.value
        assert failure.failure_type == "Mechanical"
        assert failure.reported_by_user_name == "Electromedicina"
        assert failure.detected_at is not None

    entries = _log(result.entity_id)
    assert [entry.action for entry in entries] == [failures.ACTION_REPORTED]
    assert entries[0].display_id == "FallaBitacora-000001"
    assert entries[0].status_after_action == "Reported"


def test_report_refuses_unknown_severity_and_type(admin: User) -> None:
    result = _report(admin, severity="Urgentisima", failure_type="")

    assert result.success is False
    assert {"severity", "failure_type"} <= set(result.errors)


def test_report_validation(admin: User) -> None:
    result = _report(admin, title="Bad", location="")

    assert result.success is False
    assert result.status_code == 400
    assert {"title", "location"} <= set(result.errors)
    with session_scope() as session:
        assert session.query(FailureReport).count() == 0


def test_report_requires_equipment(admin: User) -> None:
    result = _report(admin, equipment_name="")

    assert result.success is False
    assert result.message == "Name the affected equipment or link an inventory item."


def test_report_copies_linked_inventory_item(admin: User) -> None:
    with session_scope() as session:
        added = inventory.add_inventory_item(
            session,
            admin,
            {
                "name": "Monitor Mindray VS800",
                "category": "Otro",
                "model": "VS800",
                "serial_number": "MR-800-1",
                "location": "Quirofano 2",
            },
        )
    assert added.success, added.errors

    result = _report(admin, equipment_name="", inventory_item_id=added.entity_id)

    assert result.success, result.errors
    with session_scope() as session:
        failure = session.get(FailureReport, result.entity_id)
        assert failure.equipment_name == "Monitor Mindray VS800"
        assert failure.equipment_model == "VS800"
        assert failure.equipment_serial_number == "MR-800-1"

    with session_scope() as session:
        inventory.delete_inventory_item(session, admin, added.entity_id)
    with session_scope() as session:
        failure = session.get(FailureReport, result.entity_id)
        assert failure.inventory_item_id is None
        assert failure.equipment_name == "Monitor Mindray VS800"


def test_report_with_unknown_item_or_assignee(admin: User) -> None:
    missing_item = _report(admin, inventory_item_id=999)
    missing_user = _report(admin, assigned_to_user_id=999)

    assert missing_item.status_code == 404
    assert missing_user.status_code == 404
    with session_scope() as session:
        assert session.query(FailureReport).count() == 0


def test_status_updates_and_notes_append_to_log(admin: User) -> None:
    failure_id = _report(admin).entity_id
    with session_scope() as session:
        technician = provision_user(session, email="tecnico@ieq-nexo.org", name="Tecnico")

    with session_scope() as session:
        updated = failures.update_failure(
            session,
            admin,
            failure_id,
            {
                "status": "En Diagnóstico",
                "notes": "Checking the pressure sensor",
                "assigned_to_user_id": technician.id,
            },
        )
    assert updated.success, updated.errors

    with session_scope() as session:
        noted = failures.add_failure_note(
            session, admin, failure_id, {"notes": "Sensor ordered from provider"}
        )
    assert noted.success, noted.errors

    with session_scope() as session:
        resolved = failures.update_failure(
            session, admin, failure_id, {"status": "Resolved", "notes": "Sensor replaced"}
        )
    assert resolved.success, resolved.errors

    entries = _log(failure_id)
    assert [entry.action for entry in entries] == [
        failures.ACTION_REPORTED,
        "Status Update: InDiagnosis",
        failures.ACTION_NOTE,
        "Status Update: Resolved",
    ]
    assert [entry.status_after_action for entry in entries] == [
        "Reported",
        "InDiagnosis",
        "InDiagnosis",
        "Resolved",
    ]
    assert entries[2].details == "Sensor ordered from provider"

    with session_scope() as session:
        failure = failures.get_failure(session, failure_id)
        assert failure.assigned_to_user_name == "Tecnico"
        assert failure.resolved_at is not None
        assert [entry.id for entry in failure.log] == sorted(
            (entry.id for entry in entries), reverse=True
        )


def test_closed_failure_accepts_no_updates(admin: User) -> None:
    failure_id = _report(admin).entity_id
    with session_scope() as session:
        failures.update_failure(
            session, admin, failure_id, {"status": "Duplicada", "notes": "Same as Falla-000001"}
        )

    with session_scope() as session:
        reopened = failures.update_failure(
            session, admin, failure_id, {"status": "Reported", "notes": "Reopen"}
        )
    with session_scope() as session:
        noted = failures.add_failure_note(session, admin, failure_id, {"notes": "Late note"})

    assert reopened.success is False
    assert reopened.status_code == 400
    assert noted.success is False
    assert len(_log(failure_id)) == 2


def test_update_requires_notes_and_existing_failure(admin: User) -> None:
    failure_id = _report(admin).entity_id

    with session_scope() as session:
        no_notes = failures.update_failure(
            session, admin, failure_id, {"status": "Resolved", "notes": " "}
        )
    with session_scope() as session:
        missing = failures.update_failure(
            session, admin, 404, {"status": "Resolved", "notes": "Done"}
        )

    assert "notes" in no_notes.errors
    assert missing.status_code == 404


def test_list_is_newest_first_and_filters(admin: User) -> None:
    first = _report(admin).entity_id
    second = _report(admin, severity="Crítica", location="Laboratorio").entity_id
    with session_scope() as session:
        failures.update_failure(
            session, admin, first, {"status": "Resolved", "notes": "Fixed on site"}
        )

    with session_scope() as session:
        everything = [item.id for item in failures.list_failures(session)]
        critical = [
            item.id for item in failures.list_failures(session, severity=FailureSeverity.CRITICAL)
        ]
        resolved = [
            item.id for item in failures.list_failures(session, status=FailureStatus.RESOLVED)
        ]
        lab = [item.id for item in failures.list_failures(session, location="labor")]

    assert everything == [second, first]
    assert critical == [second]
    assert resolved == [first]
    assert lab == [second]
