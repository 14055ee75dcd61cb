"""Tests for ticket actions, listing and suggestions."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from types import SimpleNamespace

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_nexo.db")
os.environ.setdefault("NTFY_ENABLED", "false")
os.environ.setdefault("REDIS_ENABLED", "false")

import pytest

from nexo.backend.src.core.enums import TicketStatus
from nexo.backend.src.db import get_engine, session_scope
from nexo.backend.src.models import Ticket, User
from nexo.backend.src.models.base import Base
from nexo.backend.src.services import tickets
from nexo.backend.src.services.admin_users import provision_user


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def users() -> dict[str, User]:
    with session_scope() as session:
        return {
            "admin": provision_user(session, email="it@ieq-nexo.org", name="IT", role="admin"),
            "nurse": provision_user(session, email="enfermeria@ieq-nexo.org", name="Enfermeria"),
            "lab": provision_user(session, email="lab@ieq-nexo.org", name="Laboratorio"),
        }


def _open_ticket(actor: User, subject: str, priority: str) -> int:
    with session_scope() as session:
        result = tickets.create_ticket(
            session,
            actor,
            {
                "subject": subject,
                "description": "Something stopped working this morning.",
                "priority": priority,
            },
        )
    assert result.success, result.errors
    return result.entity_id


def test_create_ticket_accepts_labels_and_values(users: dict[str, User]) -> None:
    first = _open_ticket(users["nurse"], "Monitor flickers", "Alta")
    second = _open_ticket(users["nurse"], "Mouse is broken", "Low")

    with session_scope() as session:
        assert session.get(Ticket, first).priority == "High"
        assert session.get(Ticket, second).priority == "Low"
        assert session.get(Ticket, first).status == TicketStatus.OPEN.value
        assert session.get(Ticket, second).display_id == "Ticket-000002"


def test_create_ticket_validates_lengths(users: dict[str, User]) -> None:
    with session_scope() as session:
        result = tickets.create_ticket(
            session, users["nurse"], {"subject": "Hi", "description": "short", "priority": "Urgent"}
        )

    assert result.success is False
    assert set(result.errors) == {"subject", "description", "priority"}


def test_status_update_and_comments(users: dict[str, User]) -> None:
    ticket_id = _open_ticket(users["nurse"], "Printer jammed", "Media")

    with session_scope() as session:
        updated = tickets.update_ticket_status(
            session, users["admin"], ticket_id, {"status": "En Progreso"}
        )
    assert updated.success

    with session_scope() as session:
        commented = tickets.add_comment(
            session, users["admin"], ticket_id, {"text": "Technician on the way."}
        )
    assert commented.success
    assert commented.display_id == "Comment-000001"

    with session_scope() as session:
        ticket = tickets.get_ticket(session, ticket_id)
        assert ticket.status == TicketStatus.IN_PROGRESS.value
        assert [comment.text for comment in ticket.comments] == ["Technician on the way."]


def test_comment_on_missing_ticket(users: dict[str, User]) -> None:
    with session_scope() as session:
        result = tickets.add_comment(session, users["admin"], 42, {"text": "hello"})

    assert result.success is False
    assert result.status_code == 404


def test_listing_orders_by_priority_and_scopes_by_owner(users: dict[str, User]) -> None:
    low = _open_ticket(users["nurse"], "Keyboard sticky", "Baja")
    high = _open_ticket(users["nurse"], "Server is down", "Alta")
    other = _open_ticket(users["lab"], "Centrifuge label printer", "Media")

    with session_scope() as session:
        everything = [ticket.id for ticket in tickets.list_tickets(session, users["admin"])]
        own = [ticket.id for ticket in tickets.list_tickets(session, users["nurse"])]

    assert everything == [high, other, low]
    assert own == [high, low]


def test_stats_count_by_status_and_priority(users: dict[str, User]) -> None:
    _open_ticket(users["nurse"], "Keyboard sticky", "Baja")
    resolved = _open_ticket(users["nurse"], "Server is down", "Alta")
    with session_scope() as session:
        tickets.update_ticket_status(session, users["admin"], resolved, {"status": "Resolved"})

    with session_scope() as session:
        stats = tickets.get_ticket_stats(session)

    assert stats.summary.total == 2
    assert stats.summary.open == 1
    assert stats.summary.resolved == 1
    assert stats.by_priority == {"Low": 1, "Medium": 0, "High": 1}


def test_suggestion_not_configured(users: dict[str, User], monkeypatch: pytest.MonkeyPatch) -> None:
    ticket_id = _open_ticket(users["nurse"], "Printer jammed", "Media")
    monkeypatch.setattr(tickets, "_openai_client", lambda: None)

    with session_scope() as session:
        result = tickets.suggest_solution(session, ticket_id)

    assert result.success is False
    assert result.status_code == 503


def test_suggestion_uses_model_reply(users: dict[str, User], monkeypatch: pytest.MonkeyPatch) -> None:
    ticket_id = _open_ticket(users["nurse"], "Printer jammed", "Media")
    captured: dict[str, object] = {}

    def fake_create(**kwargs: object) -> SimpleNamespace:
        captured.update(kwargs)
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="  Restart the spooler.  "))]
        )

    fake_client = SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(create=fake_create))
    )
    monkeypatch.setattr(tickets, "_openai_client", lambda: fake_client)

    with session_scope() as session:
        result = tickets.suggest_solution(session, ticket_id)

    assert result.success
    assert result.suggestion == "Restart the spooler."
    assert "Something stopped working" in captured["messages"][1]["content"]


def test_suggestion_failure_is_reported(users: dict[str, User], monkeypatch: pytest.MonkeyPatch) -> None:
    ticket_id = _open_ticket(users["nurse"], "Printer jammed", "Media")

    def broken_create(**kwargs: object) -> None:
        raise RuntimeError("upstream unavailable")

    fake_client = SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(create=broken_create))
    )
    monkeypatch.setattr(tickets, "_openai_client", lambda: fake_client)

    with session_scope() as session:
        result = tickets.suggest_solution(session, ticket_id)

    assert result.success is False
    assert result.status_code == 502
