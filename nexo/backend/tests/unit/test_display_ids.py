"""Tests for the sequential display-id allocator."""

from __future__ import annotations

import os
import sys
import threading
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_nexo.db")
os.environ.setdefault("NTFY_ENABLED", "false")
os.environ.setdefault("REDIS_ENABLED", "false")

import pytest

from nexo.backend.src.db import SessionLocal, get_engine, session_scope
from nexo.backend.src.models import IdCounter
from nexo.backend.src.models.base import Base
from nexo.backend.src.services import display_ids
from nexo.backend.src.services.display_ids import (
    TICKET_ENTITY,
    allocate_display_id,
    format_display_id,
)


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def test_format_display_id_pads_number() -> None:
    assert format_display_id("Ticket", 123, pad_width=6) == "Ticket-000123"
    assert format_display_id("CasoDeMantenimiento", 7, pad_width=3) == "CasoDeMantenimiento-007"


def test_first_allocation_creates_counter_and_numbers_increase() -> None:
    with session_scope() as session:
        first = allocate_display_id(session, TICKET_ENTITY)
        second = allocate_display_id(session, TICKET_ENTITY)

    assert first == format_display_id(TICKET_ENTITY, 1)
    assert second == format_display_id(TICKET_ENTITY, 2)

    with session_scope() as session:
        counter = session.get(IdCounter, TICKET_ENTITY)
        assert counter is not None
        assert counter.last_used_number == 2


def test_counters_are_independent_per_entity() -> None:
    with session_scope() as session:
        allocate_display_id(session, TICKET_ENTITY)
        allocate_display_id(session, TICKET_ENTITY)
        user_id = allocate_display_id(session, display_ids.USER_ENTITY)

    assert user_id == format_display_id(display_ids.USER_ENTITY, 1)


def test_unknown_entity_is_rejected() -> None:
    with session_scope() as session:
        with pytest.raises(ValueError):
            allocate_display_id(session, "Invoice")


def test_rolled_back_allocation_releases_the_number() -> None:
    session = SessionLocal()
    try:
        allocate_display_id(session, TICKET_ENTITY)
        session.rollback()
    finally:
        session.close()

    with session_scope() as session:
        assert allocate_display_id(session, TICKET_ENTITY) == format_display_id(TICKET_ENTITY, 1)


def test_concurrent_allocations_are_unique_and_gapless() -> None:
    threads_count = 8
    per_thread = 5
    barrier = threading.Barrier(threads_count)
    allocated: list[str] = []
    failures: list[BaseException] = []
    lock = threading.Lock()

    def worker() -> None:
        try:
            barrier.wait()
            for _ in range(per_thread):
                with session_scope() as session:
                    value = allocate_display_id(session, TICKET_ENTITY)
                with lock:
                    allocated.append(value)
        except BaseException as exc:  # pragma: no cover - surfaced below
            failures.append(exc)

    workers = [threading.Thread(target=worker) for _ in range(threads_count)]
    for thread in workers:
        thread.start()
    for thread in workers:
        thread.join()

    assert not failures
    total = threads_count * per_thread
    assert len(set(allocated)) == total
    assert set(allocated) == {
        format_display_id(TICKET_ENTITY, number) for number in range(1, total + 1)
    }
