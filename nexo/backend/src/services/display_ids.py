"""Sequential, human-readable display ids ("Ticket-000123").

Numbers come from one counter row per entity. The counter is bumped with a
single ``UPDATE ... SET n = n + 1`` inside the caller's transaction, so the
row stays locked until the dependent insert commits and two callers can
never read the same value.
"""

from __future__ import annotations

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..core.errors import DisplayIdAllocationError
from ..models import IdCounter
from .metrics import display_ids_allocated_total

LOGGER = structlog.get_logger(__name__)

USER_ENTITY = "User"
TICKET_ENTITY = "Ticket"
COMMENT_ENTITY = "Comment"
ATTACHMENT_ENTITY = "Attachment"
INVENTORY_ITEM_ENTITY = "InventoryItem"
APPROVAL_REQUEST_ENTITY = "ApprovalRequest"
PAYMENT_INSTALLMENT_ENTITY = "PaymentInstallment"
MAINTENANCE_CASE_ENTITY = "CasoDeMantenimiento"
FAILURE_ENTITY = "Falla"
FAILURE_LOG_ENTITY = "FallaBitacora"
AUDIT_LOG_ENTITY = "AuditLogEntry"

KNOWN_ENTITIES: frozenset[str] = frozenset(
    {
        USER_ENTITY,
        TICKET_ENTITY,
        COMMENT_ENTITY,
        ATTACHMENT_ENTITY,
        INVENTORY_ITEM_ENTITY,
        APPROVAL_REQUEST_ENTITY,
        PAYMENT_INSTALLMENT_ENTITY,
        MAINTENANCE_CASE_ENTITY,
        FAILURE_ENTITY,
        FAILURE_LOG_ENTITY,
        AUDIT_LOG_ENTITY,
    }
)

# An insert race on a brand-new counter can only be lost once.
_MAX_ATTEMPTS = 2


def format_display_id(entity_name: str, number: int, *, pad_width: int | None = None) -> str:
    width = pad_width if pad_width is not None else get_settings().display_id_pad_width
    return f"{entity_name}-{number:0{width}d}"


def _increment(session: Session, entity_name: str) -> int:
    for _ in range(_MAX_ATTEMPTS):
        result = session.execute(
            update(IdCounter)
            .where(IdCounter.entity_name == entity_name)
            .values(last_used_number=IdCounter.last_used_number + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            return session.execute(
                select(IdCounter.last_used_number).where(
                    IdCounter.entity_name == entity_name
                )
            ).scalar_one()

        try:
            with session.begin_nested():
                session.add(IdCounter(entity_name=entity_name, last_used_number=1))
            return 1
        except IntegrityError:
            LOGGER.info("display_id_counter_created_concurrently", entity=entity_name)

    raise DisplayIdAllocationError(f"Could not allocate a display id for {entity_name}")


def allocate_display_id(session: Session, entity_name: str) -> str:
    """Return the next display id for ``entity_name``.

    Runs inside ``session``'s transaction; the caller commits. Storage
    failures raise :class:`DisplayIdAllocationError`.
    """

    if entity_name not in KNOWN_ENTITIES:
        raise ValueError(f"Unknown display id entity: {entity_name!r}")

    try:
        number = _increment(session, entity_name)
    except SQLAlchemyError as exc:
        LOGGER.error("display_id_allocation_failed", entity=entity_name, error=str(exc))
        raise DisplayIdAllocationError(
            f"Could not allocate a display id for {entity_name}"
        ) from exc

    display_ids_allocated_total.labels(entity=entity_name).inc()
    return format_display_id(entity_name, number)


__all__ = [
    "APPROVAL_REQUEST_ENTITY",
    "ATTACHMENT_ENTITY",
    "AUDIT_LOG_ENTITY",
    "COMMENT_ENTITY",
    "FAILURE_ENTITY",
    "FAILURE_LOG_ENTITY",
    "INVENTORY_ITEM_ENTITY",
    "KNOWN_ENTITIES",
    "MAINTENANCE_CASE_ENTITY",
    "PAYMENT_INSTALLMENT_ENTITY",
    "TICKET_ENTITY",
    "USER_ENTITY",
    "allocate_display_id",
    "format_display_id",
]
