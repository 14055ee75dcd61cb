"""Support ticket actions."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from openai import OpenAI
from sqlalchemy import case, func
from sqlalchemy.orm import Session, selectinload

from ..core.config import get_settings
from ..core.enums import TICKET_PRIORITY_LABELS, TicketPriority, TicketStatus
from ..core.errors import NotFoundError
from ..core.redis_cache import DASHBOARD_VIEW, TICKETS_VIEW, get_view_cache, invalidate_views
from ..models import Comment, Ticket, User
from ..schemas.common import ActionResult
from ..schemas.ticket import (
    CommentCreate,
    TicketCreate,
    TicketStats,
    TicketStatusUpdate,
    TicketSummaryCounts,
)
from .actions import action_boundary
from .audit import record_audit_event
from .display_ids import COMMENT_ENTITY, TICKET_ENTITY, allocate_display_id
from .notifications import DEFAULT_PRIORITY, ELEVATED_PRIORITY, send_notification

LOGGER = structlog.get_logger(__name__)

STATS_CACHE_SUFFIX = "stats"

SUGGESTION_SYSTEM_PROMPT = (
    "You are an assistant helping IT support administrators at a medical clinic "
    "resolve tickets efficiently. Given a ticket description, reply with a short, "
    "practical suggested solution in plain text. Reply in the language of the ticket."
)

_PRIORITY_RANK = case(
    {
        TicketPriority.HIGH.value: 3,
        TicketPriority.MEDIUM.value: 2,
        TicketPriority.LOW.value: 1,
    },
    value=Ticket.priority,
    else_=0,
)


class SuggestionResult(ActionResult):
    suggestion: str | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _get_ticket_or_404(session: Session, ticket_id: int) -> Ticket:
    ticket = session.get(Ticket, ticket_id)
    if ticket is None:
        raise NotFoundError("Ticket not found.")
    return ticket


def _after_ticket_change() -> None:
    invalidate_views(TICKETS_VIEW, DASHBOARD_VIEW)


@action_boundary("ticket_create")
def create_ticket(session: Session, actor: User, payload: dict) -> ActionResult:
    """Open a ticket on behalf of ``actor``."""

    data = TicketCreate.model_validate(payload)
    ticket = Ticket(
        display_id=allocate_display_id(session, TICKET_ENTITY),
        subject=data.subject,
        description=data.description,
        priority=data.priority.value,
        status=TicketStatus.OPEN.value,
        user_id=actor.id,
        user_name=actor.name,
        user_email=actor.email,
    )
    session.add(ticket)
    session.commit()
    LOGGER.info("ticket_created", ticket_id=ticket.id, display_id=ticket.display_id)

    record_audit_event(
        actor.email,
        "Ticket Created",
        f"Ticket {ticket.display_id}: {ticket.subject}",
    )
    send_notification(
        f"{actor.name} opened '{ticket.subject}' "
        f"(priority {TICKET_PRIORITY_LABELS.label(data.priority)}).",
        title=f"New ticket {ticket.display_id}",
        priority=ELEVATED_PRIORITY if data.priority is TicketPriority.HIGH else DEFAULT_PRIORITY,
        tags=["ticket"],
    )
    _after_ticket_change()
    return ActionResult.ok(
        f"Ticket {ticket.display_id} created.",
        entity_id=ticket.id,
        display_id=ticket.display_id,
    )


@action_boundary("ticket_status_update")
def update_ticket_status(
    session: Session, actor: User, ticket_id: int, payload: dict
) -> ActionResult:
    data = TicketStatusUpdate.model_validate(payload)
    ticket = _get_ticket_or_404(session, ticket_id)
    old_status = ticket.status
    ticket.status = data.status.value
    ticket.updated_at = _utcnow()
    session.commit()

    record_audit_event(
        actor.email,
        "Ticket Status Updated",
        f"Ticket {ticket.display_id}: {old_status} -> {ticket.status}",
    )
    _after_ticket_change()
    return ActionResult.ok(
        f"Ticket {ticket.display_id} is now {ticket.status}.",
        entity_id=ticket.id,
        display_id=ticket.display_id,
    )


@action_boundary("comment_create")
def add_comment(session: Session, actor: User, ticket_id: int, payload: dict) -> ActionResult:
    """Append a comment and bump the ticket's ``updated_at``."""

    data = CommentCreate.model_validate(payload)
    ticket = _get_ticket_or_404(session, ticket_id)
    comment = Comment(
        display_id=allocate_display_id(session, COMMENT_ENTITY),
        ticket_id=ticket.id,
        user_id=actor.id,
        user_name=actor.name,
        user_avatar_url=actor.avatar_url,
        text=data.text,
    )
    session.add(comment)
    ticket.updated_at = _utcnow()
    session.commit()

    record_audit_event(
        actor.email,
        "Comment Added",
        f"Ticket {ticket.display_id}, user {actor.name}",
    )
    _after_ticket_change()
    return ActionResult.ok(
        "Comment added.", entity_id=comment.id, display_id=comment.display_id
    )


def get_ticket(session: Session, ticket_id: int) -> Ticket | None:
    return (
        session.query(Ticket)
        .options(selectinload(Ticket.comments), selectinload(Ticket.attachments))
        .filter(Ticket.id == ticket_id)
        .one_or_none()
    )


def list_tickets(
    session: Session,
    actor: User,
    *,
    status: TicketStatus | None = None,
    priority: TicketPriority | None = None,
) -> list[Ticket]:
    """Return tickets by priority (high first), newest first within a priority.

    Non-admin users only see their own tickets.
    """

    query = session.query(Ticket)
    if not actor.is_admin:
        query = query.filter(Ticket.user_id == actor.id)
    if status is not None:
        query = query.filter(Ticket.status == status.value)
    if priority is not None:
        query = query.filter(Ticket.priority == priority.value)
    return query.order_by(_PRIORITY_RANK.desc(), Ticket.created_at.desc(), Ticket.id.desc()).all()


def get_ticket_stats(session: Session) -> TicketStats:
    """Return dashboard counts, served from the view cache when warm."""

    cache = get_view_cache()
    cached = cache.get(TICKETS_VIEW, STATS_CACHE_SUFFIX)
    if cached is not None:
        return TicketStats.model_validate(cached)

    by_status = {status.value: 0 for status in TicketStatus}
    for value, count in session.query(Ticket.status, func.count(Ticket.id)).group_by(Ticket.status):
        by_status[value] = count

    by_priority = {priority.value: 0 for priority in TicketPriority}
    for value, count in session.query(Ticket.priority, func.count(Ticket.id)).group_by(
        Ticket.priority
    ):
        by_priority[value] = count

    stats = TicketStats(
        summary=TicketSummaryCounts(
            total=sum(by_status.values()),
            open=by_status[TicketStatus.OPEN.value],
            in_progress=by_status[TicketStatus.IN_PROGRESS.value],
            resolved=by_status[TicketStatus.RESOLVED.value],
            closed=by_status[TicketStatus.CLOSED.value],
        ),
        by_priority=by_priority,
        by_status=by_status,
    )
    cache.set(TICKETS_VIEW, stats.model_dump(), STATS_CACHE_SUFFIX)
    return stats


def _openai_client() -> OpenAI | None:
    settings = get_settings()
    if not settings.openai_api_key:
        return None
    return OpenAI(api_key=settings.openai_api_key)


def suggest_solution(session: Session, ticket_id: int) -> SuggestionResult:
    """Ask the language model for a suggested fix to a ticket."""

    ticket = session.get(Ticket, ticket_id)
    if ticket is None:
        return SuggestionResult.failure("Ticket not found.", status_code=404)

    client = _openai_client()
    if client is None:
        return SuggestionResult.failure(
            "Solution suggestions are not configured.", status_code=503
        )

    try:
        response = client.chat.completions.create(
            model=get_settings().openai_model,
            messages=[
                {"role": "system", "content": SUGGESTION_SYSTEM_PROMPT},
                {"role": "user", "content": f"Ticket description: {ticket.description}"},
            ],
            temperature=0.2,
        )
        content = response.choices[0].message.content if response.choices else None
    except Exception as exc:
        LOGGER.warning("ticket_suggestion_failed", ticket_id=ticket_id, error=str(exc))
        return SuggestionResult.failure(
            "Could not generate a suggestion right now.", status_code=502
        )

    suggestion = (content or "").strip()
    if not suggestion:
        return SuggestionResult.failure(
            "Could not generate a suggestion right now.", status_code=502
        )
    return SuggestionResult(
        success=True,
        message="Suggestion generated.",
        entity_id=ticket.id,
        display_id=ticket.display_id,
        suggestion=suggestion,
    )


__all__ = [
    "SuggestionResult",
    "add_comment",
    "create_ticket",
    "get_ticket",
    "get_ticket_stats",
    "list_tickets",
    "suggest_solution",
    "update_ticket_status",
]
