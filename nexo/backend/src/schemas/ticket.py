"""Ticket and comment schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.enums import (
    TICKET_PRIORITY_LABELS,
    TICKET_STATUS_LABELS,
    TicketPriority,
    TicketStatus,
)
from .attachment import AttachmentRead
from .common import coerce_label


class TicketCreate(BaseModel):
    """Payload for opening a support ticket."""

    subject: str = Field(min_length=5, max_length=100)
    description: str = Field(min_length=10, max_length=2000)
    priority: TicketPriority

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("priority", mode="before")
    @classmethod
    def _priority_from_label(cls, value):
        return coerce_label(TICKET_PRIORITY_LABELS, value)


class TicketStatusUpdate(BaseModel):
    status: TicketStatus

    @field_validator("status", mode="before")
    @classmethod
    def _status_from_label(cls, value):
        return coerce_label(TICKET_STATUS_LABELS, value)


class CommentCreate(BaseModel):
    text: str = Field(min_length=1, max_length=1000)

    model_config = ConfigDict(str_strip_whitespace=True)


class CommentRead(BaseModel):
    id: int
    display_id: str
    user_id: int
    user_name: str
    user_avatar_url: str | None
    text: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TicketSummary(BaseModel):
    """Row shown in ticket lists."""

    id: int
    display_id: str
    subject: str
    priority: str
    status: str
    user_id: int
    user_name: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TicketRead(TicketSummary):
    """Ticket detail including its conversation."""

    description: str
    user_email: str | None
    comments: list[CommentRead] = Field(default_factory=list)
    attachments: list[AttachmentRead] = Field(default_factory=list)


class TicketSummaryCounts(BaseModel):
    total: int = 0
    open: int = 0
    in_progress: int = 0
    resolved: int = 0
    closed: int = 0


class TicketStats(BaseModel):
    """Dashboard aggregates for tickets."""

    summary: TicketSummaryCounts
    by_priority: dict[str, int]
    by_status: dict[str, int]


class SolutionSuggestion(BaseModel):
    suggestion: str


__all__ = [
    "CommentCreate",
    "CommentRead",
    "SolutionSuggestion",
    "TicketCreate",
    "TicketRead",
    "TicketStats",
    "TicketStatusUpdate",
    "TicketSummary",
    "TicketSummaryCounts",
]
