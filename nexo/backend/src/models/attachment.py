"""Attachment metadata model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class Attachment(Base):
    """Metadata for an uploaded file; the bytes live in object storage."""

    __tablename__ = "attachments"
    __table_args__ = (
        CheckConstraint(
            "(ticket_id IS NOT NULL) OR (approval_request_id IS NOT NULL)",
            name="ck_attachments_owner_present",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    display_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    content_type: Mapped[str | None] = mapped_column(String(255))
    storage_key: Mapped[str] = mapped_column(String(512), nullable=False)
    ticket_id: Mapped[int | None] = mapped_column(ForeignKey("tickets.id"), index=True)
    approval_request_id: Mapped[int | None] = mapped_column(
        ForeignKey("approval_requests.id"), index=True
    )
    uploaded_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    ticket: Mapped["Ticket | None"] = relationship("Ticket", back_populates="attachments")
    approval_request: Mapped["ApprovalRequest | None"] = relationship(
        "ApprovalRequest", back_populates="attachments"
    )


__all__ = ["Attachment"]
