"""Equipment failure reports and their follow-up log."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class FailureReport(Base):
    """A technical failure detected on clinic equipment."""

    __tablename__ = "failures"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    display_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(150), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    inventory_item_id: Mapped[int | None] = mapped_column(ForeignKey("inventory_items.id"))
    equipment_name: Mapped[str] = mapped_column(String(150), nullable=False)
    equipment_model: Mapped[str | None] = mapped_column(String(100))
    equipment_serial_number: Mapped[str | None] = mapped_column(String(100))
    location: Mapped[str] = mapped_column(String(100), nullable=False)
    severity: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    failure_type: Mapped[str] = mapped_column(String(32), nullable=False)
    impact: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="Reported", index=True)
    reported_by_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    reported_by_user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    assigned_to_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    assigned_to_user_name: Mapped[str | None] = mapped_column(String(255))
    detected_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    log: Mapped[list["FailureLogEntry"]] = relationship(
        "FailureLogEntry",
        back_populates="failure",
        order_by="FailureLogEntry.id.desc()",
    )


class FailureLogEntry(Base):
    """One append-only line of a failure's log."""

    __tablename__ = "failure_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    display_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    failure_id: Mapped[int] = mapped_column(ForeignKey("failures.id"), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(150), nullable=False)
    details: Mapped[str | None] = mapped_column(Text)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    user_email: Mapped[str | None] = mapped_column(String(255))
    status_after_action: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    failure: Mapped["FailureReport"] = relationship("FailureReport", back_populates="log")


__all__ = ["FailureLogEntry", "FailureReport"]
