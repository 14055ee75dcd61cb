"""Maintenance case models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class MaintenanceCase(Base):
    """A facility or medical-equipment maintenance case handled by a provider."""

    __tablename__ = "maintenance_cases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    display_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(150), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str] = mapped_column(String(100), nullable=False)
    equipment: Mapped[str | None] = mapped_column(String(100))
    priority: Mapped[str] = mapped_column(String(16), nullable=False)
    assigned_provider_name: Mapped[str] = mapped_column(String(100), nullable=False)
    current_status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="Registered", index=True
    )
    registered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    registered_by_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    registered_by_user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    last_follow_up_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    next_follow_up_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    resolution_details: Mapped[str | None] = mapped_column(Text)
    cost: Mapped[float | None] = mapped_column(Float)
    invoicing_details: Mapped[str | None] = mapped_column(Text)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    log: Mapped[list["MaintenanceLogEntry"]] = relationship(
        "MaintenanceLogEntry",
        back_populates="case",
        order_by="MaintenanceLogEntry.id.desc()",
    )


class MaintenanceLogEntry(Base):
    """Immutable record of one update made to a maintenance case."""

    __tablename__ = "maintenance_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    case_id: Mapped[int] = mapped_column(
        ForeignKey("maintenance_cases.id"), nullable=False, index=True
    )
    action: Mapped[str] = mapped_column(String(150), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status_after_action: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    case: Mapped["MaintenanceCase"] = relationship("MaintenanceCase", back_populates="log")


__all__ = ["MaintenanceCase", "MaintenanceLogEntry"]
