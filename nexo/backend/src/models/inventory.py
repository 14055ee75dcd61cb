"""Inventory item model."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class InventoryItem(Base):
    """Represents a piece of equipment or software tracked by IT."""

    __tablename__ = "inventory_items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_inventory_items_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    display_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    brand: Mapped[str | None] = mapped_column(String(50))
    model: Mapped[str | None] = mapped_column(String(50))
    serial_number: Mapped[str | None] = mapped_column(String(100), unique=True, index=True)
    processor: Mapped[str | None] = mapped_column(String(100))
    ram: Mapped[str | None] = mapped_column(String(16))
    storage_type: Mapped[str | None] = mapped_column(String(8))
    storage: Mapped[str | None] = mapped_column(String(50))
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    location: Mapped[str | None] = mapped_column(String(100))
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="InUse", index=True)
    notes: Mapped[str | None] = mapped_column(Text)
    purchase_date: Mapped[date | None] = mapped_column(Date)
    supplier: Mapped[str | None] = mapped_column(String(100))
    warranty_end_date: Mapped[date | None] = mapped_column(Date)
    added_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), index=True)
    added_by_user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


__all__ = ["InventoryItem"]
