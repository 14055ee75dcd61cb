"""Display-id counter model."""

from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class IdCounter(Base):
    """Last display-id number handed out for one entity type."""

    __tablename__ = "id_counters"

    entity_name: Mapped[str] = mapped_column(String(64), primary_key=True)
    last_used_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


__all__ = ["IdCounter"]
