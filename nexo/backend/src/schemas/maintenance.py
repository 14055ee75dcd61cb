"""Maintenance case schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..core.enums import (
    MAINTENANCE_PRIORITY_LABELS,
    MAINTENANCE_STATUS_LABELS,
    MaintenancePriority,
    MaintenanceStatus,
)
from .common import coerce_label


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class MaintenanceCaseCreate(BaseModel):
    title: str = Field(min_length=5, max_length=150)
    description: str = Field(min_length=10, max_length=2000)
    location: str = Field(min_length=3, max_length=100)
    equipment: str | None = Field(default=None, max_length=100)
    priority: MaintenancePriority
    assigned_provider_name: str = Field(min_length=1, max_length=100)
    next_follow_up_date: datetime | None = None

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("equipment", "next_follow_up_date", mode="before")
    @classmethod
    def _optional_blank(cls, value):
        return _blank_to_none(value)

    @field_validator("priority", mode="before")
    @classmethod
    def _priority_from_label(cls, value):
        return coerce_label(MAINTENANCE_PRIORITY_LABELS, value)


class MaintenanceCaseUpdate(BaseModel):
    """Status change with follow-up notes; resolving needs the resolution data."""

    current_status: MaintenanceStatus
    notes: str = Field(min_length=1, max_length=2000)
    assigned_provider_name: str = Field(min_length=1, max_length=100)
    next_follow_up_date: datetime | None = None
    resolution_details: str | None = Field(default=None, max_length=2000)
    cost: float | None = Field(default=None, gt=0)
    invoicing_details: str | None = Field(default=None, max_length=2000)
    resolved_at: datetime | None = None

    model_config = ConfigDict(str_strip_whitespace=True, allow_inf_nan=False)

    @field_validator(
        "next_follow_up_date",
        "resolution_details",
        "cost",
        "invoicing_details",
        "resolved_at",
        mode="before",
    )
    @classmethod
    def _optional_blank(cls, value):
        return _blank_to_none(value)

    @field_validator("current_status", mode="before")
    @classmethod
    def _status_from_label(cls, value):
        return coerce_label(MAINTENANCE_STATUS_LABELS, value)

    @model_validator(mode="after")
    def _resolution_required(self) -> "MaintenanceCaseUpdate":
        if self.current_status is MaintenanceStatus.RESOLVED and (
            not self.resolution_details or self.resolved_at is None
        ):
            raise ValueError(
                "Resolution details and resolution date are required to resolve a case."
            )
        return self


class MaintenanceLogRead(BaseModel):
    id: int
    action: str
    notes: str | None
    user_id: int
    user_name: str
    status_after_action: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MaintenanceCaseSummary(BaseModel):
    id: int
    display_id: str
    title: str
    location: str
    equipment: str | None
    priority: str
    assigned_provider_name: str
    current_status: str
    registered_at: datetime
    next_follow_up_date: datetime | None

    model_config = ConfigDict(from_attributes=True)


class MaintenanceCaseRead(MaintenanceCaseSummary):
    description: str
    registered_by_user_id: int
    registered_by_user_name: str
    last_follow_up_date: datetime | None
    resolution_details: str | None
    cost: float | None
    invoicing_details: str | None
    resolved_at: datetime | None
    log: list[MaintenanceLogRead] = Field(default_factory=list)


__all__ = [
    "MaintenanceCaseCreate",
    "MaintenanceCaseRead",
    "MaintenanceCaseSummary",
    "MaintenanceCaseUpdate",
    "MaintenanceLogRead",
]
