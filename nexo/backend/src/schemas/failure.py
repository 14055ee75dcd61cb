"""Equipment failure schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.enums import (
    FAILURE_SEVERITY_LABELS,
    FAILURE_STATUS_LABELS,
    FAILURE_TYPE_LABELS,
    FailureSeverity,
    FailureStatus,
    FailureType,
)
from .common import coerce_label


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class FailureCreate(BaseModel):
    """Failure report; equipment details may come from a linked inventory item."""

    title: str = Field(min_length=5, max_length=150)
    description: str = Field(min_length=10, max_length=2000)
    inventory_item_id: int | None = None
    equipment_name: str | None = Field(default=None, min_length=2, max_length=150)
    equipment_model: str | None = Field(default=None, max_length=100)
    equipment_serial_number: str | None = Field(default=None, max_length=100)
    location: str = Field(min_length=2, max_length=100)
    severity: FailureSeverity = FailureSeverity.MEDIUM
    failure_type: FailureType = FailureType.OTHER
    impact: str | None = Field(default=None, max_length=1000)
    assigned_to_user_id: int | None = None
    detected_at: datetime | None = None

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator(
        "inventory_item_id",
        "equipment_name",
        "equipment_model",
        "equipment_serial_number",
        "impact",
        "assigned_to_user_id",
        "detected_at",
        mode="before",
    )
    @classmethod
    def _optional_blank(cls, value):
        return _blank_to_none(value)

    @field_validator("severity", mode="before")
    @classmethod
    def _severity_from_label(cls, value):
        return coerce_label(FAILURE_SEVERITY_LABELS, value)

    @field_validator("failure_type", mode="before")
    @classmethod
    def _type_from_label(cls, value):
        return coerce_label(FAILURE_TYPE_LABELS, value)


class FailureUpdate(BaseModel):
    status: FailureStatus
    notes: str = Field(min_length=1, max_length=2000)
    assigned_to_user_id: int | None = None

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("assigned_to_user_id", mode="before")
    @classmethod
    def _optional_blank(cls, value):
        return _blank_to_none(value)

    @field_validator("status", mode="before")
    @classmethod
    def _status_from_label(cls, value):
        return coerce_label(FAILURE_STATUS_LABELS, value)


class FailureNoteCreate(BaseModel):
    notes: str = Field(min_length=1, max_length=2000)

    model_config = ConfigDict(str_strip_whitespace=True)


class FailureLogRead(BaseModel):
    id: int
    display_id: str
    action: str
    details: str | None
    user_id: int
    user_name: str
    status_after_action: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FailureSummary(BaseModel):
    id: int
    display_id: str
    title: str
    equipment_name: str
    location: str
    severity: str
    failure_type: str
    status: str
    assigned_to_user_name: str | None
    reported_by_user_name: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FailureRead(FailureSummary):
    description: str
    inventory_item_id: int | None
    equipment_model: str | None
    equipment_serial_number: str | None
    impact: str | None
    reported_by_user_id: int
    assigned_to_user_id: int | None
    detected_at: datetime
    resolved_at: datetime | None
    log: list[FailureLogRead] = Field(default_factory=list)


__all__ = [
    "FailureCreate",
    "FailureLogRead",
    "FailureNoteCreate",
    "FailureRead",
    "FailureSummary",
    "FailureUpdate",
]
