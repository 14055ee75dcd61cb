"""Inventory schemas."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.enums import (
    INVENTORY_CATEGORY_LABELS,
    INVENTORY_STATUS_LABELS,
    RAM_OPTION_LABELS,
    STORAGE_TYPE_LABELS,
    InventoryCategory,
    InventoryStatus,
    RamOption,
    StorageType,
)
from .common import ActionResult, coerce_label

_OPTIONAL_TEXT = (
    "brand",
    "model",
    "serial_number",
    "processor",
    "storage",
    "location",
    "notes",
    "supplier",
)


class InventoryItemPayload(BaseModel):
    """Fields accepted when adding or editing an inventory item."""

    name: str = Field(min_length=3, max_length=100)
    category: InventoryCategory
    brand: str | None = Field(default=None, max_length=50)
    model: str | None = Field(default=None, max_length=50)
    serial_number: str | None = Field(default=None, max_length=100)
    processor: str | None = Field(default=None, max_length=100)
    ram: RamOption | None = None
    storage_type: StorageType | None = None
    storage: str | None = Field(default=None, max_length=50)
    quantity: int = Field(default=1, ge=1)
    location: str | None = Field(default=None, max_length=100)
    status: InventoryStatus = InventoryStatus.IN_USE
    notes: str | None = Field(default=None, max_length=1000)
    purchase_date: date | None = None
    supplier: str | None = Field(default=None, max_length=100)
    warranty_end_date: date | None = None

    model_config = ConfigDict(str_strip_whitespace=True, protected_namespaces=())

    @field_validator(*_OPTIONAL_TEXT, mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("ram", "storage_type", "purchase_date", "warranty_end_date", mode="before")
    @classmethod
    def _blank_choice_to_none(cls, value):
        if value == "":
            return None
        return value

    @field_validator("category", mode="before")
    @classmethod
    def _category_from_label(cls, value):
        return coerce_label(INVENTORY_CATEGORY_LABELS, value)

    @field_validator("status", mode="before")
    @classmethod
    def _status_from_label(cls, value):
        if value is None or value == "":
            return InventoryStatus.IN_USE
        return coerce_label(INVENTORY_STATUS_LABELS, value)

    @field_validator("ram", mode="before")
    @classmethod
    def _ram_from_label(cls, value):
        return coerce_label(RAM_OPTION_LABELS, value)

    @field_validator("storage_type", mode="before")
    @classmethod
    def _storage_type_from_label(cls, value):
        return coerce_label(STORAGE_TYPE_LABELS, value)


class InventoryItemRead(BaseModel):
    id: int
    display_id: str
    name: str
    category: str
    brand: str | None
    model: str | None
    serial_number: str | None
    processor: str | None
    ram: str | None
    storage_type: str | None
    storage: str | None
    quantity: int
    location: str | None
    status: str
    notes: str | None
    purchase_date: date | None
    supplier: str | None
    warranty_end_date: date | None
    added_by_user_name: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, protected_namespaces=())


class ImportRowError(BaseModel):
    """Problem found on one spreadsheet row; header is row 1."""

    row: int
    message: str


class InventoryImportResult(ActionResult):
    imported_count: int = 0
    row_errors: list[ImportRowError] = Field(default_factory=list)


__all__ = [
    "ImportRowError",
    "InventoryImportResult",
    "InventoryItemPayload",
    "InventoryItemRead",
]
