"""Shared result contract returned by every mutating action."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..core.enums import LabelMap
from ..core.errors import ActionError

GENERIC_SERVER_ERROR = "An unexpected server error occurred. Please try again."
VALIDATION_FAILED = "Please correct the highlighted fields."


def coerce_label(label_map: LabelMap, value: Any) -> Any:
    """Accept a client label where a stored enum value is expected.

    Unknown values are returned untouched so that pydantic reports them.
    """

    if isinstance(value, str):
        member = label_map.lookup(value)
        if member is not None:
            return member
    return value


def field_errors(exc: ValidationError) -> dict[str, list[str]]:
    """Collapse a pydantic ``ValidationError`` into a field -> messages map."""

    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body",)]
        # Discriminated unions prefix the tag; the client only knows field names.
        if location and location[0] in ("Purchase", "ProviderPayment"):
            location = location[1:]
        field = ".".join(location) or "__root__"
        message = str(error.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, ") :]
        errors.setdefault(field, []).append(message)
    return errors


class ActionResult(BaseModel):
    """Discriminated success/failure value; services return it instead of raising."""

    success: bool
    message: str
    errors: dict[str, list[str]] | None = None
    entity_id: int | None = None
    display_id: str | None = None
    status_code: int = Field(default=200, exclude=True)

    @classmethod
    def ok(
        cls,
        message: str,
        *,
        entity_id: int | None = None,
        display_id: str | None = None,
    ) -> "ActionResult":
        return cls(success=True, message=message, entity_id=entity_id, display_id=display_id)

    @classmethod
    def failure(
        cls,
        message: str,
        *,
        errors: dict[str, list[str]] | None = None,
        status_code: int = 400,
    ) -> "ActionResult":
        return cls(success=False, message=message, errors=errors, status_code=status_code)

    @classmethod
    def from_error(cls, exc: ActionError) -> "ActionResult":
        return cls.failure(exc.message, status_code=exc.status_code)

    @classmethod
    def validation_failure(cls, exc: ValidationError) -> "ActionResult":
        return cls.failure(VALIDATION_FAILED, errors=field_errors(exc))

    @classmethod
    def server_error(cls) -> "ActionResult":
        return cls.failure(GENERIC_SERVER_ERROR, status_code=500)


__all__ = [
    "ActionResult",
    "GENERIC_SERVER_ERROR",
    "VALIDATION_FAILED",
    "coerce_label",
    "field_errors",
]
