"""Domain errors raised inside the action layer.

Services translate these into :class:`~nexo.backend.src.schemas.common.ActionResult`
values before returning, so nothing below the router ever sees an exception.
"""

from __future__ import annotations

from fastapi import status


class ActionError(Exception):
    """Base class for user-facing action failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ActionError):
    """The targeted row does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class StateConflictError(ActionError):
    """The targeted row is not in a state that allows the action."""


class UniquenessError(ActionError):
    """A unique column would be duplicated."""

    status_code = status.HTTP_409_CONFLICT


class ReferentialError(ActionError):
    """The row is still referenced by other rows."""

    status_code = status.HTTP_409_CONFLICT


class PermissionDeniedError(ActionError):
    status_code = status.HTTP_403_FORBIDDEN


class DisplayIdAllocationError(RuntimeError):
    """Raised when the display-id counter cannot be incremented."""


__all__ = [
    "ActionError",
    "DisplayIdAllocationError",
    "NotFoundError",
    "PermissionDeniedError",
    "ReferentialError",
    "StateConflictError",
    "UniquenessError",
]
