"""Boundary shared by every mutating action.

Actions raise freely while they work; the decorator turns whatever escapes
into an :class:`ActionResult` and rolls back the session, so routers never
see an exception from the action layer.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import TypeVar

import structlog
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import ActionError, DisplayIdAllocationError
from ..schemas.common import ActionResult

LOGGER = structlog.get_logger(__name__)

R = TypeVar("R", bound=ActionResult)


def action_boundary(event: str) -> Callable[[Callable[..., R]], Callable[..., R | ActionResult]]:
    """Wrap an action taking ``session`` as its first argument."""

    def decorator(func: Callable[..., R]) -> Callable[..., R | ActionResult]:
        @wraps(func)
        def wrapper(session: Session, *args, **kwargs):
            try:
                return func(session, *args, **kwargs)
            except ValidationError as exc:
                session.rollback()
                return ActionResult.validation_failure(exc)
            except ActionError as exc:
                session.rollback()
                LOGGER.info(f"{event}_refused", reason=exc.message)
                return ActionResult.from_error(exc)
            except (SQLAlchemyError, DisplayIdAllocationError) as exc:
                session.rollback()
                LOGGER.error(f"{event}_failed", error=str(exc), exc_info=True)
                return ActionResult.server_error()

        return wrapper

    return decorator


__all__ = ["action_boundary"]
