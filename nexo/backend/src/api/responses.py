"""Translate action results into HTTP responses."""

from __future__ import annotations

from fastapi.responses import JSONResponse

from ..schemas.common import ActionResult


def action_response(result: ActionResult) -> JSONResponse:
    """Serialize ``result`` with the HTTP status the action chose."""

    return JSONResponse(status_code=result.status_code, content=result.model_dump(mode="json"))


__all__ = ["action_response"]
