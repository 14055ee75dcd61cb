"""Reference data for clients."""

from __future__ import annotations

from fastapi import APIRouter

from ..core.enums import LABEL_MAPS

router = APIRouter(prefix="/meta", tags=["Meta"])


@router.get("/enums")
def enum_labels() -> dict[str, list[dict[str, str]]]:
    """Return ``value``/``label`` options for every stored enum."""

    return {name: label_map.options() for name, label_map in LABEL_MAPS.items()}
