"""Inventory endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Depends, File, Query, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..core.enums import InventoryCategory, InventoryStatus
from ..core.security import get_current_user, require_admin_user
from ..db import get_session_dependency
from ..models import InventoryItem, User
from ..schemas.common import ActionResult
from ..schemas.inventory import InventoryImportResult, InventoryItemRead
from ..services import inventory as inventory_service
from .responses import action_response

router = APIRouter(prefix="/inventory", tags=["Inventory"])

SessionDep = Annotated[Session, Depends(get_session_dependency)]
AdminDep = Annotated[User, Depends(require_admin_user)]


@router.get("", response_model=list[InventoryItemRead])
def list_items(
    session: SessionDep,
    _: Annotated[User, Depends(get_current_user)],
    category: InventoryCategory | None = None,
    status_filter: Annotated[InventoryStatus | None, Query(alias="status")] = None,
    location: str | None = None,
) -> list[InventoryItem]:
    return inventory_service.list_inventory_items(
        session, category=category, status=status_filter, location=location
    )


@router.post("", response_model=ActionResult)
def add_item(payload: Annotated[dict, Body()], session: SessionDep, user: AdminDep) -> JSONResponse:
    return action_response(inventory_service.add_inventory_item(session, user, payload))


@router.put("/{item_id}", response_model=ActionResult)
def update_item(
    item_id: int, payload: Annotated[dict, Body()], session: SessionDep, user: AdminDep
) -> JSONResponse:
    return action_response(
        inventory_service.update_inventory_item(session, user, item_id, payload)
    )


@router.delete("/{item_id}", response_model=ActionResult)
def delete_item(item_id: int, session: SessionDep, user: AdminDep) -> JSONResponse:
    return action_response(inventory_service.delete_inventory_item(session, user, item_id))


@router.post("/import", response_model=InventoryImportResult)
async def import_items(
    session: SessionDep,
    user: AdminDep,
    file: UploadFile = File(...),
) -> JSONResponse:
    """Bulk-load items from an .xlsx or .csv spreadsheet."""

    content = await file.read()
    return action_response(
        inventory_service.import_inventory_items(session, user, content, file.filename or "")
    )
