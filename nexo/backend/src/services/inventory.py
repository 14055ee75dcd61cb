"""Inventory actions, including bulk spreadsheet import."""

from __future__ import annotations

from datetime import datetime, timezone
from io import BytesIO
from pathlib import PurePath
from typing import Any
from zipfile import BadZipFile

import pandas as pd
import structlog
from pydantic import ValidationError
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.enums import InventoryCategory, InventoryStatus, normalize_label
from ..core.errors import ActionError, NotFoundError, UniquenessError
from ..core.redis_cache import DASHBOARD_VIEW, INVENTORY_VIEW, invalidate_views
from ..models import FailureReport, InventoryItem, User
from ..schemas.common import ActionResult, field_errors
from ..schemas.inventory import ImportRowError, InventoryImportResult, InventoryItemPayload
from .actions import action_boundary
from .audit import record_audit_event
from .display_ids import INVENTORY_ITEM_ENTITY, allocate_display_id

LOGGER = structlog.get_logger(__name__)

_HEADER_ALIASES: dict[str, tuple[str, ...]] = {
    "name": ("nombre", "nombre del articulo", "articulo", "equipo", "name", "item"),
    "category": ("categoria", "category"),
    "brand": ("marca", "brand"),
    "model": ("modelo", "model"),
    "serial_number": ("numero de serie", "n/s", "serial", "serie", "serial number"),
    "processor": ("procesador", "processor", "cpu"),
    "ram": ("ram", "memoria ram", "memory"),
    "storage_type": ("tipo de almacenamiento", "tipo de disco", "storage type"),
    "storage": ("capacidad de almacenamiento", "almacenamiento", "storage"),
    "quantity": ("cantidad", "cant", "quantity", "qty"),
    "location": ("ubicacion", "departamento", "asignacion", "location"),
    "status": ("estado", "status"),
    "notes": ("notas adicionales", "notas", "observaciones", "notes"),
    "purchase_date": ("fecha de compra", "purchase date"),
    "supplier": ("proveedor", "supplier"),
    "warranty_end_date": ("fin de garantia", "fecha fin de garantia", "warranty end date"),
}

HEADER_FIELDS: dict[str, str] = {
    normalize_label(alias): field
    for field, aliases in _HEADER_ALIASES.items()
    for alias in aliases
}

_DATE_FIELDS = ("purchase_date", "warranty_end_date")
SUPPORTED_IMPORT_SUFFIXES = (".xlsx", ".csv")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _duplicate_serial(serial_number: str) -> UniquenessError:
    return UniquenessError(f"An item with serial number '{serial_number}' already exists.")


def _ensure_serial_free(
    session: Session, serial_number: str | None, *, exclude_id: int | None = None
) -> None:
    if not serial_number:
        return
    query = session.query(InventoryItem.id).filter(InventoryItem.serial_number == serial_number)
    if exclude_id is not None:
        query = query.filter(InventoryItem.id != exclude_id)
    if query.first() is not None:
        raise _duplicate_serial(serial_number)


def _apply(item: InventoryItem, data: InventoryItemPayload) -> None:
    for field, value in data.model_dump().items():
        if hasattr(value, "value"):
            value = value.value
        setattr(item, field, value)


def _commit_item(session: Session, data: InventoryItemPayload) -> None:
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        if data.serial_number and "serial_number" in str(exc.orig):
            raise _duplicate_serial(data.serial_number) from exc
        raise


def _get_item_or_404(session: Session, item_id: int) -> InventoryItem:
    item = session.get(InventoryItem, item_id)
    if item is None:
        raise NotFoundError("Inventory item not found.")
    return item


@action_boundary("inventory_item_create")
def add_inventory_item(session: Session, actor: User, payload: dict) -> ActionResult:
    data = InventoryItemPayload.model_validate(payload)
    _ensure_serial_free(session, data.serial_number)

    item = InventoryItem(
        display_id=allocate_display_id(session, INVENTORY_ITEM_ENTITY),
        added_by_user_id=actor.id,
        added_by_user_name=actor.name,
    )
    _apply(item, data)
    session.add(item)
    _commit_item(session, data)

    record_audit_event(
        actor.email, "Inventory Item Added", f"Item {item.display_id}: {item.name}"
    )
    invalidate_views(INVENTORY_VIEW, DASHBOARD_VIEW)
    return ActionResult.ok(
        f"Item '{item.name}' added as {item.display_id}.",
        entity_id=item.id,
        display_id=item.display_id,
    )


@action_boundary("inventory_item_update")
def update_inventory_item(
    session: Session, actor: User, item_id: int, payload: dict
) -> ActionResult:
    data = InventoryItemPayload.model_validate(payload)
    item = _get_item_or_404(session, item_id)
    _ensure_serial_free(session, data.serial_number, exclude_id=item.id)

    _apply(item, data)
    item.updated_at = _utcnow()
    _commit_item(session, data)

    record_audit_event(
        actor.email, "Inventory Item Updated", f"Item {item.display_id}: {item.name}"
    )
    invalidate_views(INVENTORY_VIEW, DASHBOARD_VIEW)
    return ActionResult.ok(
        f"Item '{item.name}' updated.", entity_id=item.id, display_id=item.display_id
    )


@action_boundary("inventory_item_delete")
def delete_inventory_item(session: Session, actor: User, item_id: int) -> ActionResult:
    item = _get_item_or_404(session, item_id)
    display_id, name = item.display_id, item.name
    # Failure reports keep their equipment snapshot once the item is gone.
    session.execute(
        update(FailureReport)
        .where(FailureReport.inventory_item_id == item.id)
        .values(inventory_item_id=None)
        .execution_options(synchronize_session=False)
    )
    session.delete(item)
    session.commit()

    record_audit_event(actor.email, "Inventory Item Deleted", f"Item {display_id}: {name}")
    invalidate_views(INVENTORY_VIEW, DASHBOARD_VIEW)
    return ActionResult.ok("Item deleted.", entity_id=item_id, display_id=display_id)


def list_inventory_items(
    session: Session,
    *,
    category: InventoryCategory | None = None,
    status: InventoryStatus | None = None,
    location: str | None = None,
) -> list[InventoryItem]:
    query = session.query(InventoryItem)
    if category is not None:
        query = query.filter(InventoryItem.category == category.value)
    if status is not None:
        query = query.filter(InventoryItem.status == status.value)
    if location:
        query = query.filter(InventoryItem.location.ilike(f"%{location.strip()}%"))
    return query.order_by(InventoryItem.created_at.desc(), InventoryItem.id.desc()).all()


def read_inventory_sheet(content: bytes, filename: str) -> pd.DataFrame:
    """Load an uploaded spreadsheet as text cells; blank cells become ``None``."""

    suffix = PurePath(filename or "").suffix.lower()
    if suffix not in SUPPORTED_IMPORT_SUFFIXES:
        raise ActionError("Upload an .xlsx or .csv file.")

    buffer = BytesIO(content)
    try:
        if suffix == ".csv":
            frame = pd.read_csv(buffer, dtype=str, keep_default_na=False)
        else:
            frame = pd.read_excel(buffer, dtype=str)
    except (ValueError, UnicodeDecodeError, BadZipFile) as exc:
        LOGGER.warning("inventory_sheet_unreadable", filename=filename, error=str(exc))
        raise ActionError("The file could not be read as a spreadsheet.") from exc

    frame = frame.astype(object).where(frame.notna(), None)
    frame = frame.rename(columns=lambda column: HEADER_FIELDS.get(normalize_label(column), ""))
    # Unknown headers are dropped; the first column wins when two share a field.
    keep = (frame.columns != "") & ~frame.columns.duplicated()
    return frame.loc[:, keep]


def _clean_quantity(value: Any) -> Any:
    if value is None or str(value).strip() == "":
        return 1
    try:
        return int(float(str(value).strip()))
    except ValueError:
        return value


def _clean_date(value: Any) -> Any:
    if value is None or str(value).strip() == "":
        return None
    parsed = pd.to_datetime(str(value).strip(), errors="coerce", dayfirst=True)
    if pd.isna(parsed):
        return value
    return parsed.date()


def map_sheet_row(row: dict[Any, Any]) -> dict[str, Any]:
    """Translate one spreadsheet row into an :class:`InventoryItemPayload` dict."""

    mapped: dict[str, Any] = {}
    for column, value in row.items():
        if not column or column in mapped:
            continue
        mapped[column] = value.strip() if isinstance(value, str) else value

    mapped["quantity"] = _clean_quantity(mapped.get("quantity"))
    for field in _DATE_FIELDS:
        if field in mapped:
            mapped[field] = _clean_date(mapped[field])
    if not mapped.get("status"):
        mapped["status"] = InventoryStatus.IN_USE
    return mapped


def _row_validation_message(exc: ValidationError) -> str:
    return "; ".join(
        f"{field}: {', '.join(messages)}" for field, messages in field_errors(exc).items()
    )


@action_boundary("inventory_import")
def import_inventory_items(
    session: Session, actor: User, content: bytes, filename: str
) -> InventoryImportResult:
    """Insert every valid row; bad rows are reported by spreadsheet row number."""

    frame = read_inventory_sheet(content, filename)
    if frame.empty:
        return InventoryImportResult.failure("The file has no rows to import.")

    row_errors: list[ImportRowError] = []
    seen_serials: set[str] = set()
    imported = 0

    for offset, row in enumerate(frame.to_dict(orient="records")):
        row_number = offset + 2
        try:
            data = InventoryItemPayload.model_validate(map_sheet_row(row))
        except ValidationError as exc:
            row_errors.append(
                ImportRowError(
                    row=row_number,
                    message=f"Validation error: {_row_validation_message(exc)}",
                )
            )
            continue

        serial = data.serial_number
        if serial:
            try:
                if serial in seen_serials:
                    raise _duplicate_serial(serial)
                _ensure_serial_free(session, serial)
            except UniquenessError as exc:
                row_errors.append(ImportRowError(row=row_number, message=exc.message))
                continue

        try:
            with session.begin_nested():
                item = InventoryItem(
                    display_id=allocate_display_id(session, INVENTORY_ITEM_ENTITY),
                    added_by_user_id=actor.id,
                    added_by_user_name=actor.name,
                )
                _apply(item, data)
                session.add(item)
        except IntegrityError as exc:
            LOGGER.warning("inventory_import_row_rejected", row=row_number, error=str(exc))
            row_errors.append(
                ImportRowError(row=row_number, message="Row conflicts with existing data.")
            )
            continue

        if serial:
            seen_serials.add(serial)
        imported += 1

    session.commit()
    LOGGER.info(
        "inventory_import_completed",
        filename=filename,
        imported=imported,
        failed=len(row_errors),
    )

    if imported:
        record_audit_event(
            actor.email,
            "Inventory Bulk Import",
            f"Imported {imported} items. Rows with errors: {len(row_errors)}.",
        )
        invalidate_views(INVENTORY_VIEW, DASHBOARD_VIEW)
    else:
        record_audit_event(
            actor.email,
            "Inventory Bulk Import Failed",
            f"No items imported. Rows with errors: {len(row_errors)} of {len(frame)}.",
        )

    message = f"Import finished. {imported} items imported."
    if row_errors:
        message += f" {len(row_errors)} rows with errors."
    return InventoryImportResult(
        success=imported > 0 and not row_errors,
        message=message,
        imported_count=imported,
        row_errors=row_errors,
        status_code=200 if imported else 400,
    )


__all__ = [
    "HEADER_FIELDS",
    "add_inventory_item",
    "delete_inventory_item",
    "import_inventory_items",
    "list_inventory_items",
    "map_sheet_row",
    "read_inventory_sheet",
    "update_inventory_item",
]
