"""Tests for inventory actions and spreadsheet import."""

from __future__ import annotations

import os
import sys
from datetime import date
from io import BytesIO
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_nexo.db")
os.environ.setdefault("NTFY_ENABLED", "false")
os.environ.setdefault("REDIS_ENABLED", "false")

import pandas as pd
import pytest

from nexo.backend.src.core.enums import InventoryCategory, InventoryStatus
from nexo.backend.src.db import get_engine, session_scope
from nexo.backend.src.models import InventoryItem, User
from nexo.backend.src.models.base import Base
from nexo.backend.src.services import inventory
from nexo.backend.src.services.admin_users import provision_user


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def admin() -> User:
    with session_scope() as session:
        return provision_user(session, email="it@ieq-nexo.org", name="IT", role="admin")


def _item(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "name": "Dell OptiPlex 7090",
        "category": "Computadora",
        "brand": "Dell",
        "serial_number": "SN-001",
        "ram": "16GB",
        "storage_type": "SSD",
        "location": "Recepcion",
    }
    payload.update(overrides)
    return payload


def test_add_item_defaults_and_labels(admin: User) -> None:
    with session_scope() as session:
        result = inventory.add_inventory_item(session, admin, _item())

    assert result.success, result.errors
    assert result.display_id == "InventoryItem-000001"
    with session_scope() as session:
        item = session.get(InventoryItem, result.entity_id)
        assert item.category == InventoryCategory.COMPUTER.value
        assert item.status == InventoryStatus.IN_USE.value
        assert item.quantity == 1
        assert item.ram == "16GB"
        assert item.added_by_user_name == "IT"


def test_add_item_rejects_duplicate_serial(admin: User) -> None:
    with session_scope() as session:
        assert inventory.add_inventory_item(session, admin, _item()).success

    with session_scope() as session:
        result = inventory.add_inventory_item(session, admin, _item(name="Another PC"))

    assert result.success is False
    assert result.status_code == 409
    assert result.message == "An item with serial number 'SN-001' already exists."


def test_items_without_serial_do_not_conflict(admin: User) -> None:
    for name in ("Mouse one", "Mouse two"):
        with session_scope() as session:
            result = inventory.add_inventory_item(
                session, admin, _item(name=name, category="Mouse", serial_number="")
            )
        assert result.success, result.errors


def test_add_item_validation(admin: User) -> None:
    with session_scope() as session:
        result = inventory.add_inventory_item(
            session, admin, _item(name="PC", category="Toaster", quantity=0)
        )

    assert result.success is False
    assert set(result.errors) == {"name", "category", "quantity"}


def test_update_keeps_own_serial_and_delete(admin: User) -> None:
    with session_scope() as session:
        created = inventory.add_inventory_item(session, admin, _item())

    with session_scope() as session:
        updated = inventory.update_inventory_item(
            session, admin, created.entity_id, _item(status="En Reparacion")
        )
    assert updated.success, updated.errors

    with session_scope() as session:
        assert session.get(InventoryItem, created.entity_id).status == "InRepair"

    with session_scope() as session:
        deleted = inventory.delete_inventory_item(session, admin, created.entity_id)
    assert deleted.success
    with session_scope() as session:
        assert session.get(InventoryItem, created.entity_id) is None


def test_list_filters(admin: User) -> None:
    with session_scope() as session:
        inventory.add_inventory_item(session, admin, _item())
        inventory.add_inventory_item(
            session,
            admin,
            _item(name="HP LaserJet", category="Impresora", serial_number="SN-002", location="Laboratorio"),
        )

    with session_scope() as session:
        printers = inventory.list_inventory_items(session, category=InventoryCategory.PRINTER)
        in_lab = inventory.list_inventory_items(session, location="labor")

    assert [item.name for item in printers] == ["HP LaserJet"]
    assert [item.name for item in in_lab] == ["HP LaserJet"]


def test_map_sheet_row_fills_defaults() -> None:
    mapped = inventory.map_sheet_row(
        {"name": " Laptop ", "category": "Laptop", "quantity": "", "purchase_date": "15/03/2023"}
    )

    assert mapped["name"] == "Laptop"
    assert mapped["quantity"] == 1
    assert mapped["status"] == InventoryStatus.IN_USE
    assert mapped["purchase_date"] == date(2023, 3, 15)


def test_import_csv_reports_row_errors(admin: User) -> None:
    with session_scope() as session:
        inventory.add_inventory_item(session, admin, _item(serial_number="SN-EXISTING"))

    csv_content = (
        "Nombre,Categoría,Número de Serie,Cantidad,Estado,Columna Extra\n"
        "Lenovo ThinkPad,Laptop,SN-100,,En Uso,x\n"
        "PC,Computadora,SN-101,1,,x\n"
        "Epson L3150,Impresora,SN-EXISTING,1,,x\n"
        "Epson L3250,Impresora,SN-100,1,,x\n"
        "Router Cisco,Router,,2,En Almacen,x\n"
    ).encode("utf-8")

    with session_scope() as session:
        result = inventory.import_inventory_items(session, admin, csv_content, "inventario.csv")

    assert result.success is False
    assert result.status_code == 200
    assert result.imported_count == 2
    errors = {error.row: error.message for error in result.row_errors}
    assert set(errors) == {3, 4, 5}
    assert errors[3].startswith("Validation error: name")
    assert errors[4] == "An item with serial number 'SN-EXISTING' already exists."
    assert errors[5] == "An item with serial number 'SN-100' already exists."

    with session_scope() as session:
        names = {item.name for item in session.query(InventoryItem).all()}
    assert names == {"Dell OptiPlex 7090", "Lenovo ThinkPad", "Router Cisco"}


def test_import_xlsx(admin: User) -> None:
    frame = pd.DataFrame(
        [
            {"Nombre": "Monitor LG 24", "Categoría": "Monitor", "Ubicación": "Consultorio 2"},
            {"Nombre": "Teclado Logitech", "Categoría": "Teclado", "Ubicación": "Consultorio 2"},
        ]
    )
    buffer = BytesIO()
    frame.to_excel(buffer, index=False)

    with session_scope() as session:
        result = inventory.import_inventory_items(session, admin, buffer.getvalue(), "equipos.xlsx")

    assert result.success, result.row_errors
    assert result.imported_count == 2
    assert result.row_errors == []


def test_import_rejects_unsupported_files(admin: User) -> None:
    with session_scope() as session:
        result = inventory.import_inventory_items(session, admin, b"hello", "notes.txt")

    assert result.success is False
    assert result.message == "Upload an .xlsx or .csv file."


def test_import_of_only_bad_rows_fails(admin: User) -> None:
    content = "Nombre,Categoría\nPC,Nave espacial\n".encode("utf-8")

    with session_scope() as session:
        result = inventory.import_inventory_items(session, admin, content, "bad.csv")

    assert result.success is False
    assert result.status_code == 400
    assert result.imported_count == 0
    assert [error.row for error in result.row_errors] == [2]
