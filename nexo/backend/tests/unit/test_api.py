"""API tests for the HTTP surface."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from types import SimpleNamespace

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_nexo.db")
os.environ.setdefault("NTFY_ENABLED", "false")
os.environ.setdefault("REDIS_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient

from nexo.backend.src.core.security import get_current_user
from nexo.backend.src.db import get_engine, session_scope
from nexo.backend.src.main import app
from nexo.backend.src.models import User
from nexo.backend.src.models.base import Base
from nexo.backend.src.services import s3
from nexo.backend.src.services.admin_users import provision_user


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture()
def seeded_users() -> dict[str, User]:
    with session_scope() as session:
        return {
            "admin": provision_user(session, email="it@ieq-nexo.org", name="IT", role="admin"),
            "president": provision_user(
                session, email="presidencia@ieq-nexo.org", name="Presidencia", role="president"
            ),
            "staff": provision_user(session, email="caja@ieq-nexo.org", name="Caja"),
            "other": provision_user(session, email="farmacia@ieq-nexo.org", name="Farmacia"),
        }


@pytest.fixture()
def client() -> TestClient:
    return TestClient(app)


def act_as(user: User) -> None:
    app.dependency_overrides[get_current_user] = lambda: user


def _open_ticket(client: TestClient) -> dict:
    response = client.post(
        "/api/tickets",
        json={
            "subject": "Cash register frozen",
            "description": "The POS terminal does not respond at all.",
            "priority": "Alta",
        },
    )
    assert response.status_code == 200, response.json()
    return response.json()


def test_health_and_enum_metadata(client: TestClient) -> None:
    assert client.get("/api/health/live").json() == {
        "status": "live",
        "service": "nexo-clinic-operations",
    }

    ready = client.get("/api/health/ready").json()
    assert ready["status"] == "ready"
    assert ready["database"] == "sqlite"
    assert ready["display_id_counters"] == 0
    assert ready["notifications_enabled"] is False
    assert ready["cache_enabled"] is False

    enums = client.get("/api/meta/enums").json()
    assert {"value": "InfoRequested", "label": "Información Solicitada"} in enums["approval_status"]
    assert "maintenance_priority" in enums


def test_ticket_flow(client: TestClient, seeded_users: dict[str, User]) -> None:
    act_as(seeded_users["staff"])
    created = _open_ticket(client)
    assert created["success"] is True
    assert created["display_id"] == "Ticket-000001"
    assert "status_code" not in created

    listing = client.get("/api/tickets").json()
    assert [ticket["id"] for ticket in listing] == [created["entity_id"]]

    comment = client.post(f"/api/tickets/{created['entity_id']}/comments", json={"text": "Still down"})
    assert comment.status_code == 200

    forbidden = client.patch(f"/api/tickets/{created['entity_id']}/status", json={"status": "Closed"})
    assert forbidden.status_code == 403

    act_as(seeded_users["other"])
    assert client.get(f"/api/tickets/{created['entity_id']}").status_code == 404

    act_as(seeded_users["admin"])
    updated = client.patch(f"/api/tickets/{created['entity_id']}/status", json={"status": "Cerrado"})
    assert updated.status_code == 200
    detail = client.get(f"/api/tickets/{created['entity_id']}").json()
    assert detail["status"] == "Closed"
    assert [item["text"] for item in detail["comments"]] == ["Still down"]

    stats = client.get("/api/tickets/stats").json()
    assert stats["summary"]["closed"] == 1


def test_ticket_validation_returns_field_errors(client: TestClient, seeded_users: dict[str, User]) -> None:
    act_as(seeded_users["staff"])

    response = client.post("/api/tickets", json={"subject": "Hey", "description": "", "priority": "Low"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert set(body["errors"]) == {"subject", "description"}


def test_approval_flow(client: TestClient, seeded_users: dict[str, User]) -> None:
    act_as(seeded_users["staff"])
    created = client.post(
        "/api/approvals",
        json={
            "type": "ProviderPayment",
            "subject": "Cleaning services",
            "supplier": "Limpieza Total",
            "total_amount_to_pay": 300,
        },
    ).json()
    assert created["success"] is True, created
    request_id = created["entity_id"]

    assert client.post(f"/api/approvals/{request_id}/approve", json={}).status_code == 403

    act_as(seeded_users["president"])
    queue = client.get("/api/approvals").json()
    assert [item["id"] for item in queue] == [request_id]

    mismatch = client.post(
        f"/api/approvals/{request_id}/approve",
        json={
            "approved_payment_type": "Installments",
            "approved_amount": 300,
            "installments": [
                {"amount": 100, "due_date": "2030-01-01"},
                {"amount": 100, "due_date": "2030-02-01"},
            ],
        },
    )
    assert mismatch.status_code == 400
    assert "__root__" in mismatch.json()["errors"]

    approved = client.post(
        f"/api/approvals/{request_id}/approve",
        json={
            "approved_payment_type": "Cuotas",
            "approved_amount": 300,
            "installments": [
                {"amount": 150, "due_date": "2030-01-01"},
                {"amount": 150, "due_date": "2030-02-01"},
            ],
        },
    )
    assert approved.status_code == 200, approved.json()

    again = client.post(f"/api/approvals/{request_id}/reject", json={"comment": "Too late"})
    assert again.status_code == 400
    assert again.json()["message"] == "The request is not in a decidable state."

    detail = client.get(f"/api/approvals/{request_id}").json()
    assert detail["status"] == "Approved"
    assert detail["remaining_amount"] == 300
    assert [item["amount"] for item in detail["installments"]] == [150, 150]

    installment_id = detail["installments"][0]["id"]
    paid = client.patch(
        f"/api/approvals/installments/{installment_id}/status", json={"status": "Paid"}
    )
    assert paid.status_code == 200
    assert client.get(f"/api/approvals/{request_id}").json()["total_paid_amount"] == 150


def test_requesters_only_see_their_own_requests(client: TestClient, seeded_users: dict[str, User]) -> None:
    act_as(seeded_users["staff"])
    created = client.post(
        "/api/approvals",
        json={
            "type": "Purchase",
            "subject": "Label printer",
            "item_description": "Thermal label printer",
        },
    ).json()

    act_as(seeded_users["other"])
    assert client.get("/api/approvals").json() == []
    assert client.get(f"/api/approvals/{created['entity_id']}").status_code == 404


def test_delete_user_with_ticket_conflicts(client: TestClient, seeded_users: dict[str, User]) -> None:
    act_as(seeded_users["staff"])
    _open_ticket(client)

    act_as(seeded_users["admin"])
    response = client.delete(f"/api/admin/users/{seeded_users['staff'].id}")
    assert response.status_code == 409
    assert response.json()["success"] is False

    deleted = client.delete(f"/api/admin/users/{seeded_users['other'].id}")
    assert deleted.status_code == 200

    emails = {user["email"] for user in client.get("/api/admin/users").json()}
    assert "farmacia@ieq-nexo.org" not in emails

    audit = client.get("/api/admin/audit", params={"limit": 5}).json()
    assert audit[0]["action"] == "User Deleted"


def test_admin_routes_require_admin(client: TestClient, seeded_users: dict[str, User]) -> None:
    act_as(seeded_users["president"])

    assert client.get("/api/admin/users").status_code == 403
    assert client.get("/api/maintenance").status_code == 403


def test_maintenance_endpoints(client: TestClient, seeded_users: dict[str, User]) -> None:
    act_as(seeded_users["admin"])
    created = client.post(
        "/api/maintenance",
        json={
            "title": "Autoclave pressure fault",
            "description": "The autoclave stops mid-cycle with a pressure alarm.",
            "location": "Esterilizacion",
            "priority": "Crítica",
            "assigned_provider_name": "MedTech Service",
        },
    )
    assert created.status_code == 200, created.json()
    case_id = created.json()["entity_id"]

    refused = client.patch(
        f"/api/maintenance/{case_id}",
        json={"current_status": "Resolved", "notes": "Done", "assigned_provider_name": "MedTech Service"},
    )
    assert refused.status_code == 400

    detail = client.get(f"/api/maintenance/{case_id}").json()
    assert detail["current_status"] == "Registered"
    assert detail["priority"] == "Critical"


def test_failure_endpoints(client: TestClient, seeded_users: dict[str, User]) -> None:
    act_as(seeded_users["staff"])
    assert client.get("/api/failures").status_code == 403

    act_as(seeded_users["admin"])
    created = client.post(
        "/api/failures",
        json={
            "title": "Ventilator does not power on",
            "description": "The ICU ventilator stays dark after the morning check.",
            "equipment_name": "Ventilador Drager V500",
            "location": "UCI",
            "severity": "Crítica",
            "failure_type": "Eléctrica",
        },
    )
    assert created.status_code == 200, created.json()
    failure_id = created.json()["entity_id"]
    assert created.json()["display_id"] == "Falla-000001"

    noted = client.post(f"/api/failures/{failure_id}/notes", json={"notes": "Fuse checked"})
    assert noted.status_code == 200

    act_as(seeded_users["president"])
    assert client.post(f"/api/failures/{failure_id}/notes", json={"notes": "x"}).status_code == 403
    listing = client.get("/api/failures", params={"severity": "Critical"}).json()
    assert [item["id"] for item in listing] == [failure_id]

    detail = client.get(f"/api/failures/{failure_id}").json()
    assert detail["status"] == "Reported"
    assert [entry["action"] for entry in detail["log"]] == ["Note Added", "Failure Reported"]
    assert client.get("/api/failures/999").status_code == 404


def test_inventory_import_endpoint(client: TestClient, seeded_users: dict[str, User]) -> None:
    act_as(seeded_users["admin"])
    content = "Nombre,Categoría,Número de Serie\nMonitor Samsung,Monitor,MS-1\n".encode("utf-8")

    response = client.post(
        "/api/inventory/import", files={"file": ("inventario.csv", content, "text/csv")}
    )

    assert response.status_code == 200, response.json()
    assert response.json()["imported_count"] == 1
    items = client.get("/api/inventory", params={"category": "Monitor"}).json()
    assert [item["serial_number"] for item in items] == ["MS-1"]


def test_attachment_upload_and_download(
    client: TestClient,
    seeded_users: dict[str, User],
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.setattr(
        s3,
        "get_settings",
        lambda: SimpleNamespace(aws_s3_bucket="local", local_storage_path=str(tmp_path)),
    )
    act_as(seeded_users["staff"])
    ticket = _open_ticket(client)

    uploaded = client.post(
        "/api/attachments",
        data={"ticket_id": str(ticket["entity_id"])},
        files={"file": ("screen.png", b"\x89PNG data", "image/png")},
    )
    assert uploaded.status_code == 200, uploaded.json()

    link = client.get(f"/api/attachments/{uploaded.json()['entity_id']}/download").json()
    assert link["file_name"] == "screen.png"
    assert link["url"].startswith("file://")

    missing_owner = client.post(
        "/api/attachments", files={"file": ("screen.png", b"data", "image/png")}
    )
    assert missing_owner.status_code == 400
