import pytest
from fastapi.testclient import TestClient
from decimal import Decimal

from roofcrm.crud import crud_location

pytestmark = pytest.mark.api


def test_ping(client: TestClient):
    response = client.get("/ping")
    assert response.status_code == 200
    assert response.json() == {"message": "pong"}


def test_requires_token(client: TestClient, make_lead):
    lead = make_lead()
    response = client.get(f"/api/v1/leads/{lead.id}")
    assert response.status_code == 401


def test_rejects_bad_token(client: TestClient, make_lead):
    lead = make_lead()
    response = client.get(f"/api/v1/leads/{lead.id}", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_create_and_read_lead(client: TestClient, sales_rep, location, headers_for):
    response = client.post(
        "/api/v1/leads/",
        json={"full_name": "Pat Homeowner", "location_id": location.id},
        headers=headers_for(sales_rep),
    )
    assert response.status_code == 201
    lead_id = response.json()["id"]

    response = client.get(f"/api/v1/leads/{lead_id}", headers=headers_for(sales_rep))
    assert response.status_code == 200
    assert response.json()["full_name"] == "Pat Homeowner"


def test_assign_sales_rep_creates_commission(client: TestClient, sales_rep, make_lead, add_invoice, headers_for):
    lead = make_lead()
    add_invoice(lead, 2000)

    response = client.put(
        f"/api/v1/leads/{lead.id}/assignments/sales_rep_id",
        json={"user_id": sales_rep.id},
        headers=headers_for(sales_rep),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["lead"]["sales_rep_id"] == sales_rep.id
    assert data["commission"]["success"] is True
    assert Decimal(str(data["commission"]["amount"])) == Decimal("200.00")

    response = client.get(f"/api/v1/leads/{lead.id}/commissions", headers=headers_for(sales_rep))
    assert response.status_code == 200
    rows = response.json()
    assert len(rows) == 1
    assert rows[0]["user"]["id"] == sales_rep.id
    assert rows[0]["status"] == "pending"
    assert rows[0]["created_by"] == sales_rep.id


def test_assignment_sticks_without_commission(client: TestClient, make_user, make_lead, headers_for):
    unconfigured = make_user(role="production")
    lead = make_lead()

    response = client.put(
        f"/api/v1/leads/{lead.id}/assignments/production_manager_id",
        json={"user_id": unconfigured.id},
        headers=headers_for(unconfigured),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["lead"]["production_manager_id"] == unconfigured.id
    assert data["commission"]["success"] is True
    assert data["commission"]["commission_id"] is None


def test_unassign_cancels_commissions(client: TestClient, sales_rep, make_lead, add_invoice, headers_for):
    lead = make_lead()
    add_invoice(lead, 2000)
    client.put(
        f"/api/v1/leads/{lead.id}/assignments/sales_rep_id", json={"user_id": sales_rep.id}, headers=headers_for(sales_rep)
    )

    response = client.put(
        f"/api/v1/leads/{lead.id}/assignments/sales_rep_id", json={"user_id": None}, headers=headers_for(sales_rep)
    )

    assert response.status_code == 200
    assert response.json()["lead"]["sales_rep_id"] is None
    assert response.json()["commission"]["cancelled_count"] == 1
    summary = client.get(f"/api/v1/leads/{lead.id}/commissions/summary", headers=headers_for(sales_rep)).json()
    assert summary["count_cancelled"] == 1
    assert Decimal(str(summary["total_owed"])) == Decimal("0")


def test_override_slots_cannot_be_assigned(client: TestClient, sales_rep, make_lead, headers_for):
    lead = make_lead()
    response = client.put(
        f"/api/v1/leads/{lead.id}/assignments/office_override", json={"user_id": sales_rep.id}, headers=headers_for(sales_rep)
    )
    assert response.status_code == 400


def test_unknown_slot_is_a_validation_error(client: TestClient, sales_rep, make_lead, headers_for):
    lead = make_lead()
    response = client.put(
        f"/api/v1/leads/{lead.id}/assignments/closer_id", json={"user_id": sales_rep.id}, headers=headers_for(sales_rep)
    )
    assert response.status_code == 422


def test_assigning_unknown_user(client: TestClient, sales_rep, make_lead, headers_for):
    lead = make_lead()
    response = client.put(
        f"/api/v1/leads/{lead.id}/assignments/sales_rep_id", json={"user_id": 9999}, headers=headers_for(sales_rep)
    )
    assert response.status_code == 404


def test_other_company_lead_is_hidden(client: TestClient, db_session, make_user, make_lead, headers_for):
    lead = make_lead()
    rival = crud_location.create_company(db_session, name="Rival Roofing")
    outsider = make_user(role="admin", company_id=rival.id)

    response = client.get(f"/api/v1/leads/{lead.id}/commissions", headers=headers_for(outsider))
    assert response.status_code == 404


def test_invoice_creation_refreshes_commissions(client: TestClient, sales_rep, make_lead, add_invoice, headers_for):
    lead = make_lead(sales_rep_id=sales_rep.id)
    add_invoice(lead, 1000)
    client.post(f"/api/v1/leads/{lead.id}/commissions/refresh", headers=headers_for(sales_rep))

    response = client.post(
        f"/api/v1/leads/{lead.id}/invoices",
        json={"invoice_number": "INV-1002", "subtotal": "1500.00", "total": "1500.00"},
        headers=headers_for(sales_rep),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["invoice"]["invoice_number"] == "INV-1002"
    assert data["commissions"]["success"] is True
    rows = client.get(f"/api/v1/leads/{lead.id}/commissions", headers=headers_for(sales_rep)).json()
    assert len(rows) == 1
    assert Decimal(str(rows[0]["base_amount"])) == Decimal("1500")
    assert Decimal(str(rows[0]["calculated_amount"])) == Decimal("150")


def test_refresh_endpoint(client: TestClient, sales_rep, make_lead, add_invoice, headers_for):
    lead = make_lead(sales_rep_id=sales_rep.id)
    add_invoice(lead, 2000)

    response = client.post(f"/api/v1/leads/{lead.id}/commissions/refresh", headers=headers_for(sales_rep))

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert len(data["assignments"]) == 1
    assert data["fan_out"]["office_created"] == []


def test_list_invoices_newest_first(client: TestClient, sales_rep, make_lead, add_invoice, headers_for):
    lead = make_lead()
    add_invoice(lead, 1000)
    newest = add_invoice(lead, 1200)

    response = client.get(f"/api/v1/leads/{lead.id}/invoices", headers=headers_for(sales_rep))

    assert response.status_code == 200
    assert [i["id"] for i in response.json()][0] == newest.id
