"""Service API tests."""

import uuid
from datetime import UTC, datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from subscribe.core.database import get_db
from subscribe.main import app
from subscribe.models.invoice import Invoice, InvoiceStatus
from subscribe.models.plan import MonthlyBehavior, Plan, PlanType


@pytest.fixture
def client(clock):
    """Create test client with the clock frozen at 2024-01-15."""
    return TestClient(app)


@pytest.fixture
def db_session():
    """Create a database session for direct repository testing."""
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


def create_test_plan(db_session, code: str = "monthly", **kwargs) -> Plan:
    """Helper to create a test plan."""
    fields = {
        "plan_type": PlanType.MONTHLY.value,
        "plan_monthly_behavior": MonthlyBehavior.SIGNUP.value,
        "plan_month_interval": 1,
        "price": Decimal("10"),
    }
    fields.update(kwargs)
    plan = Plan(code=code, name=f"Test Plan {code}", **fields)
    db_session.add(plan)
    db_session.commit()
    db_session.refresh(plan)
    return plan


def _subscribe(client, plan: Plan, code: str = "svc-1") -> dict:
    response = client.post("/v1/services/", json={"code": code, "plan_id": str(plan.id)})
    assert response.status_code == 201
    return response.json()


def _first_invoice(client, service_id: str) -> dict:
    return client.get(f"/v1/services/{service_id}/invoices").json()[0]


class TestCreateService:
    def test_new_service_gets_first_invoice(self, client, db_session):
        service = _subscribe(client, create_test_plan(db_session, setup_price=Decimal("5")))

        assert service["status"] == "new"
        assert service["count_renewal"] == 0
        invoices = client.get(f"/v1/services/{service['id']}/invoices").json()
        assert len(invoices) == 1
        assert invoices[0]["kind"] == "first"
        assert invoices[0]["status"] == "unpaid"
        assert Decimal(invoices[0]["total"]) == Decimal("15")

    def test_trial_service_is_not_invoiced_yet(self, client, db_session):
        plan = create_test_plan(db_session, is_custom_membership=True, trial_days=14)
        service = _subscribe(client, plan)

        assert service["status"] == "trial"
        assert service["current_period_end"].startswith("2024-01-29")
        assert client.get(f"/v1/services/{service['id']}/invoices").json() == []

    def test_duplicate_code(self, client, db_session):
        plan = create_test_plan(db_session)
        _subscribe(client, plan)
        response = client.post("/v1/services/", json={"code": "svc-1", "plan_id": str(plan.id)})
        assert response.status_code == 409

    def test_unknown_plan(self, client):
        response = client.post(
            "/v1/services/", json={"code": "svc-1", "plan_id": str(uuid.uuid4())}
        )
        assert response.status_code == 400

    def test_inactive_plan(self, client, db_session):
        plan = create_test_plan(db_session, is_active=False)
        response = client.post("/v1/services/", json={"code": "svc-1", "plan_id": str(plan.id)})
        assert response.status_code == 400

    def test_missing_code(self, client, db_session):
        plan = create_test_plan(db_session)
        response = client.post("/v1/services/", json={"plan_id": str(plan.id)})
        assert response.status_code == 422


class TestReadServices:
    def test_get(self, client, db_session):
        service = _subscribe(client, create_test_plan(db_session))
        response = client.get(f"/v1/services/{service['id']}")
        assert response.status_code == 200
        assert response.json()["code"] == "svc-1"

    def test_get_not_found(self, client):
        response = client.get(f"/v1/services/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["detail"] == "Service not found"

    def test_list_by_status(self, client, db_session):
        plan = create_test_plan(db_session)
        trial_plan = create_test_plan(
            db_session, code="trial", is_custom_membership=True, trial_days=7
        )
        _subscribe(client, plan, "svc-1")
        _subscribe(client, trial_plan, "svc-2")

        response = client.get("/v1/services/", params={"status": "trial"})

        assert response.status_code == 200
        assert [s["code"] for s in response.json()] == ["svc-2"]
        assert response.headers["X-Total-Count"] == "1"

    def test_invoices_not_found(self, client):
        response = client.get(f"/v1/services/{uuid.uuid4()}/invoices")
        assert response.status_code == 404


class TestRecordPayment:
    def test_activates_service(self, client, db_session):
        service = _subscribe(client, create_test_plan(db_session))
        invoice = _first_invoice(client, service["id"])

        response = client.post(
            f"/v1/services/{service['id']}/payments", json={"invoice_id": invoice["id"]}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "active"
        assert data["count_renewal"] == 1
        assert data["current_period_start"].startswith("2024-01-15")
        assert data["current_period_end"].startswith("2024-02-15")
        assert _first_invoice(client, service["id"])["status"] == "paid"

    def test_paying_twice_is_a_no_op(self, client, db_session):
        service = _subscribe(client, create_test_plan(db_session))
        invoice = _first_invoice(client, service["id"])
        url = f"/v1/services/{service['id']}/payments"

        client.post(url, json={"invoice_id": invoice["id"]})
        response = client.post(url, json={"invoice_id": invoice["id"]})

        assert response.status_code == 200
        assert response.json()["count_renewal"] == 1
        assert response.json()["current_period_end"].startswith("2024-02-15")

    def test_invoice_of_another_service(self, client, db_session):
        plan = create_test_plan(db_session)
        service = _subscribe(client, plan, "svc-1")
        other = _subscribe(client, plan, "svc-2")
        invoice = _first_invoice(client, other["id"])

        response = client.post(
            f"/v1/services/{service['id']}/payments", json={"invoice_id": invoice["id"]}
        )

        assert response.status_code == 400

    def test_invoice_not_found(self, client, db_session):
        service = _subscribe(client, create_test_plan(db_session))
        response = client.post(
            f"/v1/services/{service['id']}/payments", json={"invoice_id": str(uuid.uuid4())}
        )
        assert response.status_code == 404

    def test_voided_invoice(self, client, db_session):
        service = _subscribe(client, create_test_plan(db_session))
        invoice_id = _first_invoice(client, service["id"])["id"]
        invoice = db_session.query(Invoice).filter(Invoice.id == uuid.UUID(invoice_id)).one()
        invoice.status = InvoiceStatus.VOIDED.value
        db_session.commit()

        response = client.post(
            f"/v1/services/{service['id']}/payments", json={"invoice_id": invoice_id}
        )

        assert response.status_code == 400
        assert "voided" in response.json()["detail"]


class TestRenewService:
    def test_period_not_ended(self, client, db_session):
        service = _subscribe(client, create_test_plan(db_session))
        invoice = _first_invoice(client, service["id"])
        client.post(f"/v1/services/{service['id']}/payments", json={"invoice_id": invoice["id"]})

        response = client.post(f"/v1/services/{service['id']}/renew")

        assert response.status_code == 200
        assert response.json()["status"] == "active"
        assert len(client.get(f"/v1/services/{service['id']}/invoices").json()) == 1

    def test_unpaid_renewal_goes_past_due(self, client, db_session, clock):
        service = _subscribe(client, create_test_plan(db_session))
        invoice = _first_invoice(client, service["id"])
        client.post(f"/v1/services/{service['id']}/payments", json={"invoice_id": invoice["id"]})

        clock.set_now(datetime(2024, 2, 15, tzinfo=UTC))
        response = client.post(f"/v1/services/{service['id']}/renew")

        assert response.status_code == 200
        assert response.json()["status"] == "past_due"
        invoices = client.get(f"/v1/services/{service['id']}/invoices").json()
        assert [i["kind"] for i in invoices] == ["first", "renewal"]
        assert invoices[1]["status"] == "unpaid"

        # Paying the overdue invoice renews the service
        response = client.post(
            f"/v1/services/{service['id']}/payments", json={"invoice_id": invoices[1]["id"]}
        )
        assert response.json()["status"] == "active"
        assert response.json()["current_period_end"].startswith("2024-03-15")

    def test_not_found(self, client):
        response = client.post(f"/v1/services/{uuid.uuid4()}/renew")
        assert response.status_code == 404


class TestCancelService:
    def test_cancel(self, client, db_session):
        service = _subscribe(client, create_test_plan(db_session))

        response = client.post(
            f"/v1/services/{service['id']}/cancel", json={"reason": "Customer request"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "cancelled"
        assert data["status_reason"] == "Customer request"
        assert data["cancelled_at"] is not None

    def test_cancel_twice(self, client, db_session):
        service = _subscribe(client, create_test_plan(db_session))
        client.post(f"/v1/services/{service['id']}/cancel", json={})

        response = client.post(f"/v1/services/{service['id']}/cancel", json={})

        assert response.status_code == 409
        assert "cancelled" in response.json()["detail"]

    def test_cancelled_service_ignores_payment(self, client, db_session):
        service = _subscribe(client, create_test_plan(db_session))
        invoice = _first_invoice(client, service["id"])
        client.post(f"/v1/services/{service['id']}/cancel", json={})

        response = client.post(
            f"/v1/services/{service['id']}/payments", json={"invoice_id": invoice["id"]}
        )

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert response.json()["current_period_end"] is None
