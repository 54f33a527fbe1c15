"""Plan API tests."""

import uuid
from datetime import UTC, datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from subscribe.core.database import get_db
from subscribe.main import app
from subscribe.models.plan import Plan


@pytest.fixture
def client():
    """Create test client."""
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


def _prorate_payload(code: str = "pro_31", **kwargs) -> dict:
    payload = {
        "code": code,
        "name": "Prorated on the 31st",
        "plan_type": "monthly",
        "plan_monthly_behavior": "monthly_prorate",
        "plan_month_day": 31,
        "price": "31.00",
    }
    payload.update(kwargs)
    return payload


class TestRoot:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"


class TestCreatePlan:
    def test_create_monthly_plan(self, client):
        response = client.post("/v1/plans/", json=_prorate_payload())
        assert response.status_code == 201
        data = response.json()
        assert data["code"] == "pro_31"
        assert data["plan_type"] == "monthly"
        assert data["plan_monthly_behavior"] == "monthly_prorate"
        assert data["plan_month_day"] == 31
        assert Decimal(data["price"]) == Decimal("31")
        assert data["is_active"] is True
        assert data["currency"] == "USD"

    def test_create_daily_plan(self, client):
        response = client.post(
            "/v1/plans/",
            json={"code": "weekly", "name": "Weekly", "plan_type": "daily", "plan_day_interval": 7},
        )
        assert response.status_code == 201
        assert response.json()["plan_day_interval"] == 7

    def test_create_signup_plan_without_day(self, client):
        response = client.post(
            "/v1/plans/",
            json={"code": "signup", "name": "Signup", "plan_monthly_behavior": "monthly_signup"},
        )
        assert response.status_code == 201

    def test_duplicate_code(self, client):
        client.post("/v1/plans/", json=_prorate_payload())
        response = client.post("/v1/plans/", json=_prorate_payload())
        assert response.status_code == 409
        assert response.json()["detail"] == "Plan with this code already exists"

    def test_daily_without_interval(self, client):
        response = client.post(
            "/v1/plans/", json={"code": "daily", "name": "Daily", "plan_type": "daily"}
        )
        assert response.status_code == 422

    def test_yearly_without_interval(self, client):
        response = client.post(
            "/v1/plans/", json={"code": "yearly", "name": "Yearly", "plan_type": "yearly"}
        )
        assert response.status_code == 422

    def test_monthly_without_behavior(self, client):
        response = client.post("/v1/plans/", json={"code": "m", "name": "Monthly"})
        assert response.status_code == 422

    def test_anchored_monthly_without_day(self, client):
        response = client.post(
            "/v1/plans/", json=_prorate_payload(plan_month_day=None)
        )
        assert response.status_code == 422

    def test_month_day_out_of_range(self, client):
        response = client.post("/v1/plans/", json=_prorate_payload(plan_month_day=32))
        assert response.status_code == 422

    def test_unknown_plan_type(self, client):
        response = client.post(
            "/v1/plans/", json={"code": "w", "name": "Weekly", "plan_type": "weekly"}
        )
        assert response.status_code == 422


class TestReadPlans:
    def test_list(self, client):
        client.post("/v1/plans/", json=_prorate_payload("a"))
        client.post("/v1/plans/", json=_prorate_payload("b"))
        response = client.get("/v1/plans/")
        assert response.status_code == 200
        assert sorted(p["code"] for p in response.json()) == ["a", "b"]
        assert response.headers["X-Total-Count"] == "2"

    def test_list_active_only(self, client):
        client.post("/v1/plans/", json=_prorate_payload("a"))
        plan_id = client.post("/v1/plans/", json=_prorate_payload("b")).json()["id"]
        client.put(f"/v1/plans/{plan_id}", json={"is_active": False})

        response = client.get("/v1/plans/", params={"active_only": True})

        assert [p["code"] for p in response.json()] == ["a"]
        assert response.headers["X-Total-Count"] == "1"

    def test_get(self, client):
        plan_id = client.post("/v1/plans/", json=_prorate_payload()).json()["id"]
        response = client.get(f"/v1/plans/{plan_id}")
        assert response.status_code == 200
        assert response.json()["id"] == plan_id

    def test_get_not_found(self, client):
        response = client.get(f"/v1/plans/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["detail"] == "Plan not found"


class TestUpdatePlan:
    def test_update_terms(self, client):
        plan_id = client.post("/v1/plans/", json=_prorate_payload()).json()["id"]
        response = client.put(
            f"/v1/plans/{plan_id}",
            json={"price": "40", "is_custom_membership": True, "grace_days": 5},
        )
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["price"]) == Decimal("40")
        assert data["grace_days"] == 5
        assert data["plan_month_day"] == 31

    def test_update_not_found(self, client):
        response = client.put(f"/v1/plans/{uuid.uuid4()}", json={"name": "Nope"})
        assert response.status_code == 404


class TestPlanSchedule:
    def test_prorated_leap_february(self, client):
        plan_id = client.post("/v1/plans/", json=_prorate_payload()).json()["id"]

        response = client.get(
            f"/v1/plans/{plan_id}/schedule", params={"at": "2024-02-15T00:00:00+00:00"}
        )

        assert response.status_code == 200
        data = response.json()
        assert datetime.fromisoformat(data["period_start"]) == datetime(2024, 2, 15, tzinfo=UTC)
        assert datetime.fromisoformat(data["period_end"]) == datetime(2024, 2, 29, tzinfo=UTC)
        assert data["days_until_billing"] == 14
        assert data["days_in_cycle"] == 31
        assert Decimal(data["adjusted_price"]) == Decimal("14.00")
        assert data["description"] == (
            "Renew on the 31st of the month and prorate billing for used time"
        )

    def test_defaults_to_clock(self, client, clock):
        plan_id = client.post(
            "/v1/plans/",
            json={"code": "signup", "name": "Signup", "plan_monthly_behavior": "monthly_signup"},
        ).json()["id"]

        data = client.get(f"/v1/plans/{plan_id}/schedule").json()

        assert datetime.fromisoformat(data["reference_date"]) == datetime(2024, 1, 15, tzinfo=UTC)
        assert datetime.fromisoformat(data["period_end"]) == datetime(2024, 2, 15, tzinfo=UTC)
        assert data["days_until_billing"] is None

    def test_naive_reference_is_utc(self, client):
        plan_id = client.post("/v1/plans/", json=_prorate_payload()).json()["id"]
        data = client.get(
            f"/v1/plans/{plan_id}/schedule", params={"at": "2024-02-15T00:00:00"}
        ).json()
        assert datetime.fromisoformat(data["period_end"]) == datetime(2024, 2, 29, tzinfo=UTC)

    def test_lifetime_plan(self, client):
        plan_id = client.post(
            "/v1/plans/", json={"code": "life", "name": "Lifetime", "plan_type": "lifetime"}
        ).json()["id"]
        data = client.get(f"/v1/plans/{plan_id}/schedule").json()
        assert data["period_end"] is None
        assert data["days_in_cycle"] is None

    def test_misconfigured_plan(self, client, db_session):
        plan = Plan(code="broken", name="Broken", plan_type="weekly")
        db_session.add(plan)
        db_session.commit()

        response = client.get(f"/v1/plans/{plan.id}/schedule")

        assert response.status_code == 400
        assert "Unknown plan type" in response.json()["detail"]

    def test_not_found(self, client):
        response = client.get(f"/v1/plans/{uuid.uuid4()}/schedule")
        assert response.status_code == 404
