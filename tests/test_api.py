"""End-to-end tests through the HTTP API."""

from datetime import date, timedelta

import pytest

from tests.conftest import AGENCY_ID, OTHER_AGENCY_ID

API = "/api/v1"

DEPOSIT_TEMPLATE = {
    "name": "Standard 20% deposit",
    "schedule_type": "deposit",
    "is_default": True,
    "items": [
        {"sequence_order": 1, "payment_name": "Deposit", "percentage": "20", "days_from_booking": 0},
        {"sequence_order": 2, "payment_name": "Final Balance", "percentage": "80", "days_before_departure": 60},
    ],
}


@pytest.fixture
def template_id(client, headers):
    response = client.post(f"{API}/payment-templates", json=DEPOSIT_TEMPLATE, headers=headers)
    assert response.status_code == 201
    return response.json()["id"]


class TestPlumbing:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_root(self, client):
        assert client.get("/").json()["message"] == "Travel Agency Back Office API"

    def test_agency_header_is_required(self, client):
        response = client.get(f"{API}/payment-templates")
        assert response.status_code == 401


class TestTemplatesApi:

    def test_create_and_fetch(self, client, headers, template_id):
        response = client.get(f"{API}/payment-templates/{template_id}", headers=headers)
        assert response.status_code == 200
        body = response.json()
        assert body["version"] == 1
        assert [item["payment_name"] for item in body["items"]] == ["Deposit", "Final Balance"]

        default = client.get(f"{API}/payment-templates/default", headers=headers)
        assert default.json()["id"] == template_id

    def test_invalid_template_is_rejected(self, client, headers):
        payload = dict(DEPOSIT_TEMPLATE, items=[
            {"sequence_order": 1, "payment_name": "Deposit", "percentage": "20", "days_from_booking": 0},
        ])
        response = client.post(f"{API}/payment-templates", json=payload, headers=headers)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "PERCENTAGE_SUM_MISMATCH"

    def test_templates_are_agency_scoped(self, client, headers, template_id):
        other = {"X-Agency-Id": OTHER_AGENCY_ID}
        response = client.get(f"{API}/payment-templates/{template_id}", headers=other)
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "NOT_FOUND"
        assert client.get(f"{API}/payment-templates", headers=other).json() == []

    def test_missing_default(self, client, headers):
        response = client.get(f"{API}/payment-templates/default", headers=headers)
        assert response.status_code == 404

    def test_update_bumps_version_and_is_audited(self, client, headers, template_id):
        items = [{"sequence_order": 1, "payment_name": "Full", "percentage": "100", "days_from_booking": 0}]
        response = client.patch(
            f"{API}/payment-templates/{template_id}", json={"items": items}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["version"] == 2

        history = client.get(f"{API}/payment-templates/{template_id}/audit-log", headers=headers).json()
        assert [entry["action"] for entry in history] == ["updated", "created"]
        assert history[0]["ip_address"] == "testclient"

    def test_soft_delete(self, client, headers, template_id):
        response = client.delete(f"{API}/payment-templates/{template_id}", headers=headers)
        assert response.status_code == 200
        assert response.json()["is_active"] is False
        assert client.get(f"{API}/payment-templates", headers=headers).json() == []
        listed = client.get(f"{API}/payment-templates", params={"include_inactive": True}, headers=headers)
        assert len(listed.json()) == 1


class TestScheduleLifecycle:

    def test_apply_pay_and_report(self, client, headers, template_id, make_trip, make_priced_activity):
        trip = make_trip()
        pricing = make_priced_activity(total_price_cents=100000, trip=trip)
        departure = date.today() + timedelta(days=200)

        applied = client.post(
            f"{API}/payment-schedules/{pricing.id}/apply-template",
            json={"template_id": template_id, "departure_date": departure.isoformat()},
            headers=headers
        )
        assert applied.status_code == 200
        body = applied.json()
        assert body["template_version"] == 1
        items = body["config"]["expected_payment_items"]
        assert [item["expected_amount_cents"] for item in items] == [20000, 80000]
        assert items[1]["due_date"] == (departure - timedelta(days=60)).isoformat()

        paid = client.post(f"{API}/payment-transactions", json={
            "expected_payment_item_id": items[0]["id"],
            "transaction_type": "payment",
            "amount_cents": 20000,
            "currency": "cad",
            "payment_method": "credit_card",
            "transaction_date": f"{date.today().isoformat()}T10:00:00Z"
        }, headers=headers)
        assert paid.status_code == 201
        assert paid.json()["currency"] == "CAD"

        schedule = client.get(f"{API}/payment-schedules/{pricing.id}", headers=headers).json()
        deposit = schedule["expected_payment_items"][0]
        assert deposit["status"] == "paid"
        assert deposit["is_locked"] is True

        status = client.get(f"{API}/trips/{trip.id}/booking-status", headers=headers).json()
        activity = status["activities"][pricing.activity_id]
        assert activity["payment_status"] == "pending"
        assert activity["payment_paid_cents"] == 20000
        assert status["summary"]["total_remaining_cents"] == 80000

        ledger = client.get(f"{API}/trips/{trip.id}/payment-transactions", headers=headers).json()
        assert [t["amount_cents"] for t in ledger] == [20000]

        deleted = client.delete(f"{API}/payment-transactions/{paid.json()['id']}", headers=headers)
        assert deleted.status_code == 204
        expected = client.get(f"{API}/trips/{trip.id}/expected-payments", headers=headers).json()
        assert expected[0]["paid_amount_cents"] == 0
        assert expected[0]["status"] == "pending"

    def test_non_compliant_template_is_rejected(self, client, headers, template_id, make_priced_activity):
        pricing = make_priced_activity(total_price_cents=200)
        departure = date.today() + timedelta(days=200)

        response = client.post(
            f"{API}/payment-schedules/{pricing.id}/apply-template",
            json={"template_id": template_id, "departure_date": departure.isoformat()},
            headers=headers
        )

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["code"] == "TICO_VALIDATION_FAILED"
        assert "PAYMENT_TOO_SMALL" in [error["code"] for error in detail["errors"]]
        assert client.get(f"{API}/payment-schedules/{pricing.id}", headers=headers).status_code == 404

    def test_second_create_conflicts(self, client, headers, make_priced_activity):
        pricing = make_priced_activity(total_price_cents=5000)
        payload = {
            "activity_pricing_id": pricing.id,
            "schedule_type": "full",
            "expected_payment_items": [
                {"payment_name": "Full payment", "expected_amount_cents": 5000, "sequence_order": 1}
            ],
        }

        first = client.post(f"{API}/payment-schedules", json=payload, headers=headers)
        second = client.post(f"{API}/payment-schedules", json=payload, headers=headers)

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json()["detail"]["code"] == "CONFLICT"

    def test_unknown_item_is_not_found(self, client, headers):
        response = client.patch(
            f"{API}/payment-schedules/items/missing", json={"payment_name": "x"}, headers=headers
        )
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "NOT_FOUND"

    def test_other_agency_cannot_see_trip(self, client, make_trip):
        trip = make_trip(agency_id=AGENCY_ID)
        response = client.get(
            f"{API}/trips/{trip.id}/booking-status", headers={"X-Agency-Id": OTHER_AGENCY_ID}
        )
        assert response.status_code == 404


class TestStatelessEndpoints:

    def test_validate(self, client, headers):
        departure = date.today() + timedelta(days=100)
        response = client.post(f"{API}/payment-schedules/validate", json={
            "items": [
                {"payment_name": "Deposit", "expected_amount_cents": 60000,
                 "due_date": date.today().isoformat(), "sequence_order": 1},
                {"payment_name": "Balance", "expected_amount_cents": 40000,
                 "due_date": (departure - timedelta(days=50)).isoformat(), "sequence_order": 2},
            ],
            "total_cents": 100000,
            "departure_date": departure.isoformat()
        }, headers=headers)

        assert response.status_code == 200
        body = response.json()
        assert body["is_valid"] is True
        assert body["errors"] == []
        assert body["warnings"][0]["code"] == "HIGH_DEPOSIT"
        assert body["warnings"][0]["depositPercentage"] == 60

    def test_calculate_deposit(self, client, headers):
        response = client.post(f"{API}/payment-schedules/calculate-deposit", json={
            "total_price_cents": 10001,
            "deposit_type": "percentage",
            "deposit_value": "25"
        }, headers=headers)

        assert response.status_code == 200
        body = response.json()
        assert body["calculation"] == {
            "deposit_amount_cents": 2500,
            "remaining_amount_cents": 7501,
            "total_amount_cents": 10001,
        }
        assert [item["payment_name"] for item in body["items"]] == ["Deposit", "Final Balance"]

    def test_invalid_deposit(self, client, headers):
        response = client.post(f"{API}/payment-schedules/calculate-deposit", json={
            "total_price_cents": 10000,
            "deposit_type": "fixed_amount",
            "deposit_value": "20000"
        }, headers=headers)

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_DEPOSIT"
