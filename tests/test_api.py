from datetime import date, datetime, timezone

import pytest
from fastapi.testclient import TestClient

import api.app as api_app
from fakes import USER_ID
from models.charge import STATUS_PAID
from models.errors import UpstreamFailure


@pytest.fixture
def http(sweep_service, charge_service, monkeypatch):
    monkeypatch.setattr(api_app, "WEBHOOK_SECRET", "")
    api_app.app.dependency_overrides[api_app.get_sweep_service] = lambda: sweep_service
    api_app.app.dependency_overrides[api_app.get_charge_service] = lambda: charge_service
    # no `with` block: the lifespan (database pool) is not started
    yield TestClient(api_app.app)
    api_app.app.dependency_overrides.clear()


def test_health(http):
    response = http.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


class TestPaymentWebhook:
    def test_approved_payment_marks_paid_and_spawns_successor(self, http, make_charge, charge_repo):
        charge = make_charge(date(2024, 2, 1), interval="monthly")

        response = http.post("/functions/payment-webhook", json={
            "charge_id": charge.id,
            "status": "approved",
            "paid_at": "2024-02-01T13:00:00Z",
            "transaction_id": "tx-123",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["charge_id"] == charge.id
        assert body["status"] == STATUS_PAID
        stored = charge_repo.rows[charge.id]
        assert stored.status == STATUS_PAID
        assert stored.paid_at == datetime(2024, 2, 1, 13, 0, tzinfo=timezone.utc)
        assert charge_repo.rows[body["next_charge_id"]].due_date == date(2024, 3, 1)

    def test_duplicate_webhook_conflicts(self, http, make_charge, charge_repo):
        charge = make_charge(date(2024, 2, 1), interval="monthly")
        payload = {"charge_id": charge.id, "status": "paid"}

        assert http.post("/functions/payment-webhook", json=payload).status_code == 200
        response = http.post("/functions/payment-webhook", json=payload)

        assert response.status_code == 409
        assert "error" in response.json()
        assert len([c for c in charge_repo.rows.values() if c.parent_charge_id == charge.id]) == 1

    def test_other_statuses_are_acknowledged_without_change(self, http, make_charge, charge_repo):
        charge = make_charge(date(2024, 2, 1))

        response = http.post("/functions/payment-webhook", json={"charge_id": charge.id, "status": "pending"})

        assert response.status_code == 200
        assert charge_repo.rows[charge.id].status != STATUS_PAID

    @pytest.mark.parametrize("payload", [{"status": "paid"}, {"charge_id": "abc", "status": "paid"}, []])
    def test_bad_payload(self, http, payload):
        response = http.post("/functions/payment-webhook", json=payload)
        assert response.status_code == 400
        assert "error" in response.json()

    def test_invalid_json(self, http):
        response = http.post(
            "/functions/payment-webhook", content=b"{not json", headers={"content-type": "application/json"}
        )
        assert response.status_code == 400

    def test_unknown_charge(self, http):
        response = http.post("/functions/payment-webhook", json={"charge_id": 999, "status": "paid"})
        assert response.status_code == 404

    def test_canceled_charge(self, http, make_charge, charge_service):
        charge = make_charge(date(2024, 2, 1))
        charge_service.cancel(charge.id, USER_ID)
        response = http.post("/functions/payment-webhook", json={"charge_id": charge.id, "status": "paid"})
        assert response.status_code == 409

    def test_store_unavailable(self, http, make_charge, charge_repo, monkeypatch):
        charge = make_charge(date(2024, 2, 1))

        def down(*args, **kwargs):
            raise UpstreamFailure("database unavailable")

        monkeypatch.setattr(charge_repo, "get_by_id", down)
        response = http.post("/functions/payment-webhook", json={"charge_id": charge.id, "status": "paid"})
        assert response.status_code == 503

    def test_secret_is_enforced_when_configured(self, http, make_charge, monkeypatch):
        monkeypatch.setattr(api_app, "WEBHOOK_SECRET", "s3cret")
        charge = make_charge(date(2024, 2, 1))
        payload = {"charge_id": charge.id, "status": "paid"}

        assert http.post("/functions/payment-webhook", json=payload).status_code == 401
        response = http.post(
            "/functions/payment-webhook", json=payload, headers={"X-Webhook-Secret": "s3cret"}
        )
        assert response.status_code == 200


class TestCheckOverdueCharges:
    def test_returns_sweep_summary(self, http, make_charge):
        make_charge(date(2000, 1, 1))

        response = http.post("/functions/check-overdue-charges")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["overdueUpdated"] is True
        assert body["overdueAlerts"] == 1
        assert body["remindersSent"] == 0

    def test_failure_returns_500(self, http, charge_repo, monkeypatch):
        def down():
            raise UpstreamFailure("database unavailable")

        monkeypatch.setattr(charge_repo, "get_active", down)
        response = http.post("/functions/check-overdue-charges")
        assert response.status_code == 500
        assert "error" in response.json()
