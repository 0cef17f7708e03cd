"""Integration tests for API endpoints"""

import pytest
from fastapi.testclient import TestClient
from debt_tracker.api.main import status_for
from debt_tracker.domain.exceptions import ExternalProcedureError, NoPendingPrepayment


@pytest.fixture
def purchase_payload():
    return {
        "description": "Laptop",
        "total_cents": 30000,
        "installment_count": 3,
        "purchase_date": "2024-03-05",
        "account_id": "card_visa",
        "statement_cutoff_day": 10,
        "payment_due_day": 25,
        "category_id": "electronics",
    }


@pytest.fixture
def loan_payload():
    return {
        "description": "Car loan",
        "principal_cents": 1200000,
        "annual_rate_percent": 12.0,
        "term_months": 12,
        "start_date": "2024-01-20",
        "payment_day_of_month": 15,
        "account_id": "checking",
        "issuing_institution": "Credit Union",
    }


@pytest.fixture
def created_purchase(client: TestClient, purchase_payload):
    response = client.post("/v1/purchases", json=purchase_payload)
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def created_loan(client: TestClient, loan_payload):
    response = client.post("/v1/loans", json=loan_payload)
    assert response.status_code == 201
    return response.json()


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "debt-tracker"}


def test_metrics_endpoint(client: TestClient, created_purchase):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "debt_instruments_created_total" in response.text
    assert "http_request_duration_seconds" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
    assert client.get("/health").headers["X-Request-ID"]


def test_user_header_required(client: TestClient):
    anonymous = TestClient(client.app)
    response = anonymous.get("/v1/purchases")
    assert response.status_code == 422


def test_create_purchase(created_purchase):
    """Test POST /v1/purchases builds the schedule and summary"""
    assert created_purchase["total_cents"] == 30000
    assert [i["amount_cents"] for i in created_purchase["installments"]] == [10000, 10000, 10000]
    assert [i["due_date"] for i in created_purchase["installments"]] == ["2024-04-25", "2024-05-25", "2024-06-25"]
    assert all(i["status"] == "pending" for i in created_purchase["installments"])
    assert created_purchase["summary"]["paid_count"] == 0
    assert created_purchase["summary"]["remaining_cents"] == 30000


def test_create_purchase_validation(client: TestClient, purchase_payload):
    purchase_payload["installment_count"] = 0
    response = client.post("/v1/purchases", json=purchase_payload)
    assert response.status_code == 422


def test_list_and_get_purchase(client: TestClient, created_purchase):
    listed = client.get("/v1/purchases")
    assert listed.status_code == 200
    assert [p["id"] for p in listed.json()] == [created_purchase["id"]]

    fetched = client.get(f"/v1/purchases/{created_purchase['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["description"] == "Laptop"


def test_purchase_of_another_user_not_found(client: TestClient, created_purchase):
    response = client.get(f"/v1/purchases/{created_purchase['id']}", headers={"X-User-ID": "user_2"})
    assert response.status_code == 404
    assert response.json()["error"] == "InstrumentNotFound"


def test_purchase_is_not_a_loan(client: TestClient, created_purchase):
    response = client.get(f"/v1/loans/{created_purchase['id']}")
    assert response.status_code == 404


def test_pay_and_revert_purchase_installment(client: TestClient, created_purchase):
    purchase_id = created_purchase["id"]
    first, second, third = (i["id"] for i in created_purchase["installments"])

    paid = client.post(f"/v1/purchases/{purchase_id}/installments/{first}/pay", json={"payment_date": "2024-04-20"})
    assert paid.status_code == 200
    installment = paid.json()["installments"][0]
    assert installment["status"] == "paid"
    assert installment["paid_via"] == "transaction"
    assert installment["transaction_id"] is not None
    assert paid.json()["summary"]["paid_cents"] == 10000

    out_of_order = client.post(f"/v1/purchases/{purchase_id}/installments/{third}/pay")
    assert out_of_order.status_code == 409
    assert out_of_order.json()["error"] == "PaymentOrderViolation"

    already_paid = client.post(f"/v1/purchases/{purchase_id}/installments/{first}/pay")
    assert already_paid.status_code == 422

    not_paid = client.post(f"/v1/purchases/{purchase_id}/installments/{second}/revert")
    assert not_paid.status_code == 409
    assert not_paid.json()["error"] == "NoRevertibleTransaction"

    reverted = client.post(f"/v1/purchases/{purchase_id}/installments/{first}/revert")
    assert reverted.status_code == 200
    assert reverted.json()["installments"][0]["status"] == "pending"
    assert reverted.json()["installments"][0]["transaction_id"] is None


def test_update_purchase(client: TestClient, created_purchase):
    purchase_id = created_purchase["id"]

    response = client.patch(f"/v1/purchases/{purchase_id}", json={"description": "Work laptop"})
    assert response.status_code == 200
    assert response.json()["description"] == "Work laptop"
    assert response.json()["category_id"] == "electronics"

    locked = client.patch(f"/v1/purchases/{purchase_id}", json={"total_cents": 100})
    assert locked.status_code == 422


def test_delete_purchase(client: TestClient, created_purchase):
    purchase_id = created_purchase["id"]
    first = created_purchase["installments"][0]["id"]
    client.post(f"/v1/purchases/{purchase_id}/installments/{first}/pay")

    response = client.delete(f"/v1/purchases/{purchase_id}")
    assert response.status_code == 204
    assert client.get(f"/v1/purchases/{purchase_id}").status_code == 404
    assert client.delete(f"/v1/purchases/{purchase_id}").status_code == 404


def test_create_loan(created_loan):
    """Test POST /v1/loans builds the amortization schedule"""
    installments = created_loan["installments"]
    assert len(installments) == 12
    assert installments[0]["amount_cents"] == 106619
    assert installments[0]["interest_cents"] == 12000
    assert installments[0]["principal_cents"] == 94619
    assert installments[0]["due_date"] == "2024-02-15"
    assert installments[-1]["balance_cents"] == 0
    assert created_loan["summary"]["outstanding_principal_cents"] == 1200000
    assert created_loan["summary"]["next_installment_id"] == installments[0]["id"]


def test_create_loan_rejects_payment_day_past_28(client: TestClient, loan_payload):
    loan_payload["payment_day_of_month"] = 30
    assert client.post("/v1/loans", json=loan_payload).status_code == 422


def test_pay_loan_installment_from_other_account(client: TestClient, created_loan):
    loan_id = created_loan["id"]
    first = created_loan["installments"][0]["id"]

    response = client.post(f"/v1/loans/{loan_id}/installments/{first}/pay", json={"account_id": "savings"})

    assert response.status_code == 200
    summary = response.json()["summary"]
    assert summary["principal_paid_cents"] == 94619
    assert summary["interest_paid_cents"] == 12000
    assert summary["next_installment_id"] == created_loan["installments"][1]["id"]


def test_prepay_recalculate_and_revert(client: TestClient, created_loan):
    loan_id = created_loan["id"]
    first = created_loan["installments"][0]["id"]
    client.post(f"/v1/loans/{loan_id}/installments/{first}/pay")

    prepaid = client.post(
        f"/v1/loans/{loan_id}/prepayments",
        json={"installments_to_advance": 3, "account_id": "savings", "payment_date": "2024-01-25"},
    )
    assert prepaid.status_code == 201
    prepayment = prepaid.json()["prepayments"][0]
    assert prepayment["applied"] is False
    assert prepayment["installments_advanced"] == 3
    assert prepaid.json()["summary"]["has_unapplied_prepayments"] is True

    recalculated = client.post(
        f"/v1/loans/{loan_id}/recalculate",
        json={"strategy": "reduce_term", "as_of_date": "2024-01-20"},
    )
    assert recalculated.status_code == 200
    data = recalculated.json()
    assert data["strategy"] == "reduce_term"
    assert data["applied_cents"] == prepayment["amount_cents"]
    installments = data["loan"]["installments"]
    assert [i["paid_via"] for i in installments[-3:]] == ["prepayment"] * 3
    assert installments[8]["balance_cents"] == 0
    assert data["loan"]["summary"]["prepaid_cents"] == prepayment["amount_cents"]

    covered = installments[-1]["id"]
    assert client.post(f"/v1/loans/{loan_id}/installments/{covered}/revert").status_code == 409

    again = client.post(f"/v1/loans/{loan_id}/recalculate", json={"as_of_date": "2024-01-20"})
    assert again.status_code == 422
    assert again.json()["error"] == "NoPendingPrepayment"

    reverted = client.delete(f"/v1/loans/{loan_id}/prepayments/{prepayment['id']}")
    assert reverted.status_code == 200
    assert reverted.json()["prepayments"] == []
    restored = reverted.json()["installments"]
    assert [i["amount_cents"] for i in restored] == [i["amount_cents"] for i in created_loan["installments"]]
    assert all(i["status"] == "pending" for i in restored[1:])


def test_recalculate_rejects_unknown_strategy(client: TestClient, created_loan):
    response = client.post(f"/v1/loans/{created_loan['id']}/recalculate", json={"strategy": "shorter"})
    assert response.status_code == 422


def test_update_loan_rejects_rate_change(client: TestClient, created_loan):
    loan_id = created_loan["id"]

    assert client.patch(f"/v1/loans/{loan_id}", json={"annual_rate_percent": 5.0}).status_code == 422

    response = client.patch(f"/v1/loans/{loan_id}", json={"late_fee_cents": 1500})
    assert response.status_code == 200
    assert response.json()["late_fee_cents"] == 1500


def test_delete_loan(client: TestClient, created_loan):
    loan_id = created_loan["id"]
    client.post(
        f"/v1/loans/{loan_id}/prepayments",
        json={"installments_to_advance": 1, "account_id": "savings"},
    )

    assert client.delete(f"/v1/loans/{loan_id}").status_code == 204
    assert client.get("/v1/loans").json() == []


def test_inconsistent_rows_map_to_bad_gateway():
    assert status_for(ExternalProcedureError("Inconsistent installment status: paid/None")) == 502
    assert status_for(NoPendingPrepayment("nothing to apply")) == 422
