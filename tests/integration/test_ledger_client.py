"""Tests for the HTTP ledger client against a mocked transport"""

import json
import uuid
import httpx
import pytest
from datetime import date
from debt_tracker.api import dependencies
from debt_tracker.domain.exceptions import LedgerAPIError
from debt_tracker.domain.models import TransactionType
from debt_tracker.infrastructure.clients.ledger import LedgerClient
from debt_tracker.infrastructure.database.repositories import TransactionRepository


def make_client(handler) -> LedgerClient:
    return LedgerClient(base_url="http://ledger.test", timeout=1.0, transport=httpx.MockTransport(handler))


def create(client: LedgerClient) -> uuid.UUID:
    return client.create_transaction(
        user_id="user_1",
        description="Laptop - installment 1/3",
        amount_cents=10000,
        date=date(2024, 4, 20),
        type=TransactionType.EXPENSE,
        account_id="card_visa",
        category_id="electronics",
    )


def test_create_transaction_returns_ledger_id():
    transaction_id = uuid.uuid4()
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(201, json={"id": str(transaction_id)})

    assert create(make_client(handler)) == transaction_id

    request = requests[0]
    assert request.method == "POST"
    assert request.url.path == "/transactions"
    assert json.loads(request.content) == {
        "user_id": "user_1",
        "description": "Laptop - installment 1/3",
        "amount_cents": 10000,
        "date": "2024-04-20",
        "type": "expense",
        "account_id": "card_visa",
        "category_id": "electronics",
    }


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"detail": "boom"}),
        httpx.Response(201, json={"transaction": "missing id"}),
        httpx.Response(201, json={"id": "not-a-uuid"}),
        httpx.Response(201, text="<html>"),
    ],
)
def test_create_transaction_errors(response):
    with pytest.raises(LedgerAPIError):
        create(make_client(lambda request: response))


def test_create_transaction_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(LedgerAPIError, match="timeout"):
        create(make_client(handler))


def test_create_transaction_unreachable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(LedgerAPIError, match="unreachable"):
        create(make_client(handler))


def test_delete_transaction():
    transaction_id = uuid.uuid4()
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(204)

    make_client(handler).delete_transaction("user_1", transaction_id)

    request = requests[0]
    assert request.method == "DELETE"
    assert request.url.path == f"/transactions/{transaction_id}"
    assert request.url.params["user_id"] == "user_1"


def test_delete_missing_transaction_is_not_an_error():
    make_client(lambda request: httpx.Response(404)).delete_transaction("user_1", uuid.uuid4())


def test_delete_transaction_server_error():
    with pytest.raises(LedgerAPIError):
        make_client(lambda request: httpx.Response(503)).delete_transaction("user_1", uuid.uuid4())


def test_ledger_backend_selection(db, monkeypatch):
    monkeypatch.setattr(dependencies.settings, "ledger_backend", "http")
    assert isinstance(dependencies.get_ledger(db), LedgerClient)

    monkeypatch.setattr(dependencies.settings, "ledger_backend", "database")
    assert isinstance(dependencies.get_ledger(db), TransactionRepository)
