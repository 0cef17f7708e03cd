"""HTTP client for an external ledger service"""

import uuid
from datetime import date
from typing import Optional
import httpx
from debt_tracker.config import settings
from debt_tracker.domain.exceptions import LedgerAPIError
from debt_tracker.domain.models import TransactionType
from debt_tracker.infrastructure.observability.metrics import ledger_failure_counter, ledger_latency_histogram


class LedgerClient:
    """Client for creating and deleting transactions in a remote ledger"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url or settings.ledger_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    def create_transaction(
        self,
        user_id: str,
        description: str,
        amount_cents: int,
        date: date,
        type: TransactionType,
        account_id: str,
        category_id: Optional[str] = None,
    ) -> uuid.UUID:
        """
        Record a transaction and return the id the ledger assigned to it.

        Raises:
            LedgerAPIError: On timeout, HTTP errors, or invalid response
        """
        payload = {
            "user_id": user_id,
            "description": description,
            "amount_cents": amount_cents,
            "date": date.isoformat(),
            "type": TransactionType(type).value,
            "account_id": account_id,
            "category_id": category_id,
        }
        with self._client() as client:
            try:
                with ledger_latency_histogram.labels(operation="create").time():
                    response = client.post("/transactions", json=payload)
                    response.raise_for_status()
                return uuid.UUID(response.json()["id"])

            except httpx.TimeoutException as e:
                ledger_failure_counter.labels(operation="create").inc()
                raise LedgerAPIError(f"Ledger API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                ledger_failure_counter.labels(operation="create").inc()
                raise LedgerAPIError(f"Ledger API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                ledger_failure_counter.labels(operation="create").inc()
                raise LedgerAPIError(f"Ledger API unreachable: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                ledger_failure_counter.labels(operation="create").inc()
                raise LedgerAPIError(f"Invalid response from ledger: {e}") from e

    def delete_transaction(self, user_id: str, transaction_id: uuid.UUID) -> None:
        """
        Remove a transaction. A transaction the ledger no longer knows about
        counts as deleted.

        Raises:
            LedgerAPIError: On timeout or HTTP errors
        """
        with self._client() as client:
            try:
                with ledger_latency_histogram.labels(operation="delete").time():
                    response = client.delete(f"/transactions/{transaction_id}", params={"user_id": user_id})
                if response.status_code == 404:
                    return
                response.raise_for_status()

            except httpx.TimeoutException as e:
                ledger_failure_counter.labels(operation="delete").inc()
                raise LedgerAPIError(f"Ledger API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                ledger_failure_counter.labels(operation="delete").inc()
                raise LedgerAPIError(f"Ledger API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                ledger_failure_counter.labels(operation="delete").inc()
                raise LedgerAPIError(f"Ledger API unreachable: {e}") from e
