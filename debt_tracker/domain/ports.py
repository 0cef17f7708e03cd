"""Boundary the engine uses to move money in the user's ledger"""

import uuid
from datetime import date
from typing import Optional, Protocol
from debt_tracker.domain.models import TransactionType


class LedgerPort(Protocol):
    """Creates and deletes ledger transactions on behalf of the engine"""

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
        ...

    def delete_transaction(self, user_id: str, transaction_id: uuid.UUID) -> None:
        ...
