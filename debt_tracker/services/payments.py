"""Paying and reverting installments against the user's ledger"""

import uuid
from datetime import date
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from debt_tracker.domain.exceptions import ValidationError
from debt_tracker.domain.models import InstrumentKind, TransactionType
from debt_tracker.domain.payments import ensure_payable, ensure_revertible
from debt_tracker.domain.ports import LedgerPort
from debt_tracker.infrastructure.database.models import InstallmentRecord
from debt_tracker.infrastructure.database.repositories import (
    InstallmentRepository,
    InstrumentRepository,
    to_installment,
)
from debt_tracker.infrastructure.observability.logging import log_event
from debt_tracker.infrastructure.observability.metrics import record_transition
from debt_tracker.services import locks


class PaymentLedger:
    """
    Moves installments between pending and paid.

    Every pay creates exactly one ledger transaction and every revert deletes
    it again. The ledger write and the installment update are ordered so that
    an installment never references a transaction that does not exist.
    """

    def __init__(self, db: Session, ledger: LedgerPort):
        self.db = db
        self.ledger = ledger
        self.instruments = InstrumentRepository(db)
        self.installments = InstallmentRepository(db)

    def pay(
        self,
        user_id: str,
        instrument_id: uuid.UUID,
        installment_id: uuid.UUID,
        kind: InstrumentKind,
        account_id: Optional[str] = None,
        payment_date: Optional[date] = None,
    ) -> InstallmentRecord:
        """
        Pay the earliest pending installment of a purchase or loan.

        For purchases the transaction is charged to the card account under the
        purchase category. Loans are paid from ``account_id``, or from the
        loan's default account when none is given.

        Raises:
            PaymentOrderViolation: An earlier installment is still pending
            ValidationError: Installment already paid, or no account to pay from
        """
        with locks.instrument_lock(instrument_id):
            instrument = self.instruments.get(user_id, instrument_id, kind, for_update=True)
            record = self.installments.get(instrument, installment_id)
            ensure_payable(to_installment(record), [to_installment(r) for r in instrument.installments])

            if kind == InstrumentKind.PURCHASE:
                paying_account = instrument.account_id
                category_id = instrument.category_id
            else:
                paying_account = account_id or instrument.account_id
                category_id = None
            if not paying_account:
                raise ValidationError("An account is required to pay this installment")

            transaction_id = self.ledger.create_transaction(
                user_id=user_id,
                description=f"{instrument.description} - installment {record.number}/{instrument.installment_count}",
                amount_cents=record.amount_cents,
                date=payment_date or date.today(),
                type=TransactionType.EXPENSE,
                account_id=paying_account,
                category_id=category_id,
            )

            try:
                self.installments.mark_paid(record, transaction_id)
                self.db.commit()
            except SQLAlchemyError:
                self.db.rollback()
                self.ledger.delete_transaction(user_id, transaction_id)
                raise

        record_transition(kind.value, "pay")
        log_event(
            "installment_paid",
            "Installment paid",
            user_id=user_id,
            instrument_id=instrument_id,
            installment_id=installment_id,
            transaction_id=transaction_id,
        )
        return record

    def revert(
        self,
        user_id: str,
        instrument_id: uuid.UUID,
        installment_id: uuid.UUID,
        kind: InstrumentKind,
    ) -> InstallmentRecord:
        """
        Return a directly paid installment to pending and delete its transaction.

        Raises:
            NoRevertibleTransaction: Installment is pending or covered by a prepayment
        """
        with locks.instrument_lock(instrument_id):
            instrument = self.instruments.get(user_id, instrument_id, kind, for_update=True)
            record = self.installments.get(instrument, installment_id)
            transaction_id = ensure_revertible(to_installment(record))

            self.installments.mark_pending(record)
            self.db.commit()

            try:
                self.ledger.delete_transaction(user_id, transaction_id)
            except Exception:
                self.db.rollback()
                self.installments.mark_paid(record, transaction_id)
                self.db.commit()
                raise

        record_transition(kind.value, "revert")
        log_event(
            "installment_reverted",
            "Installment payment reverted",
            user_id=user_id,
            instrument_id=instrument_id,
            installment_id=installment_id,
            transaction_id=transaction_id,
        )
        return record
