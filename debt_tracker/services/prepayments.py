"""Advance principal payments on loans"""

import uuid
from datetime import date
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from debt_tracker.domain.exceptions import ValidationError
from debt_tracker.domain.models import InstrumentKind, TransactionType
from debt_tracker.domain.payments import select_prepayment_tail
from debt_tracker.domain.ports import LedgerPort
from debt_tracker.infrastructure.database.models import PrincipalPrepaymentRecord
from debt_tracker.infrastructure.database.procedures import cascade_revert_prepayment
from debt_tracker.infrastructure.database.repositories import (
    InstrumentRepository,
    PrepaymentRepository,
    to_installment,
)
from debt_tracker.infrastructure.observability.logging import log_event
from debt_tracker.infrastructure.observability.metrics import prepayment_counter
from debt_tracker.services import locks


class PrepaymentManager:
    """
    Records lump-sum payments toward the end of a loan's schedule.

    A prepayment only moves money; the schedule itself changes when the loan
    is recalculated.
    """

    def __init__(self, db: Session, ledger: LedgerPort):
        self.db = db
        self.ledger = ledger
        self.instruments = InstrumentRepository(db)
        self.prepayments = PrepaymentRepository(db)

    def prepay(
        self,
        user_id: str,
        loan_id: uuid.UUID,
        installments_to_advance: int,
        account_id: str,
        payment_date: Optional[date] = None,
    ) -> PrincipalPrepaymentRecord:
        """
        Pay ahead the last ``installments_to_advance`` pending installments.

        The prepaid amount is the sum of their scheduled amounts. Their status
        is left untouched until the next recalculation.

        Raises:
            ValidationError: Bad installment count or missing account
        """
        if not account_id:
            raise ValidationError("An account is required for a principal prepayment")

        with locks.instrument_lock(loan_id):
            loan = self.instruments.get(user_id, loan_id, InstrumentKind.LOAN, for_update=True)
            tail = select_prepayment_tail(
                [to_installment(r) for r in loan.installments],
                installments_to_advance,
            )
            amount_cents = sum(inst.amount_cents for inst in tail)
            paid_on = payment_date or date.today()

            transaction_id = self.ledger.create_transaction(
                user_id=user_id,
                description=f"{loan.description} - principal prepayment ({installments_to_advance} installments)",
                amount_cents=amount_cents,
                date=paid_on,
                type=TransactionType.EXPENSE,
                account_id=account_id,
                category_id=None,
            )

            try:
                prepayment = self.prepayments.create(
                    loan_id=loan.id,
                    amount_cents=amount_cents,
                    payment_date=paid_on,
                    transaction_id=transaction_id,
                    installments_advanced=installments_to_advance,
                )
                self.db.commit()
            except SQLAlchemyError:
                self.db.rollback()
                self.ledger.delete_transaction(user_id, transaction_id)
                raise

        prepayment_counter.labels(action="recorded").inc()
        log_event(
            "prepayment_recorded",
            "Principal prepayment recorded",
            user_id=user_id,
            loan_id=loan_id,
            prepayment_id=prepayment.id,
            amount_cents=amount_cents,
            installments_advanced=installments_to_advance,
        )
        return prepayment

    def revert(self, user_id: str, loan_id: uuid.UUID, prepayment_id: uuid.UUID) -> None:
        """
        Delete a prepayment and its transaction, undoing its recalculation
        if it was already applied.
        """
        with locks.instrument_lock(loan_id):
            loan = self.instruments.get(user_id, loan_id, InstrumentKind.LOAN, for_update=True)
            prepayment = self.prepayments.get(loan, prepayment_id)
            was_applied = prepayment.applied
            cascade_revert_prepayment(self.db, self.ledger, loan, prepayment)

        prepayment_counter.labels(action="reverted").inc()
        log_event(
            "prepayment_reverted",
            "Principal prepayment reverted",
            user_id=user_id,
            loan_id=loan_id,
            prepayment_id=prepayment_id,
            was_applied=was_applied,
        )
