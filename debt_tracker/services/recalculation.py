"""Applying outstanding prepayments to a loan's schedule"""

import uuid
from datetime import date
from typing import Optional
from sqlalchemy.orm import Session
from debt_tracker.config import settings
from debt_tracker.domain.exceptions import NoPendingPrepayment, ValidationError
from debt_tracker.domain.models import InstrumentKind, RecalculationStrategy
from debt_tracker.infrastructure.database.models import LoanRecalculation
from debt_tracker.infrastructure.database.procedures import recalculate_loan
from debt_tracker.infrastructure.database.repositories import InstrumentRepository, PrepaymentRepository
from debt_tracker.infrastructure.observability.logging import log_event
from debt_tracker.infrastructure.observability.metrics import recalculation_counter
from debt_tracker.services import locks


class RecalculationCoordinator:
    """Checks preconditions and hands the schedule rewrite to the database procedure"""

    def __init__(self, db: Session):
        self.db = db
        self.instruments = InstrumentRepository(db)
        self.prepayments = PrepaymentRepository(db)

    def recalculate(
        self,
        user_id: str,
        loan_id: uuid.UUID,
        as_of: Optional[date] = None,
        strategy: Optional[RecalculationStrategy] = None,
    ) -> LoanRecalculation:
        """
        Apply the loan's unapplied prepayments and rewrite its remaining schedule.

        Raises:
            NoPendingPrepayment: Nothing to apply
            ValidationError: Unknown strategy or nothing left to rewrite
            ExternalProcedureError: The procedure failed in the database
        """
        try:
            strategy = RecalculationStrategy(strategy or settings.default_recalculation_strategy)
        except ValueError as e:
            raise ValidationError(f"Unknown recalculation strategy: {strategy}") from e
        as_of = as_of or date.today()

        with locks.instrument_lock(loan_id):
            loan = self.instruments.get(user_id, loan_id, InstrumentKind.LOAN, for_update=True)
            if not self.prepayments.unapplied(loan.id):
                raise NoPendingPrepayment("There are no prepayments waiting to be applied")

            recalculation = recalculate_loan(self.db, loan, as_of, strategy)

        recalculation_counter.labels(strategy=strategy.value).inc()
        log_event(
            "loan_recalculated",
            "Loan recalculated",
            user_id=user_id,
            loan_id=loan_id,
            recalculation_id=recalculation.id,
            strategy=strategy.value,
            applied_cents=recalculation.applied_cents,
        )
        return recalculation
