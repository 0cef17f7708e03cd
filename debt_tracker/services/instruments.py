"""Creation, lookup, editing and deletion of purchases and loans"""

import logging
import uuid
from datetime import date
from typing import Any, Callable, Dict, List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from debt_tracker.domain.amortization import amortize
from debt_tracker.domain.exceptions import ScheduleGenerationFailed, ValidationError
from debt_tracker.domain.installments import generate_purchase_schedule
from debt_tracker.domain.models import (
    Installment,
    InstrumentKind,
    Loan,
    LoanSummary,
    Purchase,
    PurchaseSummary,
)
from debt_tracker.domain.ports import LedgerPort
from debt_tracker.domain.summary import summarize_loan, summarize_purchase
from debt_tracker.infrastructure.database.models import DebtInstrument
from debt_tracker.infrastructure.database.procedures import cascade_delete_instrument
from debt_tracker.infrastructure.database.repositories import InstrumentRepository, to_installment, to_prepayment
from debt_tracker.infrastructure.observability.logging import log_event, log_schedule_failure
from debt_tracker.infrastructure.observability.metrics import instrument_counter, schedule_failure_counter
from debt_tracker.services import locks

PURCHASE_EDITABLE = {"description", "category_id"}
LOAN_EDITABLE = {"description", "issuing_institution", "late_fee_cents", "account_id"}


class InstrumentService:
    """Entry point for the lifecycle of debt instruments"""

    def __init__(self, db: Session, ledger: LedgerPort):
        self.db = db
        self.ledger = ledger
        self.instruments = InstrumentRepository(db)

    def create_purchase(self, user_id: str, purchase: Purchase) -> DebtInstrument:
        """
        Register a card purchase and its installment schedule.

        Raises:
            ValidationError: On malformed purchase data
            ScheduleGenerationFailed: When the installments could not be stored
        """
        if not purchase.description.strip():
            raise ValidationError("Description is required")
        if not purchase.card.account_id:
            raise ValidationError("Card account is required")

        installments = generate_purchase_schedule(
            total_cents=purchase.total_cents,
            installment_count=purchase.installment_count,
            purchase_date=purchase.purchase_date,
            statement_cutoff_day=purchase.card.statement_cutoff_day,
            payment_due_day=purchase.card.payment_due_day,
        )
        return self._create_with_schedule(
            user_id,
            InstrumentKind.PURCHASE,
            lambda: self.instruments.create_purchase(user_id, purchase),
            installments,
        )

    def create_loan(self, user_id: str, loan: Loan) -> DebtInstrument:
        """
        Register a loan and its amortization schedule.

        Raises:
            ValidationError: On malformed loan data
            ScheduleGenerationFailed: When the installments could not be stored
        """
        if not loan.description.strip():
            raise ValidationError("Description is required")
        if loan.late_fee_cents < 0:
            raise ValidationError("Late fee cannot be negative")

        installments = amortize(
            principal_cents=loan.principal_cents,
            annual_rate_percent=loan.annual_rate_percent,
            term_months=loan.term_months,
            start_date=loan.start_date,
            payment_day_of_month=loan.payment_day_of_month,
        )
        return self._create_with_schedule(
            user_id,
            InstrumentKind.LOAN,
            lambda: self.instruments.create_loan(user_id, loan),
            installments,
        )

    def _create_with_schedule(
        self,
        user_id: str,
        kind: InstrumentKind,
        create: Callable[[], DebtInstrument],
        installments: List[Installment],
    ) -> DebtInstrument:
        """
        Store an instrument, then its installments.

        The two writes are separate; if the second one fails the instrument
        is deleted again so that it never exists without its schedule.
        """
        instrument = create()
        self.db.commit()
        instrument_id = instrument.id

        try:
            self.instruments.add_installments(instrument_id, installments)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            self._discard(instrument_id)
            schedule_failure_counter.labels(kind=kind.value).inc()
            log_schedule_failure(user_id, kind.value, instrument_id, e)
            raise ScheduleGenerationFailed(
                f"Could not store the installments of {kind.value} {instrument_id}"
            ) from e

        self.db.refresh(instrument)
        instrument_counter.labels(kind=kind.value).inc()
        log_event(
            "instrument_created",
            "Instrument created",
            user_id=user_id,
            kind=kind.value,
            instrument_id=instrument_id,
            installments=len(installments),
        )
        return instrument

    def _discard(self, instrument_id: uuid.UUID) -> None:
        try:
            self.db.query(DebtInstrument).filter(DebtInstrument.id == instrument_id).delete(
                synchronize_session=False
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logging.getLogger(__name__).exception(
                "Compensating delete failed", extra={"instrument_id": str(instrument_id)}
            )

    def get(self, user_id: str, instrument_id: uuid.UUID, kind: InstrumentKind) -> DebtInstrument:
        return self.instruments.get(user_id, instrument_id, kind)

    def list_for_user(self, user_id: str, kind: InstrumentKind) -> List[DebtInstrument]:
        return self.instruments.list_by_user(user_id, kind)

    def update(
        self,
        user_id: str,
        instrument_id: uuid.UUID,
        kind: InstrumentKind,
        changes: Dict[str, Any],
    ) -> DebtInstrument:
        """Edit descriptive fields; schedule-defining fields are immutable"""
        editable = PURCHASE_EDITABLE if kind == InstrumentKind.PURCHASE else LOAN_EDITABLE
        locked = set(changes) - editable
        if locked:
            raise ValidationError(f"Fields cannot be changed: {', '.join(sorted(locked))}")
        if "description" in changes and not (changes["description"] or "").strip():
            raise ValidationError("Description is required")
        if (changes.get("late_fee_cents") or 0) < 0:
            raise ValidationError("Late fee cannot be negative")

        with locks.instrument_lock(instrument_id):
            instrument = self.instruments.get(user_id, instrument_id, kind, for_update=True)
            for field, value in changes.items():
                setattr(instrument, field, value)
            self.db.commit()
            self.db.refresh(instrument)
        return instrument

    def delete(self, user_id: str, instrument_id: uuid.UUID, kind: InstrumentKind) -> None:
        """Delete an instrument together with everything that hangs off it"""
        with locks.instrument_lock(instrument_id):
            instrument = self.instruments.get(user_id, instrument_id, kind, for_update=True)
            deleted = cascade_delete_instrument(self.db, self.ledger, instrument)
        locks.forget(instrument_id)
        log_event(
            "instrument_deleted",
            "Instrument deleted",
            user_id=user_id,
            kind=kind.value,
            instrument_id=instrument_id,
            transactions_deleted=len(deleted),
        )

    def purchase_summary(self, instrument: DebtInstrument, today: Optional[date] = None) -> PurchaseSummary:
        return summarize_purchase(
            instrument.principal_cents,
            [to_installment(r) for r in instrument.installments],
            today or date.today(),
        )

    def loan_summary(self, instrument: DebtInstrument) -> LoanSummary:
        return summarize_loan(
            instrument.principal_cents,
            [to_installment(r) for r in instrument.installments],
            [to_prepayment(p) for p in instrument.prepayments],
        )
