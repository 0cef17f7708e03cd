"""Data access layer for debt instruments and ledger transactions"""

import uuid
from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session
from debt_tracker.infrastructure.database.models import (
    DebtInstrument,
    InstallmentRecord,
    LedgerTransaction,
    PrincipalPrepaymentRecord,
)
from debt_tracker.domain.exceptions import InstrumentNotFound
from debt_tracker.domain.models import (
    Installment,
    InstrumentKind,
    Loan,
    PaidByPrepayment,
    PaidDirect,
    PrincipalPrepayment,
    Purchase,
    TransactionType,
)
from debt_tracker.domain.payments import decode_status


def to_installment(record: InstallmentRecord) -> Installment:
    """Map an installment row to its domain form"""
    return Installment(
        id=record.id,
        number=record.number,
        due_date=record.due_date,
        amount_cents=record.amount_cents,
        principal_cents=record.principal_cents,
        interest_cents=record.interest_cents,
        balance_cents=record.balance_cents,
        status=decode_status(record.status, record.paid_via, record.transaction_id, record.recalculation_id),
    )


def to_prepayment(record: PrincipalPrepaymentRecord) -> PrincipalPrepayment:
    return PrincipalPrepayment(
        id=record.id,
        amount_cents=record.amount_cents,
        payment_date=record.payment_date,
        transaction_id=record.transaction_id,
        installments_advanced=record.installments_advanced,
        applied=record.applied,
    )


def apply_installment(record: InstallmentRecord, installment: Installment) -> None:
    """Copy schedule figures and status of a domain installment onto its row"""
    record.due_date = installment.due_date
    record.amount_cents = installment.amount_cents
    record.principal_cents = installment.principal_cents
    record.interest_cents = installment.interest_cents
    record.balance_cents = installment.balance_cents

    status = installment.status
    record.status = status.label
    if isinstance(status, PaidDirect):
        record.paid_via = "transaction"
        record.transaction_id = status.transaction_id
        record.recalculation_id = None
    elif isinstance(status, PaidByPrepayment):
        record.paid_via = "prepayment"
        record.transaction_id = None
        record.recalculation_id = status.recalculation_id
    else:
        record.paid_via = None
        record.transaction_id = None
        record.recalculation_id = None


class InstrumentRepository:
    """Repository for purchases, loans and their installments"""

    def __init__(self, db: Session):
        self.db = db

    def create_purchase(self, user_id: str, purchase: Purchase) -> DebtInstrument:
        """Persist a purchase without its installments"""
        db_instrument = DebtInstrument(
            user_id=user_id,
            kind=InstrumentKind.PURCHASE.value,
            description=purchase.description,
            principal_cents=purchase.total_cents,
            installment_count=purchase.installment_count,
            start_date=purchase.purchase_date,
            account_id=purchase.card.account_id,
            category_id=purchase.category_id,
            statement_cutoff_day=purchase.card.statement_cutoff_day,
            payment_due_day=purchase.card.payment_due_day,
        )
        self.db.add(db_instrument)
        self.db.flush()  # Get ID without committing
        return db_instrument

    def create_loan(self, user_id: str, loan: Loan) -> DebtInstrument:
        """Persist a loan without its installments"""
        db_instrument = DebtInstrument(
            user_id=user_id,
            kind=InstrumentKind.LOAN.value,
            description=loan.description,
            principal_cents=loan.principal_cents,
            installment_count=loan.term_months,
            start_date=loan.start_date,
            account_id=loan.account_id,
            annual_rate_percent=loan.annual_rate_percent,
            payment_day_of_month=loan.payment_day_of_month,
            late_fee_cents=loan.late_fee_cents,
            issuing_institution=loan.issuing_institution,
        )
        self.db.add(db_instrument)
        self.db.flush()
        return db_instrument

    def add_installments(self, instrument_id: uuid.UUID, installments: List[Installment]) -> None:
        """Attach a freshly generated schedule to an instrument"""
        for inst in installments:
            db_installment = InstallmentRecord(instrument_id=instrument_id, number=inst.number)
            apply_installment(db_installment, inst)
            self.db.add(db_installment)
        self.db.flush()

    def get(
        self,
        user_id: str,
        instrument_id: uuid.UUID,
        kind: Optional[InstrumentKind] = None,
        for_update: bool = False,
    ) -> DebtInstrument:
        """Fetch an instrument owned by the user, optionally locking its row"""
        query = self.db.query(DebtInstrument).filter(
            DebtInstrument.id == instrument_id,
            DebtInstrument.user_id == user_id,
        )
        if kind is not None:
            query = query.filter(DebtInstrument.kind == kind.value)
        if for_update:
            query = query.with_for_update()

        instrument = query.first()
        if instrument is None:
            label = kind.value.capitalize() if kind is not None else "Instrument"
            raise InstrumentNotFound(f"{label} {instrument_id} not found")
        return instrument

    def list_by_user(self, user_id: str, kind: InstrumentKind) -> List[DebtInstrument]:
        """Fetch a user's instruments of one kind, newest first"""
        return (
            self.db.query(DebtInstrument)
            .filter(DebtInstrument.user_id == user_id, DebtInstrument.kind == kind.value)
            .order_by(DebtInstrument.start_date.desc(), DebtInstrument.created_at.desc())
            .all()
        )


class InstallmentRepository:
    """Repository for individual installments"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, instrument: DebtInstrument, installment_id: uuid.UUID) -> InstallmentRecord:
        record = (
            self.db.query(InstallmentRecord)
            .filter(
                InstallmentRecord.id == installment_id,
                InstallmentRecord.instrument_id == instrument.id,
            )
            .first()
        )
        if record is None:
            raise InstrumentNotFound(f"Installment {installment_id} not found")
        return record

    def mark_paid(self, record: InstallmentRecord, transaction_id: uuid.UUID) -> None:
        record.status = "paid"
        record.paid_via = "transaction"
        record.transaction_id = transaction_id
        self.db.flush()

    def mark_pending(self, record: InstallmentRecord) -> None:
        record.status = "pending"
        record.paid_via = None
        record.transaction_id = None
        self.db.flush()


class PrepaymentRepository:
    """Repository for principal prepayments"""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        loan_id: uuid.UUID,
        amount_cents: int,
        payment_date: date,
        transaction_id: uuid.UUID,
        installments_advanced: int,
    ) -> PrincipalPrepaymentRecord:
        db_prepayment = PrincipalPrepaymentRecord(
            loan_id=loan_id,
            amount_cents=amount_cents,
            payment_date=payment_date,
            transaction_id=transaction_id,
            installments_advanced=installments_advanced,
            applied=False,
        )
        self.db.add(db_prepayment)
        self.db.flush()
        return db_prepayment

    def get(self, loan: DebtInstrument, prepayment_id: uuid.UUID) -> PrincipalPrepaymentRecord:
        record = (
            self.db.query(PrincipalPrepaymentRecord)
            .filter(
                PrincipalPrepaymentRecord.id == prepayment_id,
                PrincipalPrepaymentRecord.loan_id == loan.id,
            )
            .first()
        )
        if record is None:
            raise InstrumentNotFound(f"Prepayment {prepayment_id} not found")
        return record

    def unapplied(self, loan_id: uuid.UUID) -> List[PrincipalPrepaymentRecord]:
        return (
            self.db.query(PrincipalPrepaymentRecord)
            .filter(
                PrincipalPrepaymentRecord.loan_id == loan_id,
                PrincipalPrepaymentRecord.applied.is_(False),
            )
            .all()
        )


class TransactionRepository:
    """
    Ledger transactions kept in the local database.

    Each call commits on its own: a ledger write is a separate step from the
    installment update that references it.
    """

    def __init__(self, db: Session):
        self.db = db

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
        db_transaction = LedgerTransaction(
            user_id=user_id,
            description=description,
            amount_cents=amount_cents,
            date=date,
            type=TransactionType(type).value,
            account_id=account_id,
            category_id=category_id,
        )
        self.db.add(db_transaction)
        self.db.commit()
        return db_transaction.id

    def delete_transaction(self, user_id: str, transaction_id: uuid.UUID) -> None:
        (
            self.db.query(LedgerTransaction)
            .filter(LedgerTransaction.id == transaction_id, LedgerTransaction.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()

    def get_by_user(self, user_id: str) -> List[LedgerTransaction]:
        return (
            self.db.query(LedgerTransaction)
            .filter(LedgerTransaction.user_id == user_id)
            .order_by(LedgerTransaction.date.desc())
            .all()
        )
