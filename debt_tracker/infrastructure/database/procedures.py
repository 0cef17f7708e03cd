"""
Multi-row procedures that run against the database as one unit.

Each procedure either commits all of its row changes or rolls them back.
Database failures surface as ExternalProcedureError; domain rule violations
propagate as they are. Ledger transactions are removed only after the rows
that reference them are gone, so a ledger failure can leave an orphaned
transaction but never a reference to a missing one.
"""

import uuid
from datetime import date
from typing import Any, Dict, List
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from debt_tracker.domain.amortization import reamortize
from debt_tracker.domain.exceptions import (
    DomainException,
    ExternalProcedureError,
    NoPendingPrepayment,
    ValidationError,
)
from debt_tracker.domain.models import PaidByPrepayment, RecalculationStrategy
from debt_tracker.domain.ports import LedgerPort
from debt_tracker.infrastructure.database.models import (
    DebtInstrument,
    InstallmentRecord,
    LoanRecalculation,
    PrincipalPrepaymentRecord,
)
from debt_tracker.infrastructure.database.repositories import (
    PrepaymentRepository,
    apply_installment,
    to_installment,
)


def _snapshot_row(record: InstallmentRecord) -> Dict[str, Any]:
    return {
        "number": record.number,
        "due_date": record.due_date.isoformat(),
        "amount_cents": record.amount_cents,
        "principal_cents": record.principal_cents,
        "interest_cents": record.interest_cents,
        "balance_cents": record.balance_cents,
        "status": record.status,
        "paid_via": record.paid_via,
        "recalculation_id": str(record.recalculation_id) if record.recalculation_id else None,
    }


def _restore_row(record: InstallmentRecord, row: Dict[str, Any]) -> None:
    record.due_date = date.fromisoformat(row["due_date"])
    record.amount_cents = row["amount_cents"]
    record.principal_cents = row["principal_cents"]
    record.interest_cents = row["interest_cents"]
    record.balance_cents = row["balance_cents"]
    record.status = row["status"]
    record.paid_via = row["paid_via"]
    record.transaction_id = None
    record.recalculation_id = uuid.UUID(row["recalculation_id"]) if row["recalculation_id"] else None


def recalculate_loan(
    db: Session,
    loan: DebtInstrument,
    as_of: date,
    strategy: RecalculationStrategy,
) -> LoanRecalculation:
    """
    Apply every unapplied prepayment of a loan and rewrite its schedule.

    Pending installments due after ``as_of`` are rewritten according to the
    strategy; installments no longer needed are marked paid by prepayment.
    Pending installments already due are left as they are.
    """
    try:
        prepayments = PrepaymentRepository(db).unapplied(loan.id)
        if not prepayments:
            raise NoPendingPrepayment(f"Loan {loan.id} has no prepayments to apply")

        slots = [
            to_installment(record)
            for record in loan.installments
            if record.status == "pending" and record.due_date > as_of
        ]
        if not slots:
            raise ValidationError(f"Loan {loan.id} has no pending installments due after {as_of}")

        prepaid_cents = sum(p.amount_cents for p in prepayments)
        result = reamortize(slots, prepaid_cents, loan.annual_rate_percent, strategy)

        records = {r.id: r for r in loan.installments}
        snapshot = [_snapshot_row(records[slot.id]) for slot in slots]
        sequence = max((r.sequence for r in loan.recalculations), default=0) + 1

        recalculation = LoanRecalculation(
            loan_id=loan.id,
            sequence=sequence,
            as_of_date=as_of,
            strategy=RecalculationStrategy(strategy).value,
            applied_cents=result.applied_cents,
            snapshot=snapshot,
        )
        db.add(recalculation)
        db.flush()

        for installment in result.rewritten:
            apply_installment(records[installment.id], installment)
        for installment in result.covered:
            installment.status = PaidByPrepayment(recalculation_id=recalculation.id)
            apply_installment(records[installment.id], installment)

        for prepayment in prepayments:
            prepayment.applied = True
            prepayment.recalculation_id = recalculation.id

        db.commit()
        return recalculation

    except DomainException:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        raise ExternalProcedureError(f"Recalculation of loan {loan.id} failed: {e}") from e


def cascade_revert_prepayment(
    db: Session,
    ledger: LedgerPort,
    loan: DebtInstrument,
    prepayment: PrincipalPrepaymentRecord,
) -> None:
    """
    Remove a prepayment and the transaction that funded it.

    An applied prepayment also undoes the recalculation that applied it: the
    installments are restored from its snapshot and the other prepayments it
    consumed go back to unapplied. Only the loan's latest recalculation can
    be undone, and only while none of its installments has been paid since.
    """
    try:
        if prepayment.applied:
            _undo_recalculation(db, loan, prepayment.recalculation_id)

        transaction_id = prepayment.transaction_id
        db.delete(prepayment)
        db.commit()

    except DomainException:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        raise ExternalProcedureError(f"Reverting prepayment {prepayment.id} failed: {e}") from e

    ledger.delete_transaction(loan.user_id, transaction_id)


def _undo_recalculation(db: Session, loan: DebtInstrument, recalculation_id: uuid.UUID) -> None:
    recalculations = list(loan.recalculations)
    if not recalculations or recalculations[-1].id != recalculation_id:
        raise ValidationError("Only prepayments applied by the latest recalculation can be reverted")
    recalculation = recalculations[-1]

    records = {r.number: r for r in loan.installments}
    for row in recalculation.snapshot:
        record = records[row["number"]]
        if record.paid_via == "transaction":
            raise ValidationError(
                f"Installment {record.number} was paid after the recalculation; revert that payment first"
            )

    for row in recalculation.snapshot:
        _restore_row(records[row["number"]], row)

    for other in loan.prepayments:
        if other.recalculation_id == recalculation.id:
            other.applied = False
            other.recalculation_id = None
    db.flush()

    db.delete(recalculation)
    db.flush()


def cascade_delete_instrument(db: Session, ledger: LedgerPort, instrument: DebtInstrument) -> List[uuid.UUID]:
    """
    Delete an instrument with its installments, prepayments and recalculations,
    then every ledger transaction they referenced.

    Returns the ids of the deleted transactions.
    """
    transaction_ids = [r.transaction_id for r in instrument.installments if r.transaction_id is not None]
    transaction_ids.extend(p.transaction_id for p in instrument.prepayments)
    user_id = instrument.user_id

    try:
        db.delete(instrument)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise ExternalProcedureError(f"Deleting instrument {instrument.id} failed: {e}") from e

    for transaction_id in transaction_ids:
        ledger.delete_transaction(user_id, transaction_id)

    return transaction_ids
