"""Installment state machine: which installments may be paid, reverted or advanced"""

import uuid
from typing import List, Optional, Sequence
from debt_tracker.domain.exceptions import (
    ExternalProcedureError,
    NoRevertibleTransaction,
    PaymentOrderViolation,
    ValidationError,
)
from debt_tracker.domain.models import Installment, InstallmentStatus, PaidByPrepayment, PaidDirect, Pending


def decode_status(
    status: str,
    paid_via: Optional[str],
    transaction_id: Optional[uuid.UUID],
    recalculation_id: Optional[uuid.UUID] = None,
) -> InstallmentStatus:
    """Build the status variant from its persisted columns"""
    if status == "pending":
        return Pending()
    if status == "paid" and paid_via == "transaction" and transaction_id is not None:
        return PaidDirect(transaction_id=transaction_id)
    if status == "paid" and paid_via == "prepayment":
        return PaidByPrepayment(recalculation_id=recalculation_id)
    raise ExternalProcedureError(f"Inconsistent installment status: {status}/{paid_via}")


def next_payable(installments: Sequence[Installment]) -> Optional[Installment]:
    """Earliest pending installment, or None when everything is settled"""
    pending = [inst for inst in installments if inst.is_pending]
    return min(pending, key=lambda inst: inst.number) if pending else None


def ensure_payable(target: Installment, installments: Sequence[Installment]) -> None:
    """
    Check the pending → paid transition.

    Installments are paid strictly in order: only the lowest-numbered
    pending installment of an instrument can be paid.
    """
    if not target.is_pending:
        raise ValidationError(f"Installment {target.number} is already paid")

    earliest = next_payable(installments)
    if earliest is not None and earliest.number != target.number:
        raise PaymentOrderViolation(
            f"Installment {earliest.number} must be paid before installment {target.number}"
        )


def ensure_revertible(target: Installment) -> uuid.UUID:
    """Check the paid → pending transition and return the transaction to delete"""
    if not isinstance(target.status, PaidDirect):
        raise NoRevertibleTransaction(
            f"Installment {target.number} has no payment transaction to revert"
        )
    return target.status.transaction_id


def select_prepayment_tail(installments: Sequence[Installment], count: int) -> List[Installment]:
    """
    Pick the installments a principal prepayment pays ahead.

    Prepayments work from the end of the schedule: the ``count``
    highest-numbered pending installments are selected.
    """
    pending = sorted(
        (inst for inst in installments if inst.is_pending),
        key=lambda inst: inst.number,
        reverse=True,
    )
    if count < 1:
        raise ValidationError("At least one installment must be advanced")
    if count > len(pending):
        raise ValidationError(
            f"Cannot advance {count} installments, only {len(pending)} pending"
        )
    return pending[:count]
