"""Progress figures shown next to each purchase and loan"""

from datetime import date
from typing import Sequence
from debt_tracker.domain.models import (
    Installment,
    LoanSummary,
    PaidDirect,
    PrincipalPrepayment,
    PurchaseSummary,
)
from debt_tracker.domain.payments import next_payable


def _percent(part: int, whole: int) -> float:
    return round(part * 100 / whole, 2) if whole > 0 else 0.0


def summarize_purchase(total_cents: int, installments: Sequence[Installment], today: date) -> PurchaseSummary:
    """Paid vs remaining amounts, overdue flag and the next due date"""
    paid = [inst for inst in installments if not inst.is_pending]
    paid_cents = sum(inst.amount_cents for inst in paid)
    pending = [inst for inst in installments if inst.is_pending]
    upcoming = sorted(inst.due_date for inst in pending if inst.due_date >= today)

    return PurchaseSummary(
        paid_count=len(paid),
        paid_cents=paid_cents,
        remaining_cents=total_cents - paid_cents,
        is_overdue=any(inst.due_date < today for inst in pending),
        progress_percent=_percent(paid_cents, total_cents),
        next_due_date=upcoming[0] if upcoming else None,
    )


def summarize_loan(
    principal_cents: int,
    installments: Sequence[Installment],
    prepayments: Sequence[PrincipalPrepayment],
) -> LoanSummary:
    """
    Principal and interest paid so far and what is still owed.

    Only installments paid through a transaction count as paid principal or
    interest; installments covered by a prepayment are accounted for through
    the applied prepayment amounts instead.
    """
    direct = [inst for inst in installments if isinstance(inst.status, PaidDirect)]
    principal_paid = sum(inst.principal_cents or 0 for inst in direct)
    interest_paid = sum(inst.interest_cents or 0 for inst in direct)
    prepaid = sum(p.amount_cents for p in prepayments if p.applied)
    outstanding = sum(inst.principal_cents or 0 for inst in installments if inst.is_pending)

    return LoanSummary(
        principal_paid_cents=principal_paid,
        interest_paid_cents=interest_paid,
        prepaid_cents=prepaid,
        outstanding_principal_cents=outstanding,
        progress_percent=min(_percent(principal_paid + prepaid, principal_cents), 100.0),
        has_unapplied_prepayments=any(not p.applied for p in prepayments),
        next_installment=next_payable(installments),
    )
