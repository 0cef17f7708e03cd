"""Unit tests for purchase and loan summaries"""

import uuid
from datetime import date
from debt_tracker.domain.amortization import amortize
from debt_tracker.domain.installments import generate_purchase_schedule
from debt_tracker.domain.models import PaidByPrepayment, PaidDirect, PrincipalPrepayment
from debt_tracker.domain.summary import summarize_loan, summarize_purchase


def test_purchase_summary_nothing_paid():
    installments = generate_purchase_schedule(30000, 3, date(2024, 3, 5), 10, 25)

    summary = summarize_purchase(30000, installments, today=date(2024, 3, 6))

    assert summary.paid_count == 0
    assert summary.remaining_cents == 30000
    assert summary.progress_percent == 0.0
    assert summary.is_overdue is False
    assert summary.next_due_date == date(2024, 4, 25)


def test_purchase_summary_partial_and_overdue():
    installments = generate_purchase_schedule(10000, 3, date(2024, 3, 5), 10, 25)
    installments[0].status = PaidDirect(transaction_id=uuid.uuid4())

    summary = summarize_purchase(10000, installments, today=date(2024, 6, 1))

    assert summary.paid_count == 1
    assert summary.paid_cents == 3333
    assert summary.remaining_cents == 6667
    assert summary.progress_percent == 33.33
    assert summary.is_overdue is True
    assert summary.next_due_date == date(2024, 6, 25)


def test_purchase_summary_fully_paid():
    installments = generate_purchase_schedule(30000, 3, date(2024, 3, 5), 10, 25)
    for inst in installments:
        inst.status = PaidDirect(transaction_id=uuid.uuid4())

    summary = summarize_purchase(30000, installments, today=date(2025, 1, 1))

    assert summary.remaining_cents == 0
    assert summary.progress_percent == 100.0
    assert summary.is_overdue is False
    assert summary.next_due_date is None


def test_loan_summary_direct_payments():
    installments = amortize(1_200_000, 12.0, 12, date(2024, 1, 20), 15)
    installments[0].status = PaidDirect(transaction_id=uuid.uuid4())

    summary = summarize_loan(1_200_000, installments, [])

    assert summary.principal_paid_cents == 94619
    assert summary.interest_paid_cents == 12000
    assert summary.prepaid_cents == 0
    assert summary.outstanding_principal_cents == 1_105_381
    assert summary.has_unapplied_prepayments is False
    assert summary.next_installment.number == 2


def test_loan_summary_counts_only_applied_prepayments():
    installments = amortize(1_200_000, 12.0, 12, date(2024, 1, 20), 15)
    for inst in installments[-2:]:
        inst.status = PaidByPrepayment()
    prepayments = [
        PrincipalPrepayment(200_000, date(2024, 2, 1), uuid.uuid4(), 2, applied=True),
        PrincipalPrepayment(50_000, date(2024, 3, 1), uuid.uuid4(), 1),
    ]

    summary = summarize_loan(1_200_000, installments, prepayments)

    assert summary.prepaid_cents == 200_000
    assert summary.principal_paid_cents == 0
    assert summary.has_unapplied_prepayments is True
    assert summary.progress_percent == round(200_000 * 100 / 1_200_000, 2)


def test_loan_summary_progress_capped():
    installments = amortize(100_000, 0, 2, date(2024, 1, 1), 1)
    for inst in installments:
        inst.status = PaidDirect(transaction_id=uuid.uuid4())
    prepayments = [PrincipalPrepayment(100_000, date(2024, 1, 2), uuid.uuid4(), 1, applied=True)]

    summary = summarize_loan(100_000, installments, prepayments)

    assert summary.progress_percent == 100.0
    assert summary.next_installment is None
