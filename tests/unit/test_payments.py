"""Unit tests for the installment state machine"""

import uuid
import pytest
from datetime import date
from debt_tracker.domain.exceptions import (
    ExternalProcedureError,
    NoRevertibleTransaction,
    PaymentOrderViolation,
    ValidationError,
)
from debt_tracker.domain.models import Installment, PaidByPrepayment, PaidDirect, Pending
from debt_tracker.domain.payments import (
    decode_status,
    ensure_payable,
    ensure_revertible,
    next_payable,
    select_prepayment_tail,
)


def make_schedule(count=4, paid=0):
    installments = []
    for number in range(1, count + 1):
        status = PaidDirect(transaction_id=uuid.uuid4()) if number <= paid else Pending()
        installments.append(
            Installment(number=number, due_date=date(2024, number, 10), amount_cents=2500, status=status)
        )
    return installments


def test_next_payable_is_lowest_pending():
    installments = make_schedule(paid=2)
    assert next_payable(installments).number == 3


def test_next_payable_none_when_settled():
    assert next_payable(make_schedule(paid=4)) is None


def test_pay_first_pending_allowed():
    installments = make_schedule(paid=1)
    ensure_payable(installments[1], installments)


def test_pay_out_of_order_rejected():
    installments = make_schedule()
    with pytest.raises(PaymentOrderViolation):
        ensure_payable(installments[2], installments)


def test_pay_already_paid_rejected():
    installments = make_schedule(paid=2)
    with pytest.raises(ValidationError):
        ensure_payable(installments[0], installments)


def test_order_ignores_prepaid_installments():
    """Installments covered by a prepayment are skipped when finding the next one"""
    installments = make_schedule()
    installments[0].status = PaidByPrepayment(recalculation_id=uuid.uuid4())
    ensure_payable(installments[1], installments)


def test_revert_returns_transaction_id():
    transaction_id = uuid.uuid4()
    installment = Installment(
        number=1,
        due_date=date(2024, 1, 10),
        amount_cents=2500,
        status=PaidDirect(transaction_id=transaction_id),
    )
    assert ensure_revertible(installment) == transaction_id


def test_revert_pending_rejected():
    with pytest.raises(NoRevertibleTransaction):
        ensure_revertible(make_schedule()[0])


def test_revert_prepaid_rejected():
    installment = make_schedule()[3]
    installment.status = PaidByPrepayment(recalculation_id=uuid.uuid4())
    with pytest.raises(NoRevertibleTransaction):
        ensure_revertible(installment)


def test_prepayment_tail_takes_highest_numbers():
    installments = make_schedule(count=6, paid=1)
    selected = select_prepayment_tail(installments, 2)
    assert [inst.number for inst in selected] == [6, 5]


def test_prepayment_tail_skips_settled_installments():
    installments = make_schedule(count=6, paid=1)
    installments[5].status = PaidByPrepayment()
    selected = select_prepayment_tail(installments, 2)
    assert [inst.number for inst in selected] == [5, 4]


@pytest.mark.parametrize("count", [0, -1, 6])
def test_prepayment_tail_count_bounds(count):
    installments = make_schedule(count=6, paid=1)
    with pytest.raises(ValidationError):
        select_prepayment_tail(installments, count)


def test_decode_status_variants():
    transaction_id = uuid.uuid4()
    recalculation_id = uuid.uuid4()

    assert decode_status("pending", None, None) == Pending()
    assert decode_status("paid", "transaction", transaction_id) == PaidDirect(transaction_id)
    assert decode_status("paid", "prepayment", None, recalculation_id) == PaidByPrepayment(recalculation_id)


@pytest.mark.parametrize(
    "status, paid_via",
    [("paid", None), ("paid", "transaction"), ("overdue", None)],
)
def test_decode_status_inconsistent(status, paid_via):
    with pytest.raises(ExternalProcedureError):
        decode_status(status, paid_via, None)
