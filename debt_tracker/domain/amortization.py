"""Fixed-payment (French) amortization for loans"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP, getcontext
from typing import List, Sequence
from debt_tracker.domain.exceptions import ValidationError
from debt_tracker.domain.models import Installment, PaidByPrepayment, RecalculationResult, RecalculationStrategy
from debt_tracker.utils.date_utils import add_months

getcontext().prec = 28


def monthly_rate(annual_rate_percent: float) -> Decimal:
    """Annual percentage → periodic monthly rate (12% → 0.01)"""
    return Decimal(str(annual_rate_percent)) / Decimal(100) / Decimal(12)


def round_cents(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def fixed_payment_cents(balance_cents: int, rate: Decimal, periods: int) -> int:
    """
    Periodic payment that amortizes a balance over a number of periods.

        payment = P * i / (1 - (1 + i)^-n)

    With a zero rate the formula degenerates to P / n, floored to the cent so
    that the final installment picks up the remainder.
    """
    if periods < 1:
        raise ValidationError("Term must be at least 1 month")
    if rate == 0:
        return balance_cents // periods
    payment = Decimal(balance_cents) * rate / (1 - (1 + rate) ** -periods)
    return round_cents(payment)


def amortize_balance(
    balance_cents: int,
    rate: Decimal,
    due_dates: Sequence[date],
    first_number: int = 1,
) -> List[Installment]:
    """
    Spread a balance over the given due dates with a constant payment.

    Each period pays interest on the running balance and the rest of the
    payment goes to principal. The last installment takes whatever principal
    is left, so the final balance is exactly zero and the amounts add up to
    balance + total interest.
    """
    payment = fixed_payment_cents(balance_cents, rate, len(due_dates))
    balance = balance_cents
    installments = []

    for index, due_date in enumerate(due_dates):
        interest = round_cents(Decimal(balance) * rate)
        if index == len(due_dates) - 1:
            principal = balance
        else:
            principal = min(max(payment - interest, 0), balance)
        balance = max(balance - principal, 0)

        installments.append(
            Installment(
                number=first_number + index,
                due_date=due_date,
                amount_cents=principal + interest,
                principal_cents=principal,
                interest_cents=interest,
                balance_cents=balance,
            )
        )

    return installments


def amortize_with_payment(
    balance_cents: int,
    rate: Decimal,
    payment_cents: int,
    due_dates: Sequence[date],
    first_number: int = 1,
) -> List[Installment]:
    """
    Pay a balance down with a fixed payment, stopping once it reaches zero.

    Returns only the installments needed; the closing one pays the remaining
    balance plus its interest. If the dates run out first, the last one
    closes the balance anyway.
    """
    balance = balance_cents
    installments = []

    for index, due_date in enumerate(due_dates):
        if balance <= 0:
            break
        interest = round_cents(Decimal(balance) * rate)
        if index == len(due_dates) - 1 or balance + interest <= payment_cents:
            principal = balance
        else:
            principal = max(payment_cents - interest, 0)
        balance -= principal

        installments.append(
            Installment(
                number=first_number + index,
                due_date=due_date,
                amount_cents=principal + interest,
                principal_cents=principal,
                interest_cents=interest,
                balance_cents=balance,
            )
        )

    return installments


def amortize(
    principal_cents: int,
    annual_rate_percent: float,
    term_months: int,
    start_date: date,
    payment_day_of_month: int,
) -> List[Installment]:
    """
    Generate the full installment schedule of a new loan.

    Args:
        principal_cents: Amount borrowed
        annual_rate_percent: Nominal annual rate (12.0 means 12%)
        term_months: Number of monthly installments
        start_date: Loan start; installment i is due i months later
        payment_day_of_month: Fixed due day (1-28)

    Example:
        1,200,000 cents at 12% over 12 months → payment 106,619;
        installment 1: interest 12,000, principal 94,619, balance 1,105,381
    """
    if principal_cents <= 0:
        raise ValidationError("Loan principal must be positive")
    if annual_rate_percent < 0:
        raise ValidationError("Interest rate cannot be negative")
    if term_months < 1:
        raise ValidationError("Term must be at least 1 month")
    if not 1 <= payment_day_of_month <= 28:
        raise ValidationError("Payment day must be between 1 and 28")

    due_dates = [add_months(start_date, i, day=payment_day_of_month) for i in range(1, term_months + 1)]
    return amortize_balance(principal_cents, monthly_rate(annual_rate_percent), due_dates)


def reamortize(
    slots: Sequence[Installment],
    prepaid_cents: int,
    annual_rate_percent: float,
    strategy: RecalculationStrategy,
) -> RecalculationResult:
    """
    Apply prepaid principal to the pending part of a schedule and rewrite it.

    ``slots`` are the pending installments that may be rewritten, in order.
    Their numbers and due dates are kept; amounts and splits are recomputed.

    - reduce_term keeps the current payment and drops the installments that
      are no longer needed; those are reported as covered by the prepayment
    - reduce_payment keeps every slot and lowers the payment

    The balance being rewritten is the principal still owed on the slots
    themselves. Installments already settled out of order (a later one paid
    while an earlier one was reverted) are not part of it.
    """
    if not slots:
        raise ValidationError("No pending installments left to recalculate")
    if prepaid_cents <= 0:
        raise ValidationError("Prepaid amount must be positive")

    first = slots[0]
    opening_balance = sum(slot.principal_cents or 0 for slot in slots)
    new_balance = max(opening_balance - prepaid_cents, 0)
    rate = monthly_rate(annual_rate_percent)
    due_dates = [slot.due_date for slot in slots]

    if new_balance == 0:
        rewritten = []
    elif RecalculationStrategy(strategy) == RecalculationStrategy.REDUCE_TERM:
        rewritten = amortize_with_payment(new_balance, rate, first.amount_cents, due_dates, first.number)
    else:
        rewritten = amortize_balance(new_balance, rate, due_dates, first.number)

    for installment, slot in zip(rewritten, slots):
        installment.number = slot.number
        installment.id = slot.id

    covered = []
    for slot in slots[len(rewritten):]:
        covered.append(
            Installment(
                number=slot.number,
                due_date=slot.due_date,
                amount_cents=slot.amount_cents,
                principal_cents=slot.principal_cents,
                interest_cents=slot.interest_cents,
                balance_cents=0,
                status=PaidByPrepayment(),
                id=slot.id,
            )
        )

    return RecalculationResult(
        rewritten=rewritten,
        covered=covered,
        applied_cents=opening_balance - new_balance,
    )
