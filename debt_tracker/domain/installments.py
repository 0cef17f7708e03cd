"""Installment schedule generation for card purchases"""

from datetime import date
from typing import List
from debt_tracker.domain.exceptions import ValidationError
from debt_tracker.domain.models import Installment
from debt_tracker.utils.date_utils import add_months


def first_due_month_offset(purchase_date: date, statement_cutoff_day: int) -> int:
    """
    Months between the purchase month and the first installment's due month.

    A purchase made on or after the cutoff day lands in the next statement,
    so its first payment is due one month later than a purchase made before it.
    """
    return 2 if purchase_date.day >= statement_cutoff_day else 1


def generate_purchase_schedule(
    total_cents: int,
    installment_count: int,
    purchase_date: date,
    statement_cutoff_day: int,
    payment_due_day: int,
) -> List[Installment]:
    """
    Split a card purchase into equal monthly installments.

    Requirements:
    - Equal installments, one per month
    - First due date depends on the card's statement cutoff
    - Every due date falls on the card's payment due day
    - Last installment absorbs rounding remainder (≤ installment_count-1 cents drift)

    Args:
        total_cents: Purchase amount to split
        installment_count: Number of monthly payments
        purchase_date: Date the purchase was charged
        statement_cutoff_day: Day of month the card statement closes (1-31)
        payment_due_day: Day of month the card payment is due (1-31)

    Returns:
        List of pending Installment objects numbered from 1

    Example:
        $100.00 in 3 → [$33.33, $33.33, $33.34]
        10000 cents / 3 = 3333 base, remainder 1
        Last installment: 3333 + 1 = 3334
    """
    if total_cents <= 0:
        raise ValidationError("Purchase amount must be positive")
    if installment_count < 1:
        raise ValidationError("Installment count must be at least 1")
    if not 1 <= statement_cutoff_day <= 31:
        raise ValidationError("Statement cutoff day must be between 1 and 31")
    if not 1 <= payment_due_day <= 31:
        raise ValidationError("Payment due day must be between 1 and 31")

    offset = first_due_month_offset(purchase_date, statement_cutoff_day)
    base_amount = total_cents // installment_count
    remainder = total_cents % installment_count

    installments = []
    for number in range(1, installment_count + 1):
        due_date = add_months(purchase_date, number + offset - 1, day=payment_due_day)
        amount = base_amount + (remainder if number == installment_count else 0)
        installments.append(Installment(number=number, due_date=due_date, amount_cents=amount))

    return installments
