"""Domain models - pure Python dataclasses representing business entities"""

import enum
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Union


class InstrumentKind(str, enum.Enum):
    PURCHASE = "purchase"
    LOAN = "loan"


class TransactionType(str, enum.Enum):
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class RecalculationStrategy(str, enum.Enum):
    """How a recalculation spends the prepaid principal"""

    REDUCE_TERM = "reduce_term"  # same payment, fewer installments
    REDUCE_PAYMENT = "reduce_payment"  # same installments, lower payment


# Installment status as a tagged variant. The persisted form is
# status ("pending" | "paid") plus paid_via ("transaction" | "prepayment").


@dataclass(frozen=True)
class Pending:
    label = "pending"


@dataclass(frozen=True)
class PaidDirect:
    """Paid by the user through a ledger transaction"""

    transaction_id: uuid.UUID
    label = "paid"


@dataclass(frozen=True)
class PaidByPrepayment:
    """Covered by a principal prepayment applied in a recalculation"""

    recalculation_id: Optional[uuid.UUID] = None
    label = "paid"


InstallmentStatus = Union[Pending, PaidDirect, PaidByPrepayment]


@dataclass
class CardCycle:
    """Billing cycle of the credit card a purchase is charged to"""

    account_id: str
    statement_cutoff_day: int
    payment_due_day: int


@dataclass
class Installment:
    """Single payment in a purchase or loan schedule"""

    number: int
    due_date: date
    amount_cents: int
    principal_cents: Optional[int] = None
    interest_cents: Optional[int] = None
    balance_cents: Optional[int] = None  # remaining loan balance after this payment
    status: InstallmentStatus = field(default_factory=Pending)
    id: Optional[uuid.UUID] = None

    @property
    def is_pending(self) -> bool:
        return isinstance(self.status, Pending)


@dataclass
class Purchase:
    """Fixed-installment card purchase"""

    description: str
    total_cents: int
    installment_count: int
    purchase_date: date
    card: CardCycle
    category_id: Optional[str] = None
    id: Optional[uuid.UUID] = None


@dataclass
class Loan:
    """Fixed-rate loan repaid in monthly installments"""

    description: str
    principal_cents: int
    annual_rate_percent: float
    term_months: int
    start_date: date
    payment_day_of_month: int
    account_id: Optional[str] = None
    late_fee_cents: int = 0
    issuing_institution: Optional[str] = None
    id: Optional[uuid.UUID] = None


@dataclass
class PrincipalPrepayment:
    """Money moved toward future principal, waiting for a recalculation"""

    amount_cents: int
    payment_date: date
    transaction_id: uuid.UUID
    installments_advanced: int
    applied: bool = False
    id: Optional[uuid.UUID] = None


@dataclass
class PurchaseSummary:
    paid_count: int
    paid_cents: int
    remaining_cents: int
    is_overdue: bool
    progress_percent: float
    next_due_date: Optional[date]


@dataclass
class LoanSummary:
    principal_paid_cents: int
    interest_paid_cents: int
    prepaid_cents: int
    outstanding_principal_cents: int
    progress_percent: float
    has_unapplied_prepayments: bool
    next_installment: Optional[Installment]


@dataclass
class RecalculationResult:
    """Outcome of rewriting the remaining installments of a loan"""

    rewritten: List[Installment]
    covered: List[Installment]
    applied_cents: int
