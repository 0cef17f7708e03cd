"""Pydantic schemas for API request/response validation"""

import uuid
from datetime import date
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from debt_tracker.domain.models import RecalculationStrategy


class PurchaseCreateRequest(BaseModel):
    """Request body for POST /v1/purchases"""

    description: str = Field(..., min_length=1)
    total_cents: int = Field(..., gt=0, description="Purchase amount in cents")
    installment_count: int = Field(..., ge=1)
    purchase_date: date
    account_id: str = Field(..., min_length=1, description="Credit card account")
    statement_cutoff_day: int = Field(..., ge=1, le=31)
    payment_due_day: int = Field(..., ge=1, le=31)
    category_id: Optional[str] = None


class PurchaseUpdateRequest(BaseModel):
    """Request body for PATCH /v1/purchases/{id}"""

    model_config = ConfigDict(extra="forbid")

    description: Optional[str] = Field(None, min_length=1)
    category_id: Optional[str] = None


class LoanCreateRequest(BaseModel):
    """Request body for POST /v1/loans"""

    description: str = Field(..., min_length=1)
    principal_cents: int = Field(..., gt=0)
    annual_rate_percent: float = Field(..., ge=0)
    term_months: int = Field(..., ge=1)
    start_date: date
    payment_day_of_month: int = Field(15, ge=1, le=28)
    account_id: Optional[str] = None
    late_fee_cents: int = Field(0, ge=0)
    issuing_institution: Optional[str] = None


class LoanUpdateRequest(BaseModel):
    """Request body for PATCH /v1/loans/{id}"""

    model_config = ConfigDict(extra="forbid")

    description: Optional[str] = Field(None, min_length=1)
    issuing_institution: Optional[str] = None
    late_fee_cents: Optional[int] = Field(None, ge=0)
    account_id: Optional[str] = None


class PayRequest(BaseModel):
    """Optional body for paying an installment"""

    account_id: Optional[str] = None
    payment_date: Optional[date] = None


class PrepaymentRequest(BaseModel):
    """Request body for POST /v1/loans/{id}/prepayments"""

    installments_to_advance: int = Field(..., ge=1)
    account_id: str = Field(..., min_length=1)
    payment_date: Optional[date] = None


class RecalculateRequest(BaseModel):
    """Request body for POST /v1/loans/{id}/recalculate"""

    strategy: Optional[RecalculationStrategy] = None
    as_of_date: Optional[date] = None


class InstallmentSchema(BaseModel):
    """Single installment in a schedule"""

    id: uuid.UUID
    number: int
    due_date: date
    amount_cents: int
    principal_cents: Optional[int] = None
    interest_cents: Optional[int] = None
    balance_cents: Optional[int] = None
    status: str
    paid_via: Optional[str] = None
    transaction_id: Optional[uuid.UUID] = None


class PurchaseSummarySchema(BaseModel):
    paid_count: int
    paid_cents: int
    remaining_cents: int
    is_overdue: bool
    progress_percent: float
    next_due_date: Optional[date] = None


class PurchaseResponse(BaseModel):
    """A purchase with its schedule and progress"""

    id: uuid.UUID
    description: str
    total_cents: int
    installment_count: int
    purchase_date: date
    account_id: str
    category_id: Optional[str] = None
    statement_cutoff_day: int
    payment_due_day: int
    installments: List[InstallmentSchema]
    summary: PurchaseSummarySchema


class PrepaymentSchema(BaseModel):
    id: uuid.UUID
    amount_cents: int
    payment_date: date
    transaction_id: uuid.UUID
    installments_advanced: int
    applied: bool


class LoanSummarySchema(BaseModel):
    principal_paid_cents: int
    interest_paid_cents: int
    prepaid_cents: int
    outstanding_principal_cents: int
    progress_percent: float
    has_unapplied_prepayments: bool
    next_installment_id: Optional[uuid.UUID] = None


class LoanResponse(BaseModel):
    """A loan with its schedule, prepayments and progress"""

    id: uuid.UUID
    description: str
    principal_cents: int
    annual_rate_percent: float
    term_months: int
    start_date: date
    payment_day_of_month: int
    account_id: Optional[str] = None
    late_fee_cents: int
    issuing_institution: Optional[str] = None
    installments: List[InstallmentSchema]
    prepayments: List[PrepaymentSchema]
    summary: LoanSummarySchema


class RecalculationResponse(BaseModel):
    recalculation_id: uuid.UUID
    strategy: RecalculationStrategy
    as_of_date: date
    applied_cents: int
    loan: LoanResponse
