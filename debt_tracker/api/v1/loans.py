"""/v1/loans - amortized loans, principal prepayments and recalculation"""

import uuid
from typing import List, Optional
from fastapi import APIRouter, Body, Depends, Response
from sqlalchemy.orm import Session

from debt_tracker.api.dependencies import get_ledger, get_user_id
from debt_tracker.api.v1.presenters import loan_response
from debt_tracker.api.v1.schemas import (
    LoanCreateRequest,
    LoanResponse,
    LoanUpdateRequest,
    PayRequest,
    PrepaymentRequest,
    RecalculateRequest,
    RecalculationResponse,
)
from debt_tracker.domain.models import InstrumentKind, Loan
from debt_tracker.domain.ports import LedgerPort
from debt_tracker.infrastructure.database.session import get_db
from debt_tracker.services.instruments import InstrumentService
from debt_tracker.services.payments import PaymentLedger
from debt_tracker.services.prepayments import PrepaymentManager
from debt_tracker.services.recalculation import RecalculationCoordinator

router = APIRouter()


def _current(service: InstrumentService, user_id: str, loan_id: uuid.UUID) -> LoanResponse:
    return loan_response(service, service.get(user_id, loan_id, InstrumentKind.LOAN))


@router.post("/loans", response_model=LoanResponse, status_code=201)
def create_loan(
    request_body: LoanCreateRequest,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    ledger: LedgerPort = Depends(get_ledger),
):
    """
    Register a loan with its fixed-payment amortization schedule.

    Installment i is due i months after the start date, on the payment day.
    """
    service = InstrumentService(db, ledger)
    loan = service.create_loan(
        user_id,
        Loan(
            description=request_body.description,
            principal_cents=request_body.principal_cents,
            annual_rate_percent=request_body.annual_rate_percent,
            term_months=request_body.term_months,
            start_date=request_body.start_date,
            payment_day_of_month=request_body.payment_day_of_month,
            account_id=request_body.account_id,
            late_fee_cents=request_body.late_fee_cents,
            issuing_institution=request_body.issuing_institution,
        ),
    )
    return loan_response(service, loan)


@router.get("/loans", response_model=List[LoanResponse])
def list_loans(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    ledger: LedgerPort = Depends(get_ledger),
):
    service = InstrumentService(db, ledger)
    return [loan_response(service, loan) for loan in service.list_for_user(user_id, InstrumentKind.LOAN)]


@router.get("/loans/{loan_id}", response_model=LoanResponse)
def get_loan(
    loan_id: uuid.UUID,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    ledger: LedgerPort = Depends(get_ledger),
):
    return _current(InstrumentService(db, ledger), user_id, loan_id)


@router.patch("/loans/{loan_id}", response_model=LoanResponse)
def update_loan(
    loan_id: uuid.UUID,
    request_body: LoanUpdateRequest,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    ledger: LedgerPort = Depends(get_ledger),
):
    """Change descriptive fields; rate, term and amounts are fixed"""
    service = InstrumentService(db, ledger)
    loan = service.update(user_id, loan_id, InstrumentKind.LOAN, request_body.model_dump(exclude_unset=True))
    return loan_response(service, loan)


@router.delete("/loans/{loan_id}", status_code=204)
def delete_loan(
    loan_id: uuid.UUID,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    ledger: LedgerPort = Depends(get_ledger),
):
    """Delete the loan with its installments, prepayments and their transactions"""
    InstrumentService(db, ledger).delete(user_id, loan_id, InstrumentKind.LOAN)
    return Response(status_code=204)


@router.post("/loans/{loan_id}/installments/{installment_id}/pay", response_model=LoanResponse)
def pay_installment(
    loan_id: uuid.UUID,
    installment_id: uuid.UUID,
    request_body: Optional[PayRequest] = Body(None),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    ledger: LedgerPort = Depends(get_ledger),
):
    """Pay the next installment from the given account (or the loan's default one)"""
    request_body = request_body or PayRequest()
    PaymentLedger(db, ledger).pay(
        user_id,
        loan_id,
        installment_id,
        InstrumentKind.LOAN,
        account_id=request_body.account_id,
        payment_date=request_body.payment_date,
    )
    return _current(InstrumentService(db, ledger), user_id, loan_id)


@router.post("/loans/{loan_id}/installments/{installment_id}/revert", response_model=LoanResponse)
def revert_installment(
    loan_id: uuid.UUID,
    installment_id: uuid.UUID,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    ledger: LedgerPort = Depends(get_ledger),
):
    """Undo a payment; installments covered by a prepayment cannot be reverted here"""
    PaymentLedger(db, ledger).revert(user_id, loan_id, installment_id, InstrumentKind.LOAN)
    return _current(InstrumentService(db, ledger), user_id, loan_id)


@router.post("/loans/{loan_id}/prepayments", response_model=LoanResponse, status_code=201)
def create_prepayment(
    loan_id: uuid.UUID,
    request_body: PrepaymentRequest,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    ledger: LedgerPort = Depends(get_ledger),
):
    """
    Pay ahead the last N pending installments.

    The schedule is not touched until the loan is recalculated.
    """
    PrepaymentManager(db, ledger).prepay(
        user_id,
        loan_id,
        request_body.installments_to_advance,
        request_body.account_id,
        payment_date=request_body.payment_date,
    )
    return _current(InstrumentService(db, ledger), user_id, loan_id)


@router.delete("/loans/{loan_id}/prepayments/{prepayment_id}", response_model=LoanResponse)
def revert_prepayment(
    loan_id: uuid.UUID,
    prepayment_id: uuid.UUID,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    ledger: LedgerPort = Depends(get_ledger),
):
    """Delete a prepayment, restoring the schedule if it had been applied"""
    PrepaymentManager(db, ledger).revert(user_id, loan_id, prepayment_id)
    return _current(InstrumentService(db, ledger), user_id, loan_id)


@router.post("/loans/{loan_id}/recalculate", response_model=RecalculationResponse)
def recalculate_loan(
    loan_id: uuid.UUID,
    request_body: Optional[RecalculateRequest] = Body(None),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    ledger: LedgerPort = Depends(get_ledger),
):
    """
    Apply pending prepayments to the schedule.

    reduce_term keeps the payment and shortens the loan; reduce_payment keeps
    the number of installments and lowers the payment.
    """
    request_body = request_body or RecalculateRequest()
    recalculation = RecalculationCoordinator(db).recalculate(
        user_id,
        loan_id,
        as_of=request_body.as_of_date,
        strategy=request_body.strategy,
    )
    return RecalculationResponse(
        recalculation_id=recalculation.id,
        strategy=recalculation.strategy,
        as_of_date=recalculation.as_of_date,
        applied_cents=recalculation.applied_cents,
        loan=_current(InstrumentService(db, ledger), user_id, loan_id),
    )
