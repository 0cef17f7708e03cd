"""/v1/purchases - card purchases paid in monthly installments"""

import uuid
from typing import List, Optional
from fastapi import APIRouter, Body, Depends, Response
from sqlalchemy.orm import Session

from debt_tracker.api.dependencies import get_ledger, get_user_id
from debt_tracker.api.v1.presenters import purchase_response
from debt_tracker.api.v1.schemas import PayRequest, PurchaseCreateRequest, PurchaseResponse, PurchaseUpdateRequest
from debt_tracker.domain.models import CardCycle, InstrumentKind, Purchase
from debt_tracker.domain.ports import LedgerPort
from debt_tracker.infrastructure.database.session import get_db
from debt_tracker.services.instruments import InstrumentService
from debt_tracker.services.payments import PaymentLedger

router = APIRouter()


@router.post("/purchases", response_model=PurchaseResponse, status_code=201)
def create_purchase(
    request_body: PurchaseCreateRequest,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    ledger: LedgerPort = Depends(get_ledger),
):
    """
    Register a card purchase and split it into monthly installments.

    The first installment falls on the statement after the purchase, or the
    one after that when the purchase is made on or after the cutoff day.
    """
    service = InstrumentService(db, ledger)
    purchase = service.create_purchase(
        user_id,
        Purchase(
            description=request_body.description,
            total_cents=request_body.total_cents,
            installment_count=request_body.installment_count,
            purchase_date=request_body.purchase_date,
            card=CardCycle(
                account_id=request_body.account_id,
                statement_cutoff_day=request_body.statement_cutoff_day,
                payment_due_day=request_body.payment_due_day,
            ),
            category_id=request_body.category_id,
        ),
    )
    return purchase_response(service, purchase)


@router.get("/purchases", response_model=List[PurchaseResponse])
def list_purchases(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    ledger: LedgerPort = Depends(get_ledger),
):
    service = InstrumentService(db, ledger)
    return [purchase_response(service, p) for p in service.list_for_user(user_id, InstrumentKind.PURCHASE)]


@router.get("/purchases/{purchase_id}", response_model=PurchaseResponse)
def get_purchase(
    purchase_id: uuid.UUID,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    ledger: LedgerPort = Depends(get_ledger),
):
    service = InstrumentService(db, ledger)
    return purchase_response(service, service.get(user_id, purchase_id, InstrumentKind.PURCHASE))


@router.patch("/purchases/{purchase_id}", response_model=PurchaseResponse)
def update_purchase(
    purchase_id: uuid.UUID,
    request_body: PurchaseUpdateRequest,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    ledger: LedgerPort = Depends(get_ledger),
):
    """Change the description or category; amounts and dates are fixed"""
    service = InstrumentService(db, ledger)
    purchase = service.update(
        user_id,
        purchase_id,
        InstrumentKind.PURCHASE,
        request_body.model_dump(exclude_unset=True),
    )
    return purchase_response(service, purchase)


@router.delete("/purchases/{purchase_id}", status_code=204)
def delete_purchase(
    purchase_id: uuid.UUID,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    ledger: LedgerPort = Depends(get_ledger),
):
    """Delete the purchase, its installments and their payment transactions"""
    InstrumentService(db, ledger).delete(user_id, purchase_id, InstrumentKind.PURCHASE)
    return Response(status_code=204)


@router.post("/purchases/{purchase_id}/installments/{installment_id}/pay", response_model=PurchaseResponse)
def pay_installment(
    purchase_id: uuid.UUID,
    installment_id: uuid.UUID,
    request_body: Optional[PayRequest] = Body(None),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    ledger: LedgerPort = Depends(get_ledger),
):
    """Pay the next installment with a charge to the card account"""
    PaymentLedger(db, ledger).pay(
        user_id,
        purchase_id,
        installment_id,
        InstrumentKind.PURCHASE,
        payment_date=request_body.payment_date if request_body else None,
    )
    service = InstrumentService(db, ledger)
    return purchase_response(service, service.get(user_id, purchase_id, InstrumentKind.PURCHASE))


@router.post("/purchases/{purchase_id}/installments/{installment_id}/revert", response_model=PurchaseResponse)
def revert_installment(
    purchase_id: uuid.UUID,
    installment_id: uuid.UUID,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    ledger: LedgerPort = Depends(get_ledger),
):
    """Undo an installment payment and delete its transaction"""
    PaymentLedger(db, ledger).revert(user_id, purchase_id, installment_id, InstrumentKind.PURCHASE)
    service = InstrumentService(db, ledger)
    return purchase_response(service, service.get(user_id, purchase_id, InstrumentKind.PURCHASE))
