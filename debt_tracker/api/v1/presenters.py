"""Build API responses from persisted instruments"""

from debt_tracker.api.v1.schemas import (
    InstallmentSchema,
    LoanResponse,
    LoanSummarySchema,
    PrepaymentSchema,
    PurchaseResponse,
    PurchaseSummarySchema,
)
from debt_tracker.infrastructure.database.models import DebtInstrument, InstallmentRecord
from debt_tracker.services.instruments import InstrumentService


def installment_schema(record: InstallmentRecord) -> InstallmentSchema:
    return InstallmentSchema(
        id=record.id,
        number=record.number,
        due_date=record.due_date,
        amount_cents=record.amount_cents,
        principal_cents=record.principal_cents,
        interest_cents=record.interest_cents,
        balance_cents=record.balance_cents,
        status=record.status,
        paid_via=record.paid_via,
        transaction_id=record.transaction_id,
    )


def purchase_response(service: InstrumentService, purchase: DebtInstrument) -> PurchaseResponse:
    summary = service.purchase_summary(purchase)
    return PurchaseResponse(
        id=purchase.id,
        description=purchase.description,
        total_cents=purchase.principal_cents,
        installment_count=purchase.installment_count,
        purchase_date=purchase.start_date,
        account_id=purchase.account_id,
        category_id=purchase.category_id,
        statement_cutoff_day=purchase.statement_cutoff_day,
        payment_due_day=purchase.payment_due_day,
        installments=[installment_schema(r) for r in purchase.installments],
        summary=PurchaseSummarySchema(
            paid_count=summary.paid_count,
            paid_cents=summary.paid_cents,
            remaining_cents=summary.remaining_cents,
            is_overdue=summary.is_overdue,
            progress_percent=summary.progress_percent,
            next_due_date=summary.next_due_date,
        ),
    )


def loan_response(service: InstrumentService, loan: DebtInstrument) -> LoanResponse:
    summary = service.loan_summary(loan)
    return LoanResponse(
        id=loan.id,
        description=loan.description,
        principal_cents=loan.principal_cents,
        annual_rate_percent=loan.annual_rate_percent,
        term_months=loan.installment_count,
        start_date=loan.start_date,
        payment_day_of_month=loan.payment_day_of_month,
        account_id=loan.account_id,
        late_fee_cents=loan.late_fee_cents or 0,
        issuing_institution=loan.issuing_institution,
        installments=[installment_schema(r) for r in loan.installments],
        prepayments=[
            PrepaymentSchema(
                id=p.id,
                amount_cents=p.amount_cents,
                payment_date=p.payment_date,
                transaction_id=p.transaction_id,
                installments_advanced=p.installments_advanced,
                applied=p.applied,
            )
            for p in loan.prepayments
        ],
        summary=LoanSummarySchema(
            principal_paid_cents=summary.principal_paid_cents,
            interest_paid_cents=summary.interest_paid_cents,
            prepaid_cents=summary.prepaid_cents,
            outstanding_principal_cents=summary.outstanding_principal_cents,
            progress_percent=summary.progress_percent,
            has_unapplied_prepayments=summary.has_unapplied_prepayments,
            next_installment_id=summary.next_installment.id if summary.next_installment else None,
        ),
    )
