"""SQLAlchemy ORM models for instruments, installments and the cash ledger"""

import uuid
from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class DebtInstrument(Base):
    """Card purchase in installments or loan, owned by one user"""

    __tablename__ = "debt_instrument"
    __table_args__ = (CheckConstraint("kind IN ('purchase', 'loan')", name="ck_instrument_kind"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    kind = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    principal_cents = Column(BigInteger, nullable=False)
    installment_count = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    account_id = Column(Text, nullable=True)
    category_id = Column(Text, nullable=True)

    # Purchase: billing cycle of the card
    statement_cutoff_day = Column(Integer, nullable=True)
    payment_due_day = Column(Integer, nullable=True)

    # Loan
    annual_rate_percent = Column(Float, nullable=True)
    payment_day_of_month = Column(Integer, nullable=True)
    late_fee_cents = Column(BigInteger, nullable=True)
    issuing_institution = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    installments = relationship(
        "InstallmentRecord",
        back_populates="instrument",
        cascade="all, delete-orphan",
        order_by="InstallmentRecord.number",
    )
    prepayments = relationship(
        "PrincipalPrepaymentRecord",
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by="PrincipalPrepaymentRecord.created_at",
    )
    recalculations = relationship(
        "LoanRecalculation",
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by="LoanRecalculation.sequence",
    )


class InstallmentRecord(Base):
    """One scheduled payment of an instrument"""

    __tablename__ = "installment"
    __table_args__ = (
        UniqueConstraint("instrument_id", "number", name="uq_installment_number"),
        CheckConstraint("status IN ('pending', 'paid')", name="ck_installment_status"),
        CheckConstraint(
            "(status = 'pending' AND paid_via IS NULL AND transaction_id IS NULL)"
            " OR (status = 'paid' AND paid_via = 'transaction' AND transaction_id IS NOT NULL)"
            " OR (status = 'paid' AND paid_via = 'prepayment' AND transaction_id IS NULL)",
            name="ck_installment_settlement",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    instrument_id = Column(Uuid, ForeignKey("debt_instrument.id", ondelete="CASCADE"), nullable=False, index=True)
    number = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    principal_cents = Column(BigInteger, nullable=True)
    interest_cents = Column(BigInteger, nullable=True)
    balance_cents = Column(BigInteger, nullable=True)
    status = Column(Text, nullable=False, default="pending")
    paid_via = Column(Text, nullable=True)  # transaction | prepayment
    transaction_id = Column(Uuid, nullable=True)
    recalculation_id = Column(Uuid, ForeignKey("loan_recalculation.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    instrument = relationship("DebtInstrument", back_populates="installments")


class PrincipalPrepaymentRecord(Base):
    """Advance principal payment waiting to be applied by a recalculation"""

    __tablename__ = "principal_prepayment"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    loan_id = Column(Uuid, ForeignKey("debt_instrument.id", ondelete="CASCADE"), nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    payment_date = Column(Date, nullable=False)
    transaction_id = Column(Uuid, nullable=False)
    installments_advanced = Column(Integer, nullable=False)
    applied = Column(Boolean, nullable=False, default=False)
    recalculation_id = Column(Uuid, ForeignKey("loan_recalculation.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    loan = relationship("DebtInstrument", back_populates="prepayments")


class LoanRecalculation(Base):
    """Schedule rewrite that applied prepayments, with the rows it replaced"""

    __tablename__ = "loan_recalculation"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    loan_id = Column(Uuid, ForeignKey("debt_instrument.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    as_of_date = Column(Date, nullable=False)
    strategy = Column(Text, nullable=False)
    applied_cents = Column(BigInteger, nullable=False)
    snapshot = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    loan = relationship("DebtInstrument", back_populates="recalculations")


class LedgerTransaction(Base):
    """Cash movement in the user's ledger"""

    __tablename__ = "ledger_transaction"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    description = Column(Text, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    date = Column(Date, nullable=False)
    type = Column(Text, nullable=False)
    account_id = Column(Text, nullable=False)
    category_id = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
