"""Pytest fixtures for testing"""

import pytest
from datetime import date
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from debt_tracker.api.main import create_app
from debt_tracker.domain.models import CardCycle, Loan, Purchase
from debt_tracker.infrastructure.database.models import Base
from debt_tracker.infrastructure.database.repositories import TransactionRepository
from debt_tracker.infrastructure.database.session import get_db
from debt_tracker.services.instruments import InstrumentService


# Test database: one in-memory SQLite connection shared across threads
TEST_DATABASE_URL = "sqlite://"
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

USER_ID = "user_1"


@pytest.fixture
def user_id() -> str:
    return USER_ID


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app, headers={"X-User-ID": USER_ID})


@pytest.fixture
def ledger(db: Session) -> TransactionRepository:
    """Ledger transactions stored in the test database"""
    return TransactionRepository(db)


@pytest.fixture
def sample_purchase() -> Purchase:
    """$300 purchase in 3 installments, made before the card's cutoff"""
    return Purchase(
        description="Laptop",
        total_cents=30000,
        installment_count=3,
        purchase_date=date(2024, 3, 5),
        card=CardCycle(account_id="card_visa", statement_cutoff_day=10, payment_due_day=25),
        category_id="electronics",
    )


@pytest.fixture
def sample_loan() -> Loan:
    """$12,000 at 12% over 12 months, paid on the 15th"""
    return Loan(
        description="Car loan",
        principal_cents=1_200_000,
        annual_rate_percent=12.0,
        term_months=12,
        start_date=date(2024, 1, 20),
        payment_day_of_month=15,
        account_id="checking",
        issuing_institution="Credit Union",
    )


@pytest.fixture
def purchase(db: Session, ledger: TransactionRepository, sample_purchase: Purchase):
    """Persisted sample purchase"""
    return InstrumentService(db, ledger).create_purchase(USER_ID, sample_purchase)


@pytest.fixture
def loan(db: Session, ledger: TransactionRepository, sample_loan: Loan):
    """Persisted sample loan"""
    return InstrumentService(db, ledger).create_loan(USER_ID, sample_loan)
