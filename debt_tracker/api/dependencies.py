"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session
from debt_tracker.config import settings
from debt_tracker.domain.ports import LedgerPort
from debt_tracker.infrastructure.clients.ledger import LedgerClient
from debt_tracker.infrastructure.database.repositories import TransactionRepository
from debt_tracker.infrastructure.database.session import get_db


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_user_id(x_user_id: str = Header(..., min_length=1)) -> str:
    """Owner of the instruments the request works on"""
    return x_user_id


def get_ledger(db: Session = Depends(get_db)) -> LedgerPort:
    """Provide the ledger backend selected in settings"""
    if settings.ledger_backend == "http":
        return LedgerClient()
    return TransactionRepository(db)
