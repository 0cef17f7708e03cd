"""FastAPI application factory"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from debt_tracker import __version__
from debt_tracker.api.dependencies import get_request_id
from debt_tracker.api.middleware import RequestIDMiddleware, RequestTimingMiddleware
from debt_tracker.api.v1 import loans, purchases
from debt_tracker.domain.exceptions import (
    DomainException,
    ExternalProcedureError,
    InstrumentNotFound,
    LedgerAPIError,
    NoRevertibleTransaction,
    PaymentOrderViolation,
    ScheduleGenerationFailed,
    ValidationError,
)
from debt_tracker.infrastructure.database.session import init_db
from debt_tracker.infrastructure.observability.logging import setup_logging
from debt_tracker.config import settings

# Setup structured logging
setup_logging(settings.log_level)

# Most specific first; DomainException is the fallback
STATUS_BY_EXCEPTION = [
    (ValidationError, 422),
    (InstrumentNotFound, 404),
    (PaymentOrderViolation, 409),
    (NoRevertibleTransaction, 409),
    (ScheduleGenerationFailed, 500),
    (ExternalProcedureError, 502),
    (LedgerAPIError, 503),
    (DomainException, 500),
]


def status_for(exc: DomainException) -> int:
    for exc_type, status in STATUS_BY_EXCEPTION:
        if isinstance(exc, exc_type):
            return status
    return 500


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Turn engine errors into JSON responses"""
    status = status_for(exc)
    log = logging.error if status >= 500 else logging.warning
    log(
        f"{type(exc).__name__}: {exc}",
        extra={"request_id": get_request_id(request), "path": request.url.path},
    )
    return JSONResponse(status_code=status, content={"detail": str(exc), "error": type(exc).__name__})


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Debt Tracker",
        description="Installment schedules, payments and prepayments for card purchases and loans",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(DomainException, domain_exception_handler)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(purchases.router, prefix="/v1", tags=["purchases"])
    app.include_router(loans.router, prefix="/v1", tags=["loans"])

    return app


app = create_app()
