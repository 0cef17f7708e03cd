"""Request correlation and latency tracking for the debt tracker API"""

import time
import uuid
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from debt_tracker.infrastructure.observability.metrics import request_duration_histogram

REQUEST_ID_HEADER = "X-Request-ID"


def route_label(request: Request) -> str:
    """
    Metric label for a request.

    Uses the matched route template (``/v1/loans/{loan_id}``) so that every
    loan or purchase id does not become its own time series.
    """
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Attach a correlation id to each request.

    A caller-supplied id is kept so ledger calls and engine logs can be
    matched with the caller's own traces; otherwise a fresh one is issued.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        return response


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """Observe handler latency per method, route and status"""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        request_duration_histogram.labels(
            method=request.method,
            endpoint=route_label(request),
            status=response.status_code,
        ).observe(elapsed)
        return response
