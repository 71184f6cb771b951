"""Observability middleware — request IDs, access log, and HTTP metrics."""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.core.metrics import http_request_duration_seconds, http_requests_total

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_REQUEST_ID_LENGTH = 128

# Probe and scrape traffic is neither logged nor counted
_QUIET_PATHS = frozenset({"/metrics", "/health/live"})

logger = structlog.stdlib.get_logger("sbsh.http")


def _request_id(request: Request) -> str:
    incoming = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if incoming and len(incoming) <= _MAX_REQUEST_ID_LENGTH:
        return incoming
    return str(uuid.uuid4())


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Tags each request with a request_id and records one access line per call.

    The /mcp route stores the JSON-RPC method and tool name on ``request.state``
    so the access line says which tool a request invoked.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = _request_id(request)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.clear_contextvars()
        duration = time.perf_counter() - start

        response.headers[REQUEST_ID_HEADER] = request_id
        if request.url.path in _QUIET_PATHS:
            return response

        # Route pattern, not the resolved path, keeps label cardinality low
        route = request.scope.get("route")
        path = route.path if route else request.url.path
        status = response.status_code

        http_requests_total.labels(method=request.method, path=path, status=status).inc()
        http_request_duration_seconds.labels(method=request.method, path=path).observe(duration)

        log = logger.warning if status >= 500 else logger.info
        log(
            "request_completed",
            request_id=request_id,
            method=request.method,
            path=path,
            status=status,
            rpc_method=getattr(request.state, "rpc_method", None),
            tool=getattr(request.state, "tool", None),
            duration_ms=round(duration * 1000, 2),
        )
        return response
