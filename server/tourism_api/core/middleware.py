"""Request correlation and access logging middleware."""

import time
import uuid
from typing import Callable, Iterable, Optional

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .observability import metrics_collector

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Health checks and scrapes are too frequent to be worth an access log line
QUIET_PATHS = frozenset({"/health", "/ready", "/v1/health/ping", "/metrics", "/favicon.ico"})


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Correlate every log line of a request.

    A client-supplied ``X-Request-ID`` is reused (so a booking flow spanning
    several calls can be traced from the frontend), otherwise one is minted.
    The id is bound into the structlog context for the request and echoed
    on the response.
    """

    def __init__(self, app: ASGIApp, header_name: str = REQUEST_ID_HEADER):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(self.header_name) or uuid.uuid4().hex
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.clear_contextvars()

        response.headers[self.header_name] = request_id
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Emit one access log event per request and feed the HTTP request metrics."""

    def __init__(self, app: ASGIApp, quiet_paths: Optional[Iterable[str]] = None):
        super().__init__(app)
        self.quiet_paths = frozenset(quiet_paths) if quiet_paths is not None else QUIET_PATHS

    @staticmethod
    def _client_ip(request: Request) -> str:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    @staticmethod
    def _route_label(request: Request) -> str:
        # Route templates keep label cardinality bounded (/api/bookings/{booking_id})
        route = request.scope.get("route")
        return getattr(route, "path", request.url.path)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - started

        metrics_collector.record_request(request.method, self._route_label(request), response.status_code, duration)

        if request.url.path in self.quiet_paths:
            return response

        # Bodies are never logged: auth and payment payloads carry secrets
        event = logger.bind(
            request_id=getattr(request.state, "request_id", None),
            method=request.method,
            path=request.url.path,
            route=self._route_label(request),
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2),
            client_ip=self._client_ip(request),
        )
        if response.status_code >= 500:
            event.error("http_request_failed")
        elif response.status_code >= 400:
            event.warning("http_request_rejected")
        else:
            event.info("http_request")

        return response


def setup_middleware(app, enable_logging: bool = True) -> None:
    """
    Install correlation and access logging.

    Starlette runs the last added middleware first, so RequestIDMiddleware is
    added last to have the id bound before the access log reads it.
    """
    if enable_logging:
        app.add_middleware(AccessLogMiddleware)

    app.add_middleware(RequestIDMiddleware)
