"""HTTP middleware — correlation IDs, security headers, request body limits,
suspicious input detection.

Correlation IDs are always server-generated. A client-supplied
X-Correlation-ID is only logged (as client_correlation_id) when it matches a
safe pattern, and is never echoed back.
"""

from __future__ import annotations

import re
from typing import TypeVar
from urllib.parse import unquote_plus
from uuid import uuid4

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse
from starlette.types import ASGIApp

from autocare.api.monitoring import SecurityEvent, SecurityMonitor, find_suspicious_pattern

logger = structlog.get_logger()

CORRELATION_HEADER = "X-Correlation-ID"

_CORRELATION_PATTERN = re.compile(r"^[a-zA-Z0-9_\-]{1,64}$")

_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": "default-src 'none'",
}

_HSTS_VALUE = "max-age=63072000; includeSubDomains"

ResponseT = TypeVar("ResponseT", bound=Response)


def apply_security_headers(response: ResponseT, *, hsts: bool = False) -> ResponseT:
    """Add the hardening headers without overriding ones a route already set."""
    for name, value in _SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    if hsts:
        response.headers["Strict-Transport-Security"] = _HSTS_VALUE
    return response


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Bind a fresh correlation ID to structlog context and the response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        correlation_id = str(uuid4())
        request.state.correlation_id = correlation_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            correlation_id=correlation_id,
            method=request.method,
            path=request.url.path,
        )
        client_correlation = request.headers.get(CORRELATION_HEADER, "")
        if client_correlation and _CORRELATION_PATTERN.match(client_correlation):
            structlog.contextvars.bind_contextvars(client_correlation_id=client_correlation)

        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach hardening headers to every response; HSTS only in production."""

    def __init__(self, app: ASGIApp, *, hsts: bool = False) -> None:
        super().__init__(app)
        self._hsts = hsts

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        return apply_security_headers(response, hsts=self._hsts)


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests whose declared Content-Length exceeds the configured cap."""

    def __init__(self, app: ASGIApp, *, max_body_bytes: int) -> None:
        super().__init__(app)
        self._max_body_bytes = max_body_bytes

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        content_length = request.headers.get("content-length")
        if content_length is not None:
            try:
                declared = int(content_length)
            except ValueError:
                return JSONResponse(status_code=400, content={"error": "Invalid Content-Length header"})
            if declared > self._max_body_bytes:
                return JSONResponse(status_code=413, content={"error": "Request body too large"})
        return await call_next(request)


class SuspiciousInputMiddleware(BaseHTTPMiddleware):
    """Log and count requests whose query or body matches a suspicious pattern.

    Matching requests are still passed on. Only the matched pattern is logged,
    never the input itself.
    """

    _BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

    def __init__(self, app: ASGIApp, *, monitor: SecurityMonitor) -> None:
        super().__init__(app)
        self._monitor = monitor

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        sources: list[tuple[str, str]] = []
        if request.url.query:
            sources.append(("query", unquote_plus(request.url.query)))
        if request.method in self._BODY_METHODS:
            body = await request.body()
            if body:
                sources.append(("body", body.decode("utf-8", errors="replace")))

        for source, text in sources:
            pattern = find_suspicious_pattern(text)
            if pattern is None:
                continue
            await logger.awarning("suspicious_input_detected", source=source, pattern=pattern)
            await self._monitor.record(SecurityEvent.SUSPICIOUS_INPUT, request, source=source, pattern=pattern)

        return await call_next(request)
