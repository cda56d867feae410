"""Error taxonomy and normalizer — full detail in the server log, minimal detail to callers.

Route handlers raise AppError subclasses; everything else is collapsed to a
generic 500. Client bodies never contain stack traces, internal paths, or
database driver messages.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import StatementError
from starlette.exceptions import HTTPException as StarletteHTTPException

from autocare.api.middleware import CORRELATION_HEADER, apply_security_headers

logger = structlog.get_logger()

INTERNAL_ERROR_MESSAGE = "Internal server error"


class AppError(Exception):
    """Base for failures whose message is safe to show to callers."""

    status_code: int = 500
    public_message: str = INTERNAL_ERROR_MESSAGE

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.public_message
        super().__init__(self.message)

    def public_body(self) -> dict[str, Any]:
        return {"error": self.message}

    def headers(self) -> dict[str, str]:
        return {}


class ValidationError(AppError):
    """A bad or missing field — field-level detail is surfaced to the caller."""

    status_code = 400
    public_message = "Invalid request body"

    def __init__(self, message: str | None = None, fields: Sequence[dict[str, str]] = ()) -> None:
        super().__init__(message)
        self.fields = list(fields)

    def public_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.fields:
            body["fields"] = self.fields
        return body

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError | RequestValidationError) -> ValidationError:
        """Build from pydantic errors, keeping only location and message."""
        fields = [
            {"field": _format_loc(err.get("loc", ())), "message": str(err.get("msg", "invalid value"))}
            for err in exc.errors()
        ]
        if not fields:
            return cls()
        first = fields[0]
        if first["field"]:
            message = f"Invalid field '{first['field']}': {first['message']}"
        else:
            message = first["message"]
        return cls(message, fields)


class UnauthorizedError(AppError):
    status_code = 401
    public_message = "Auth required"


class ForbiddenError(AppError):
    status_code = 403
    public_message = "Forbidden: insufficient role"


class NotFoundError(AppError):
    status_code = 404
    public_message = "Not found"

    @classmethod
    def for_entity(cls, entity: str) -> NotFoundError:
        return cls(f"{entity} not found")


class ConflictError(AppError):
    status_code = 409
    public_message = "Resource already exists"


class RateLimitExceeded(AppError):
    """Raised by the admission gate; carries the quota headers for the 429."""

    status_code = 429
    public_message = "Too many requests, please try again later."

    def __init__(self, limit: int, reset_at: float, retry_after: int) -> None:
        super().__init__()
        self.limit = limit
        self.reset_at = reset_at
        self.retry_after = retry_after

    def headers(self) -> dict[str, str]:
        return {
            "Retry-After": str(self.retry_after),
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(int(self.reset_at)),
        }


class NotificationError(AppError):
    """The outbound mail collaborator failed to deliver."""

    status_code = 502
    public_message = "Notification delivery failed"


@dataclass(frozen=True)
class NormalizedError:
    """What the client is allowed to see for a failure."""

    status_code: int
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.body, headers=self.headers or None)


_STATUS_MESSAGES = {
    400: "Bad request",
    401: UnauthorizedError.public_message,
    403: ForbiddenError.public_message,
    404: NotFoundError.public_message,
    405: "Method not allowed",
    413: "Request body too large",
}


def normalize(exc: BaseException) -> NormalizedError:
    """Map any exception to a status code and an information-minimal body."""
    if isinstance(exc, (PydanticValidationError, RequestValidationError)):
        exc = ValidationError.from_pydantic(exc)

    if isinstance(exc, AppError):
        return NormalizedError(exc.status_code, exc.public_body(), exc.headers())

    if isinstance(exc, StarletteHTTPException) and exc.status_code < 500:
        message = _STATUS_MESSAGES.get(exc.status_code, "Request failed")
        return NormalizedError(exc.status_code, {"error": message}, dict(exc.headers or {}))

    return NormalizedError(500, {"error": INTERNAL_ERROR_MESSAGE})


def _with_quota_headers(request: Request, response: JSONResponse) -> JSONResponse:
    """Keep the admission quota headers on error responses from gated routes."""
    for name, value in getattr(request.state, "rate_limit_headers", {}).items():
        response.headers.setdefault(name, value)
    return response


def _loggable_error(exc: Exception) -> str:
    """Exception text for the server log. Statement errors drop their bound parameters."""
    if isinstance(exc, StatementError) and exc.orig is not None:
        return str(exc.orig)
    return str(exc)


def _format_loc(loc: Sequence[Any]) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts)


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        await logger.awarning(
            "request_rejected",
            path=request.url.path,
            error_type=type(exc).__name__,
            status_code=exc.status_code,
            detail=exc.message,
        )
        return _with_quota_headers(request, normalize(exc).to_response())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        await logger.awarning(
            "validation_error",
            path=request.url.path,
            errors=len(exc.errors()),
        )
        return _with_quota_headers(request, normalize(exc).to_response())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        await logger.awarning(
            "http_exception",
            path=request.url.path,
            status_code=exc.status_code,
            detail=exc.detail,
        )
        return normalize(exc).to_response()

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        await logger.aerror(
            "unhandled_exception",
            path=request.url.path,
            error_type=type(exc).__name__,
            error=_loggable_error(exc),
            exc_info=exc,
        )
        # Runs outside the middleware stack: add the headers it would have set.
        settings = getattr(request.app.state, "settings", None)
        response = apply_security_headers(
            normalize(exc).to_response(), hsts=settings is not None and settings.is_production
        )
        correlation_id = getattr(request.state, "correlation_id", None)
        if correlation_id:
            response.headers[CORRELATION_HEADER] = correlation_id
        return response
