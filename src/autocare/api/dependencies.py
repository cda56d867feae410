"""FastAPI dependency injection — database sessions, configuration, mailer, request bodies.

All dependencies read from app.state, which is populated during lifespan startup.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from autocare.api.errors import ValidationError
from autocare.api.monitoring import SecurityMonitor
from autocare.config import Settings
from autocare.integrations.mailer import Mailer


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    """Get the async session factory from app state."""
    return request.app.state.session_factory


def get_settings(request: Request) -> Settings:
    """Get the Settings instance from app state."""
    return request.app.state.settings


def get_mailer(request: Request) -> Mailer:
    """Get the outbound mailer from app state."""
    return request.app.state.mailer


def get_security_monitor(request: Request) -> SecurityMonitor:
    """Get the security event monitor from app state."""
    return request.app.state.security_monitor


async def json_body(request: Request) -> dict[str, Any]:
    """Decode the request body as a JSON object.

    Route decorators declare the rate-limit tier, which FastAPI resolves before
    endpoint parameters, so malformed bodies are counted like any other request.

    Raises:
        ValidationError: If the body is not valid JSON or not a JSON object.
    """
    try:
        body = await request.json()
    except ValueError as exc:
        raise ValidationError("Body must be valid JSON") from exc
    if not isinstance(body, dict):
        raise ValidationError("Body must be a JSON object")
    return body
