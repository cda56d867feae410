"""Shared fixtures for API route tests.

Provides:
- A configured FastAPI test app with in-memory SQLite and a recording mailer
- An httpx AsyncClient pointed at the test app
- Token headers for a signed-in user and an admin
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from autocare.api.app import create_app
from autocare.api.auth import create_access_token, hash_password
from autocare.config import Settings
from autocare.db.models import User, UserRole
from autocare.integrations.mailer import Mailer

ADMIN_EMAIL = "admin@autocare.test"
ADMIN_PASSWORD = "admin-password-123"
USER_EMAIL = "driver@autocare.test"
USER_PASSWORD = "driver-password-123"


def build_test_app(
    settings: Settings,
    async_engine: AsyncEngine,
    session_factory: async_sessionmaker[AsyncSession],
    mailer: Mailer,
) -> FastAPI:
    """Create an app and populate app.state the way lifespan startup does."""
    app = create_app(settings=settings)
    app.state.db_engine = async_engine
    app.state.session_factory = session_factory
    app.state.mailer = mailer
    return app


@pytest.fixture
def test_app(
    test_settings: Settings,
    async_engine: AsyncEngine,
    session_factory: async_sessionmaker[AsyncSession],
    mailer: Mailer,
) -> FastAPI:
    return build_test_app(test_settings, async_engine, session_factory, mailer)


@pytest.fixture
async def client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient for the test app."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await test_app.state.admission_gate.reset()


async def _create_user(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    name: str,
    email: str,
    password: str,
    role: UserRole,
) -> User:
    async with session_factory() as session:
        async with session.begin():
            user = User(
                name=name,
                email=email,
                password_hash=hash_password(password),
                role=role.value,
            )
            session.add(user)
    return user


@pytest.fixture
async def admin_user(session_factory: async_sessionmaker[AsyncSession]) -> User:
    return await _create_user(
        session_factory, name="Admin", email=ADMIN_EMAIL, password=ADMIN_PASSWORD, role=UserRole.ADMIN
    )


@pytest.fixture
async def regular_user(session_factory: async_sessionmaker[AsyncSession]) -> User:
    return await _create_user(
        session_factory, name="Driver", email=USER_EMAIL, password=USER_PASSWORD, role=UserRole.USER
    )


@pytest.fixture
def admin_headers(admin_user: User, test_settings: Settings) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(admin_user, test_settings)}"}


@pytest.fixture
def user_headers(regular_user: User, test_settings: Settings) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(regular_user, test_settings)}"}


def future_date(days: int = 7) -> str:
    return (datetime.now(UTC).date() + timedelta(days=days)).isoformat()


@pytest.fixture
def booking_payload() -> Callable[..., dict[str, Any]]:
    """Factory for a valid booking body."""

    def _make(**overrides: Any) -> dict[str, Any]:
        body: dict[str, Any] = {
            "owner_name": "Nimal Perera",
            "email": "nimal@example.com",
            "phone": "0771234567",
            "special_notes": "Brakes squeal",
            "location": "Colombo 07",
            "service_type": "Full service",
            "vehicle_model": "Toyota Axio",
            "vehicle_number": "CAB-1234",
            "booking_date": future_date(),
            "booking_time": "09:30",
        }
        body.update(overrides)
        return body

    return _make


@pytest.fixture
def inventory_payload() -> Callable[..., dict[str, Any]]:
    """Factory for a valid inventory item body."""

    def _make(**overrides: Any) -> dict[str, Any]:
        body: dict[str, Any] = {
            "inventory_type": "Filters",
            "inventory_name": "Oil filter",
            "vendor": "Bosch",
            "unit_price": 1250.0,
            "unit_no": 4,
            "description": "Standard spin-on filter",
        }
        body.update(overrides)
        return body

    return _make
