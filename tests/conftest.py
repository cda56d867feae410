"""Shared test fixtures for the AutoCare test suite.

Provides test settings, an async in-memory SQLite database, and a mailer
double that records messages instead of sending them.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass, field

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from autocare.config import Settings
from autocare.db.session import create_async_engine_from_url, create_session_factory, init_models
from autocare.integrations.mailer import Mailer

TEST_JWT_SECRET = "test-jwt-secret-0123456789-abcdefghijklmnop"


@dataclass
class SentMail:
    to: str
    subject: str
    body: str


@dataclass
class RecordingMailer(Mailer):
    """Mailer double — keeps every message in memory."""

    sent: list[SentMail] = field(default_factory=list)

    async def send(self, to: str, subject: str, body: str) -> None:
        self.sent.append(SentMail(to=to, subject=subject, body=body))


def make_settings(**overrides: object) -> Settings:
    """Settings for tests: in-memory DB, generous rate limits, quiet logs."""
    values: dict[str, object] = {
        "database_url": "sqlite+aiosqlite:///:memory:",
        "jwt_secret": TEST_JWT_SECRET,
        "log_level": "WARNING",
        "log_format": "console",
        "cors_allowed_origins": "http://localhost:3000",
        "rate_limit_read": "1000/minute",
        "rate_limit_write": "1000/minute",
        "rate_limit_admin": "1000/minute",
        "rate_limit_auth": "1000/minute",
        "inventory_alert_recipient": "stock@autocare.test",
    }
    values.update(overrides)
    return Settings(**values)  # type: ignore[arg-type]


@pytest.fixture
def test_settings() -> Settings:
    return make_settings()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory SQLite async engine with all tables."""
    engine = create_async_engine_from_url("sqlite+aiosqlite:///:memory:")
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(async_engine)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Provide a transactional database session that rolls back after each test."""
    async with session_factory() as session:
        async with session.begin():
            yield session
            await session.rollback()
