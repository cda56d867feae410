"""End-to-end tests for tier enforcement on routes."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from autocare.api.app import create_app
from autocare.api.auth import create_access_token
from autocare.config import Settings
from autocare.db.models import User
from autocare.integrations.mailer import Mailer


@pytest.fixture
async def limited_client(
    test_settings: Settings,
    async_engine: AsyncEngine,
    session_factory: async_sessionmaker[AsyncSession],
    mailer: Mailer,
) -> AsyncGenerator[AsyncClient, None]:
    """Client for an app with production-like quotas."""
    settings = test_settings.model_copy(
        update={
            "rate_limit_read": "60/15 minutes",
            "rate_limit_write": "20/15 minutes",
            "rate_limit_admin": "30/15 minutes",
            "rate_limit_auth": "5/15 minutes",
        }
    )
    app = create_app(settings)
    app.state.db_engine = async_engine
    app.state.session_factory = session_factory
    app.state.mailer = mailer
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    await app.state.admission_gate.reset()


class TestWriteTier:
    async def test_twenty_first_booking_is_throttled(
        self,
        limited_client: AsyncClient,
        regular_user: User,
        test_settings: Settings,
        booking_payload: Callable[..., dict[str, Any]],
    ) -> None:
        headers = {"Authorization": f"Bearer {create_access_token(regular_user, test_settings)}"}

        for i in range(20):
            response = await limited_client.post("/booking", json=booking_payload(), headers=headers)
            assert response.status_code == 201, f"request {i + 1}: {response.text}"
            assert response.headers["X-RateLimit-Limit"] == "20"
            assert response.headers["X-RateLimit-Remaining"] == str(19 - i)

        response = await limited_client.post("/booking", json=booking_payload(), headers=headers)
        assert response.status_code == 429
        assert response.json() == {"error": "Too many requests, please try again later."}
        assert 1 <= int(response.headers["Retry-After"]) <= 900
        assert response.headers["X-RateLimit-Remaining"] == "0"

    async def test_throttled_before_auth(
        self, limited_client: AsyncClient, booking_payload: Callable[..., dict[str, Any]]
    ) -> None:
        statuses = [
            (await limited_client.post("/booking", json=booking_payload())).status_code for _ in range(21)
        ]
        assert statuses[:20] == [401] * 20
        assert statuses[20] == 429


    async def test_rejected_requests_still_report_quota(
        self, limited_client: AsyncClient, booking_payload: Callable[..., dict[str, Any]]
    ) -> None:
        response = await limited_client.post("/booking", json=booking_payload())
        assert response.status_code == 401
        assert response.headers["X-RateLimit-Limit"] == "20"
        assert response.headers["X-RateLimit-Remaining"] == "19"


class TestAuthTier:
    async def test_login_brute_force_throttled(self, limited_client: AsyncClient) -> None:
        body = {"email": "someone@autocare.test", "password": "guess-123"}
        statuses = [(await limited_client.post("/auth/login", json=body)).status_code for _ in range(6)]
        assert statuses == [401] * 5 + [429]

    async def test_malformed_bodies_are_counted(self, limited_client: AsyncClient) -> None:
        headers = {"Content-Type": "application/json"}
        statuses = [
            (await limited_client.post("/auth/login", content=b"{not json", headers=headers)).status_code
            for _ in range(6)
        ]
        assert statuses == [400] * 5 + [429]

    async def test_tiers_are_independent(self, limited_client: AsyncClient) -> None:
        body = {"email": "someone@autocare.test", "password": "guess-123"}
        for _ in range(6):
            await limited_client.post("/auth/login", json=body)
        response = await limited_client.get("/inventory")
        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "60"
