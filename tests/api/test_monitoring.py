"""Tests for suspicious input detection and security alert thresholds."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
from fastapi import Request
from httpx import AsyncClient
from limits.storage import storage_from_string
from structlog.testing import capture_logs

from autocare.api.monitoring import SecurityEvent, SecurityMonitor, find_suspicious_pattern
from autocare.config import Settings
from autocare.db.models import User


def _request(client: tuple[str, int] = ("198.51.100.7", 5000)) -> Request:
    return Request({"type": "http", "method": "POST", "path": "/auth/login", "headers": [], "client": client})


def _monitor(**thresholds: int) -> SecurityMonitor:
    limits = {
        SecurityEvent.FAILED_LOGIN: thresholds.get("failed_login", 5),
        SecurityEvent.SECURITY_VIOLATION: thresholds.get("security_violation", 3),
        SecurityEvent.SUSPICIOUS_INPUT: thresholds.get("suspicious_input", 2),
    }
    return SecurityMonitor(limits, 300, storage_from_string("async+memory://"))


def _events(logs: list[dict[str, Any]], name: str) -> list[dict[str, Any]]:
    return [entry for entry in logs if entry["event"] == name]


class TestSuspiciousPatterns:
    @pytest.mark.parametrize(
        "text",
        [
            "<script>alert(1)</script>",
            "JavaScript:void(0)",
            "1 UNION SELECT password FROM user_account",
            "x'; DROP TABLE booking; --",
            "<img src=x onerror=steal()>",
        ],
    )
    def test_detects_injection_attempts(self, text: str) -> None:
        assert find_suspicious_pattern(text) is not None

    @pytest.mark.parametrize("text", ["Brake pads squeak at low speed", "Colombo 07", "Toyota Aqua"])
    def test_ordinary_text_passes(self, text: str) -> None:
        assert find_suspicious_pattern(text) is None


class TestSecurityMonitor:
    async def test_alerts_once_at_threshold(self) -> None:
        monitor = _monitor(failed_login=3)
        with capture_logs() as logs:
            counts = [await monitor.record(SecurityEvent.FAILED_LOGIN, _request()) for _ in range(5)]

        assert counts == [1, 2, 3, 4, 5]
        alerts = _events(logs, "security_alert")
        assert len(alerts) == 1
        assert alerts[0]["category"] == "failed_login"
        assert alerts[0]["severity"] == "high"
        assert alerts[0]["count"] == 3
        assert alerts[0]["client"] == "198.51.100.7"

    async def test_categories_count_separately(self) -> None:
        monitor = _monitor(security_violation=2)
        await monitor.record(SecurityEvent.FAILED_LOGIN, _request())
        assert await monitor.record(SecurityEvent.SECURITY_VIOLATION, _request()) == 1

    async def test_reset_clears_counters(self) -> None:
        monitor = _monitor()
        await monitor.record(SecurityEvent.SUSPICIOUS_INPUT, _request())
        await monitor.reset()
        assert await monitor.record(SecurityEvent.SUSPICIOUS_INPUT, _request()) == 1

    def test_every_category_needs_a_threshold(self) -> None:
        with pytest.raises(ValueError, match="suspicious_input"):
            SecurityMonitor(
                {SecurityEvent.FAILED_LOGIN: 5, SecurityEvent.SECURITY_VIOLATION: 3},
                300,
                storage_from_string("async+memory://"),
            )

    def test_thresholds_from_settings(self, test_settings: Settings) -> None:
        settings = test_settings.model_copy(update={"security_alert_failed_logins": 8})
        monitor = SecurityMonitor.from_settings(settings)
        assert monitor.thresholds[SecurityEvent.FAILED_LOGIN] == 8
        assert monitor.thresholds[SecurityEvent.SUSPICIOUS_INPUT] == 2


class TestRouteMonitoring:
    async def test_failed_logins_raise_one_alert(self, client: AsyncClient, regular_user: User) -> None:
        body = {"email": "driver@autocare.test", "password": "wrong-password-123"}
        with capture_logs() as logs:
            for _ in range(6):
                assert (await client.post("/auth/login", json=body)).status_code == 401

        assert len(_events(logs, "login_failed")) == 6
        alerts = [a for a in _events(logs, "security_alert") if a["category"] == "failed_login"]
        assert len(alerts) == 1
        assert alerts[0]["count"] == 5

    async def test_unauthorized_requests_are_violations(self, client: AsyncClient) -> None:
        with capture_logs() as logs:
            for _ in range(3):
                assert (await client.get("/auth/me")).status_code == 401

        alerts = _events(logs, "security_alert")
        assert [a["category"] for a in alerts] == ["security_violation"]
        assert alerts[0]["violation"] == "unauthorized_access"

    async def test_forbidden_requests_are_violations(
        self, client: AsyncClient, user_headers: dict[str, str]
    ) -> None:
        with capture_logs() as logs:
            for _ in range(3):
                assert (await client.get("/booking", headers=user_headers)).status_code == 403

        alerts = _events(logs, "security_alert")
        assert alerts[0]["violation"] == "forbidden_access"

    async def test_suspicious_body_is_logged_and_still_served(
        self,
        client: AsyncClient,
        user_headers: dict[str, str],
        booking_payload: Callable[..., dict[str, Any]],
    ) -> None:
        payload = booking_payload(special_notes="<script>alert(1)</script>")
        with capture_logs() as logs:
            response = await client.post("/booking", json=payload, headers=user_headers)

        assert response.status_code == 201
        detected = _events(logs, "suspicious_input_detected")
        assert len(detected) == 1
        assert detected[0]["source"] == "body"
        assert detected[0]["pattern"] == "<script"
        assert "special_notes" not in str(detected[0])

    async def test_suspicious_query_is_logged(self, client: AsyncClient) -> None:
        with capture_logs() as logs:
            response = await client.get("/inventory", params={"q": "1 UNION SELECT password"})

        assert response.status_code == 200
        detected = _events(logs, "suspicious_input_detected")
        assert [d["source"] for d in detected] == ["query"]

    async def test_ordinary_requests_are_not_flagged(
        self,
        client: AsyncClient,
        user_headers: dict[str, str],
        booking_payload: Callable[..., dict[str, Any]],
    ) -> None:
        with capture_logs() as logs:
            await client.post("/booking", json=booking_payload(), headers=user_headers)
        assert _events(logs, "suspicious_input_detected") == []
