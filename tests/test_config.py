"""Tests for config.py — secret strength, rate strings, CORS parsing."""

from __future__ import annotations

import pytest

from autocare.config import Settings

SECRET = "s" * 32


class TestJwtSecret:
    """The token signing secret must be at least 32 characters."""

    def test_short_secret_rejected(self) -> None:
        with pytest.raises(Exception, match="at least 32 characters"):
            Settings(jwt_secret="too-short")

    def test_blank_secret_rejected(self) -> None:
        with pytest.raises(Exception, match="must not be empty"):
            Settings(jwt_secret="   ")

    def test_exactly_32_chars_accepted(self) -> None:
        s = Settings(jwt_secret=SECRET)
        assert s.jwt_secret == SECRET


class TestRateLimits:
    def test_defaults(self) -> None:
        s = Settings(jwt_secret=SECRET)
        assert s.rate_limit_write == "20/15 minutes"
        assert s.rate_limit_auth == "5/15 minutes"

    def test_invalid_rate_string_rejected(self) -> None:
        with pytest.raises(Exception, match="Invalid rate limit string"):
            Settings(jwt_secret=SECRET, rate_limit_write="lots")


class TestSecurityAlerts:
    def test_defaults(self) -> None:
        s = Settings(jwt_secret=SECRET)
        assert s.security_alert_window_seconds == 300
        assert s.security_alert_failed_logins == 5
        assert s.security_alert_violations == 3
        assert s.security_alert_suspicious_inputs == 2

    def test_zero_threshold_rejected(self) -> None:
        with pytest.raises(Exception, match="at least 1"):
            Settings(jwt_secret=SECRET, security_alert_failed_logins=0)


class TestMisc:
    def test_unknown_log_format_rejected(self) -> None:
        with pytest.raises(Exception, match="LOG_FORMAT"):
            Settings(jwt_secret=SECRET, log_format="xml")

    def test_empty_database_url_rejected(self) -> None:
        with pytest.raises(Exception, match="DATABASE_URL"):
            Settings(jwt_secret=SECRET, database_url=" ")

    def test_cors_wildcard_dropped(self) -> None:
        s = Settings(jwt_secret=SECRET, cors_allowed_origins="*, https://shop.autocare.test ,")
        assert s.cors_origins_list == ["https://shop.autocare.test"]

    def test_is_production(self) -> None:
        assert Settings(jwt_secret=SECRET, environment="Production").is_production
        assert not Settings(jwt_secret=SECRET).is_production

    def test_env_vars_loaded(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("JWT_SECRET", SECRET)
        monkeypatch.setenv("INVENTORY_ALERT_THRESHOLD", "25")
        s = Settings()  # type: ignore[call-arg]
        assert s.inventory_alert_threshold == 25
