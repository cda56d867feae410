"""Security monitoring — suspicious input detection and threshold alerts.

Failed logins, security violations (401, 403 and 429 responses) and suspicious
inputs are counted per category in fixed windows kept in a limits storage
backend. The request that brings a category to its threshold within one
window logs a single ``security_alert`` event; later events in the same
window are counted but do not alert again.

Detection only logs. Suspicious requests are still served, and the input
sanitizer and validators decide what is accepted.
"""

from __future__ import annotations

import enum
import re
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

import structlog
from fastapi import Request
from limits.aio.storage import Storage
from limits.storage import storage_from_string
from slowapi.util import get_remote_address

from autocare.config import Settings

logger = structlog.get_logger()

SUSPICIOUS_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"<script",
        r"javascript:",
        r"vbscript:",
        r"onload=",
        r"onerror=",
        r"eval\(",
        r"document\.",
        r"window\.",
        r"alert\(",
        r"confirm\(",
        r"prompt\(",
        r"union.*select",
        r"drop.*table",
        r"insert.*into",
        r"delete.*from",
        r"update.*set",
    )
)


def find_suspicious_pattern(text: str) -> str | None:
    """Return the first suspicious pattern found in text, or None."""
    for pattern in SUSPICIOUS_PATTERNS:
        if pattern.search(text):
            return pattern.pattern
    return None


class SecurityEvent(str, enum.Enum):
    """Counted security event categories."""

    FAILED_LOGIN = "failed_login"
    SECURITY_VIOLATION = "security_violation"
    SUSPICIOUS_INPUT = "suspicious_input"


SEVERITY: Mapping[SecurityEvent, str] = MappingProxyType({
    SecurityEvent.FAILED_LOGIN: "high",
    SecurityEvent.SECURITY_VIOLATION: "high",
    SecurityEvent.SUSPICIOUS_INPUT: "medium",
})


class SecurityMonitor:
    """Counts security events and raises threshold alerts.

    Args:
        thresholds: Events per window that trigger an alert, per category.
        window_seconds: Length of the counting window.
        storage: Counter store owned by this monitor (async limits storage).
        key_func: Derives the client identity reported with an alert.
    """

    def __init__(
        self,
        thresholds: Mapping[SecurityEvent, int],
        window_seconds: int,
        storage: Storage,
        key_func: Callable[[Request], str] = get_remote_address,
    ) -> None:
        missing = [e.value for e in SecurityEvent if e not in thresholds]
        if missing:
            raise ValueError(f"Alert thresholds not configured: {', '.join(missing)}")
        self._thresholds = MappingProxyType(dict(thresholds))
        self._window_seconds = window_seconds
        self._storage = storage
        self._key_func = key_func

    @classmethod
    def from_settings(
        cls, settings: Settings, key_func: Callable[[Request], str] = get_remote_address
    ) -> SecurityMonitor:
        storage = storage_from_string(settings.rate_limit_storage_uri)
        if not isinstance(storage, Storage):
            raise ValueError(
                "RATE_LIMIT_STORAGE_URI must name an async storage (async+memory://, async+redis://, ...)"
            )
        thresholds = {
            SecurityEvent.FAILED_LOGIN: settings.security_alert_failed_logins,
            SecurityEvent.SECURITY_VIOLATION: settings.security_alert_violations,
            SecurityEvent.SUSPICIOUS_INPUT: settings.security_alert_suspicious_inputs,
        }
        return cls(thresholds, settings.security_alert_window_seconds, storage, key_func=key_func)

    @property
    def thresholds(self) -> Mapping[SecurityEvent, int]:
        return self._thresholds

    async def record(self, event: SecurityEvent, request: Request, **context: Any) -> int:
        """Count one event and alert when its category reaches the threshold.

        Returns:
            The category's count in the current window, this event included.
        """
        count = await self._storage.incr(f"security/{event.value}", self._window_seconds)
        if count == self._thresholds[event]:
            await logger.awarning(
                "security_alert",
                category=event.value,
                severity=SEVERITY[event],
                count=count,
                window_seconds=self._window_seconds,
                client=self._key_func(request),
                **context,
            )
        return count

    async def reset(self) -> None:
        """Drop every counter (app shutdown, test isolation)."""
        await self._storage.reset()
