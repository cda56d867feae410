"""Admission gate — tiered fixed-window rate limiting keyed by client address.

One tier table (read / write / admin / auth) is built from Settings and
consulted by every route through the RateLimit dependency. Buckets live in a
limits storage backend owned by the gate: in-process memory by default, or a
shared backend (e.g. async+redis://) selected by RATE_LIMIT_STORAGE_URI when
the API runs as several instances.

The storage's incr() is the atomic check-then-increment: two concurrent
requests can never both take the last slot. Expired buckets are reclaimed by
the storage's own expiry sweeper. A denied request still counts against the
bucket, and an applied increment is never rolled back on client disconnect.
"""

from __future__ import annotations

import enum
import math
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

import structlog
from fastapi import Request, Response
from limits import RateLimitItem, parse
from limits.aio.storage import Storage
from limits.aio.strategies import FixedWindowRateLimiter
from limits.storage import storage_from_string
from slowapi.util import get_remote_address

from autocare.api.errors import RateLimitExceeded
from autocare.api.monitoring import SecurityEvent, SecurityMonitor
from autocare.config import Settings

logger = structlog.get_logger()


def forwarded_client_address(request: Request) -> str:
    """First X-Forwarded-For hop, for deployments behind a trusted proxy."""
    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    return first or get_remote_address(request)


class Tier(str, enum.Enum):
    """Named rate-limit policies."""

    READ = "read"
    WRITE = "write"
    ADMIN = "admin"
    AUTH = "auth"


@dataclass(frozen=True)
class Admission:
    """Outcome of one gate check."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: float

    def retry_after(self, now: float | None = None) -> int:
        """Whole seconds until the bucket resets, at least 1."""
        now = time.time() if now is None else now
        return max(1, math.ceil(self.reset_at - now))

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_at)),
        }


def build_tier_table(settings: Settings) -> Mapping[Tier, RateLimitItem]:
    """Parse the configured rate strings into the immutable tier table."""
    return MappingProxyType({
        Tier.READ: parse(settings.rate_limit_read),
        Tier.WRITE: parse(settings.rate_limit_write),
        Tier.ADMIN: parse(settings.rate_limit_admin),
        Tier.AUTH: parse(settings.rate_limit_auth),
    })


class AdmissionGate:
    """Counts requests per (client, tier) and admits or denies them.

    Args:
        tiers: Mapping of every Tier to its rate limit.
        storage: Bucket store owned by this gate (async limits storage).
        key_func: Derives the client identity from a request.
    """

    def __init__(
        self,
        tiers: Mapping[Tier, RateLimitItem],
        storage: Storage,
        key_func: Callable[[Request], str] = get_remote_address,
    ) -> None:
        missing = [t.value for t in Tier if t not in tiers]
        if missing:
            raise ValueError(f"Rate limit tiers not configured: {', '.join(missing)}")
        self._tiers = tiers
        self._storage = storage
        self._strategy = FixedWindowRateLimiter(storage)
        self._key_func = key_func

    @classmethod
    def from_settings(cls, settings: Settings) -> AdmissionGate:
        """Build the gate, its tier table, and its bucket store from settings."""
        storage = storage_from_string(settings.rate_limit_storage_uri)
        if not isinstance(storage, Storage):
            raise ValueError(
                "RATE_LIMIT_STORAGE_URI must name an async storage (async+memory://, async+redis://, ...)"
            )
        key_func = forwarded_client_address if settings.trust_forwarded_for else get_remote_address
        return cls(build_tier_table(settings), storage, key_func=key_func)

    @property
    def tiers(self) -> Mapping[Tier, RateLimitItem]:
        return self._tiers

    def client_key(self, request: Request) -> str:
        return self._key_func(request)

    async def check(self, client_key: str, tier: Tier) -> Admission:
        """Count one request for (client_key, tier) and decide admission."""
        item = self._tiers[tier]
        allowed = await self._strategy.hit(item, tier.value, client_key)
        stats = await self._strategy.get_window_stats(item, tier.value, client_key)
        return Admission(
            allowed=allowed,
            limit=item.amount,
            remaining=max(0, stats.remaining) if allowed else 0,
            reset_at=stats.reset_time,
        )

    async def reset(self) -> None:
        """Drop every bucket (app shutdown, test isolation)."""
        await self._storage.reset()


class RateLimit:
    """FastAPI dependency admitting a request under one tier.

    Quota headers are written onto the outgoing response; a denial raises
    RateLimitExceeded, which the error handlers turn into a 429.
    """

    def __init__(self, tier: Tier) -> None:
        self.tier = tier

    async def __call__(self, request: Request, response: Response) -> Admission:
        gate: AdmissionGate = request.app.state.admission_gate
        client_key = gate.client_key(request)
        admission = await gate.check(client_key, self.tier)

        if not admission.allowed:
            retry_after = min(admission.retry_after(), gate.tiers[self.tier].get_expiry())
            await logger.awarning(
                "rate_limit_exceeded",
                tier=self.tier.value,
                client=client_key,
                retry_after=retry_after,
            )
            monitor: SecurityMonitor = request.app.state.security_monitor
            await monitor.record(
                SecurityEvent.SECURITY_VIOLATION, request, violation="rate_limit_exceeded", tier=self.tier.value
            )
            raise RateLimitExceeded(
                limit=admission.limit,
                reset_at=admission.reset_at,
                retry_after=retry_after,
            )

        quota_headers = admission.headers()
        request.state.rate_limit_headers = quota_headers
        for name, value in quota_headers.items():
            response.headers[name] = value
        return admission


read_limit = RateLimit(Tier.READ)
write_limit = RateLimit(Tier.WRITE)
admin_limit = RateLimit(Tier.ADMIN)
auth_limit = RateLimit(Tier.AUTH)
