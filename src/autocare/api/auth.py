"""Token authentication — validates Authorization: Bearer <jwt>.

Tokens are HS256 JWTs signed with JWT_SECRET and carry the account's public
id (sub), its role and an expiry. The legacy ``auth-token`` header is still
accepted for older clients. Passwords are stored as bcrypt hashes only.

Role checks happen after the rate-limit gate, so unauthenticated floods are
counted and throttled like any other traffic.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import bcrypt
import jwt
import structlog
from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from autocare.api.errors import ForbiddenError, UnauthorizedError
from autocare.api.monitoring import SecurityEvent, SecurityMonitor
from autocare.config import Settings
from autocare.db.models import User, UserRole

logger = structlog.get_logger()

bearer_scheme = HTTPBearer(auto_error=False)

LEGACY_TOKEN_HEADER = "auth-token"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time bcrypt comparison. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        return False


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, as asserted by a verified token."""

    user_id: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN


def create_access_token(user: User, settings: Settings, *, now: datetime | None = None) -> str:
    """Issue a signed token for an account."""
    issued = now or datetime.now(UTC)
    claims = {
        "sub": user.id,
        "role": user.role,
        "iat": issued,
        "exp": issued + timedelta(minutes=settings.jwt_expire_minutes),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> Principal:
    """Verify a token's signature and expiry and return its principal.

    Raises:
        UnauthorizedError: If the token is malformed, expired, forged, or
            carries an unknown role.
    """
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
        role = UserRole(claims.get("role", UserRole.USER.value))
    except (jwt.InvalidTokenError, ValueError) as exc:
        raise UnauthorizedError("Invalid or expired token") from exc
    return Principal(user_id=str(claims["sub"]), role=role)


async def require_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
) -> Principal:
    """Require a valid token from the Bearer header or the legacy header.

    Raises:
        UnauthorizedError: If no token is present or it fails verification.
    """
    monitor: SecurityMonitor = request.app.state.security_monitor
    token = credentials.credentials if credentials is not None else None
    if not token:
        token = request.headers.get(LEGACY_TOKEN_HEADER)
    if not token:
        await monitor.record(SecurityEvent.SECURITY_VIOLATION, request, violation="unauthorized_access")
        raise UnauthorizedError()

    settings: Settings = request.app.state.settings
    try:
        principal = decode_access_token(token, settings)
    except UnauthorizedError:
        await logger.awarning("token_rejected", path=request.url.path)
        await monitor.record(SecurityEvent.SECURITY_VIOLATION, request, violation="unauthorized_access")
        raise

    request.state.principal = principal
    return principal


async def require_admin(request: Request, principal: Principal = Depends(require_user)) -> Principal:
    """Require a valid token whose role is admin.

    Raises:
        ForbiddenError: If the caller is authenticated but not an admin.
    """
    if not principal.is_admin:
        monitor: SecurityMonitor = request.app.state.security_monitor
        await monitor.record(SecurityEvent.SECURITY_VIOLATION, request, violation="forbidden_access")
        raise ForbiddenError()
    return principal
