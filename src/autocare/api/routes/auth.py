"""Account signup, login, and token verification.

Signup always creates a plain user; admin accounts are only created from
the CLI. Login failures return one generic message whether the email is
unknown or the password is wrong.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from autocare.api.admission import auth_limit, read_limit
from autocare.api.auth import Principal, create_access_token, hash_password, require_user, verify_password
from autocare.api.dependencies import get_security_monitor, get_session_factory, get_settings, json_body
from autocare.api.errors import ConflictError, ForbiddenError, NotFoundError, UnauthorizedError
from autocare.api.fields import project
from autocare.api.monitoring import SecurityEvent, SecurityMonitor
from autocare.api.schemas import LoginRequest, SignupRequest, parse_body
from autocare.config import Settings
from autocare.db.models import User, UserRole
from autocare.db.repository import get_record

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")

INVALID_CREDENTIALS = "Invalid email or password"
DUPLICATE_ACCOUNT = "An account with this email already exists"


async def _authenticate(
    request: Request,
    session_factory: async_sessionmaker[AsyncSession],
    monitor: SecurityMonitor,
    body: dict[str, Any],
) -> User:
    credentials = parse_body(LoginRequest, body, "login")
    async with session_factory() as session:
        result = await session.execute(select(User).where(User.email == credentials.email))
        user = result.scalar_one_or_none()

    if user is None or not verify_password(credentials.password, user.password_hash):
        await logger.awarning("login_failed")
        await monitor.record(SecurityEvent.FAILED_LOGIN, request)
        raise UnauthorizedError(INVALID_CREDENTIALS)
    return user


@router.post("/signup", status_code=201, dependencies=[Depends(auth_limit)])
async def signup(
    body: dict[str, Any] = Depends(json_body),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """Create a user account and return a token for it."""
    account = parse_body(SignupRequest, body, "signup")

    try:
        async with session_factory() as session:
            async with session.begin():
                existing = await session.execute(select(User).where(User.email == account.email))
                if existing.scalar_one_or_none():
                    raise ConflictError(DUPLICATE_ACCOUNT)

                user = User(
                    name=account.name,
                    email=account.email,
                    password_hash=hash_password(account.password),
                    role=UserRole.USER.value,
                )
                session.add(user)
                await session.flush()
    except IntegrityError as exc:
        raise ConflictError(DUPLICATE_ACCOUNT) from exc

    await logger.ainfo("user_signed_up", user_id=user.id)
    return {"success": "Account created", "token": create_access_token(user, settings)}


@router.post("/login", dependencies=[Depends(auth_limit)])
async def login(
    request: Request,
    body: dict[str, Any] = Depends(json_body),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
    monitor: SecurityMonitor = Depends(get_security_monitor),
) -> dict[str, Any]:
    user = await _authenticate(request, session_factory, monitor, body)
    await logger.ainfo("user_logged_in", user_id=user.id)
    return {"success": "Logged in", "token": create_access_token(user, settings)}


@router.post("/admin/login", dependencies=[Depends(auth_limit)])
async def admin_login(
    request: Request,
    body: dict[str, Any] = Depends(json_body),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
    monitor: SecurityMonitor = Depends(get_security_monitor),
) -> dict[str, Any]:
    """Log in to the back office. Only admin accounts get a token."""
    user = await _authenticate(request, session_factory, monitor, body)
    if user.role != UserRole.ADMIN.value:
        await logger.awarning("admin_login_denied", user_id=user.id)
        await monitor.record(SecurityEvent.SECURITY_VIOLATION, request, violation="forbidden_access")
        raise ForbiddenError()
    await logger.ainfo("admin_logged_in", user_id=user.id)
    return {"success": "Logged in", "token": create_access_token(user, settings)}


@router.get("/me", dependencies=[Depends(read_limit)])
async def current_user(
    principal: Principal = Depends(require_user),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict[str, Any]:
    """Return the account behind the presented token."""
    async with session_factory() as session:
        user = await get_record(session, User, principal.user_id)
    if user is None:
        raise NotFoundError.for_entity("User")
    return project(user, "user_public")
