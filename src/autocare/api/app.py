"""FastAPI application factory, lifespan management, and middleware configuration.

Creates the FastAPI app with:
- Async lifespan (logging, DB engine and tables, mailer)
- CORS, correlation ID, security header and body size middleware
- Tiered admission gate (rate limiting) shared by every route
- Security monitor counting failed logins, violations and suspicious input
- All route modules registered
- Global error handlers
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from autocare.api.admission import AdmissionGate
from autocare.api.errors import register_error_handlers
from autocare.api.middleware import (
    BodySizeLimitMiddleware,
    CorrelationMiddleware,
    SecurityHeadersMiddleware,
    SuspiciousInputMiddleware,
)
from autocare.api.monitoring import SecurityMonitor
from autocare.api.routes import auth, backoffice, bookings, catalogue, health, inventory, issues
from autocare.config import Settings
from autocare.db.session import create_async_engine_from_url, create_session_factory, init_models
from autocare.integrations.mailer import create_mailer
from autocare.log_config import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan — startup and shutdown logic.

    Startup:
        1. Configure structured logging
        2. Create async DB engine and session factory
        3. Create database tables (if they don't exist)
        4. Build the outbound mailer
        5. Store everything on app.state

    Shutdown:
        6. Drop rate-limit buckets and security counters, dispose the database engine
    """
    settings: Settings = app.state.settings

    # 1. Logging
    configure_logging(log_level=settings.log_level, log_format=settings.log_format)

    # 2. Database engine + session factory
    engine = create_async_engine_from_url(
        settings.database_url,
        pool_timeout=settings.db_pool_timeout,
        connect_timeout=settings.db_connect_timeout,
    )
    session_factory = create_session_factory(engine)

    # 3. Create tables
    await init_models(engine)

    # 4. Mailer
    mailer = create_mailer(settings)

    # 5. Store on app.state
    app.state.db_engine = engine
    app.state.session_factory = session_factory
    app.state.mailer = mailer

    await logger.ainfo(
        "startup_complete",
        environment=settings.environment,
        rate_limits={tier.value: str(item) for tier, item in app.state.admission_gate.tiers.items()},
        database_url=settings.database_url.split("://")[0] + "://***",
    )

    yield

    # Shutdown
    await app.state.admission_gate.reset()
    await app.state.security_monitor.reset()
    await engine.dispose()
    await logger.ainfo("shutdown_complete")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Application factory — create and configure the FastAPI app.

    Args:
        settings: Optional Settings instance. If None, loads from environment.

    Returns:
        A fully configured FastAPI application.
    """
    if settings is None:
        from autocare.config import get_settings
        settings = get_settings()

    app = FastAPI(
        title="AutoCare Service API",
        description="Vehicle service bookings, inventory and back office",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Attach settings, the admission gate and the security monitor before lifespan runs
    gate = AdmissionGate.from_settings(settings)
    monitor = SecurityMonitor.from_settings(settings, key_func=gate.client_key)
    app.state.settings = settings
    app.state.admission_gate = gate
    app.state.security_monitor = monitor

    # --- Middleware (last added runs first) ---
    app.add_middleware(SuspiciousInputMiddleware, monitor=monitor)
    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.max_request_body_bytes)
    app.add_middleware(SecurityHeadersMiddleware, hsts=settings.is_production)
    app.add_middleware(CorrelationMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Content-Type", "auth-token", "X-Correlation-ID"],
    )

    # --- Routes ---
    app.include_router(auth.router)
    app.include_router(bookings.router)
    app.include_router(inventory.router)
    app.include_router(catalogue.router)
    app.include_router(issues.router)
    app.include_router(backoffice.router)
    app.include_router(health.router)

    # --- Error handlers ---
    register_error_handlers(app)

    return app
