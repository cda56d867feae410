"""CLI entrypoint — Typer-based command interface.

Commands:
    autocare serve          — Start the FastAPI server
    autocare init-db        — Create any missing database tables
    autocare create-admin   — Bootstrap a back-office admin account
"""

from __future__ import annotations

import asyncio

import typer

app = typer.Typer(
    name="autocare",
    help="AutoCare Service API — vehicle service bookings, inventory and back office",
)


@app.command()
def serve(
    host: str | None = typer.Option(None, help="API server host (default: API_HOST)"),
    port: int | None = typer.Option(None, help="API server port (default: API_PORT)"),
    reload: bool = typer.Option(False, help="Enable auto-reload for development"),
) -> None:
    """Start the AutoCare FastAPI server."""
    import uvicorn

    from autocare.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "autocare.api.app:create_app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        factory=True,
    )


@app.command("init-db")
def init_db() -> None:
    """Create any database tables that do not exist yet."""

    async def _run() -> None:
        from autocare.config import get_settings
        from autocare.db.session import create_async_engine_from_url, init_models

        settings = get_settings()
        engine = create_async_engine_from_url(settings.database_url)
        try:
            await init_models(engine)
        finally:
            await engine.dispose()

    asyncio.run(_run())
    typer.echo("Database tables created")


@app.command("create-admin")
def create_admin(
    email: str = typer.Option(..., help="Admin login email"),
    name: str = typer.Option("Administrator", help="Display name"),
    password: str = typer.Option(
        ..., prompt=True, hide_input=True, confirmation_prompt=True, help="Admin password"
    ),
) -> None:
    """Create an admin account (signup over the API only ever creates users)."""
    if len(password) < 8:
        typer.echo("Error: password must be at least 8 characters", err=True)
        raise typer.Exit(code=1)

    async def _run() -> bool:
        from sqlalchemy import select

        from autocare.api.auth import hash_password
        from autocare.config import get_settings
        from autocare.db.models import User, UserRole
        from autocare.db.session import create_async_engine_from_url, create_session_factory, init_models

        settings = get_settings()
        engine = create_async_engine_from_url(settings.database_url)
        try:
            await init_models(engine)
            session_factory = create_session_factory(engine)
            async with session_factory() as session:
                async with session.begin():
                    existing = await session.execute(select(User).where(User.email == email.lower()))
                    if existing.scalar_one_or_none():
                        return False
                    session.add(
                        User(
                            name=name,
                            email=email.lower(),
                            password_hash=hash_password(password),
                            role=UserRole.ADMIN.value,
                        )
                    )
            return True
        finally:
            await engine.dispose()

    if not asyncio.run(_run()):
        typer.echo(f"Error: an account with email {email} already exists", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Admin account created: {email}")


if __name__ == "__main__":
    app()
