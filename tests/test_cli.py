"""Tests for CLI entrypoint."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from sqlalchemy import select
from typer.testing import CliRunner

from autocare.api.auth import verify_password
from autocare.cli import app
from autocare.db.models import User
from autocare.db.session import create_async_engine_from_url, create_session_factory

runner = CliRunner()


class TestCLI:
    """CLI command tests."""

    def test_cli_help(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "AutoCare" in result.stdout

    def test_serve_help(self) -> None:
        result = runner.invoke(app, ["serve", "--help"])
        assert result.exit_code == 0
        assert "host" in result.stdout
        assert "port" in result.stdout

    def test_create_admin_help(self) -> None:
        result = runner.invoke(app, ["create-admin", "--help"])
        assert result.exit_code == 0
        assert "email" in result.stdout


class TestCreateAdmin:
    @pytest.fixture
    def db_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
        url = f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"
        monkeypatch.setenv("DATABASE_URL", url)
        monkeypatch.setenv("JWT_SECRET", "cli-test-secret-0123456789-abcdefghij")
        return url

    @staticmethod
    def _load_users(url: str) -> list[User]:
        async def _run() -> list[User]:
            engine = create_async_engine_from_url(url)
            try:
                async with create_session_factory(engine)() as session:
                    return list((await session.execute(select(User))).scalars().all())
            finally:
                await engine.dispose()

        return asyncio.run(_run())

    def test_creates_admin_with_hashed_password(self, db_env: str) -> None:
        result = runner.invoke(
            app,
            ["create-admin", "--email", "Boss@AutoCare.test"],
            input="super-secret-pw\nsuper-secret-pw\n",
        )
        assert result.exit_code == 0, result.stdout
        assert "Admin account created" in result.stdout

        users = self._load_users(db_env)
        assert len(users) == 1
        assert users[0].email == "boss@autocare.test"
        assert users[0].role == "admin"
        assert users[0].password_hash != "super-secret-pw"
        assert verify_password("super-secret-pw", users[0].password_hash)

    def test_duplicate_email_fails(self, db_env: str) -> None:
        args = ["create-admin", "--email", "boss@autocare.test"]
        runner.invoke(app, args, input="super-secret-pw\nsuper-secret-pw\n")
        result = runner.invoke(app, args, input="super-secret-pw\nsuper-secret-pw\n")
        assert result.exit_code == 1

    def test_short_password_fails(self, db_env: str) -> None:
        result = runner.invoke(app, ["create-admin", "--email", "boss@autocare.test"], input="short\nshort\n")
        assert result.exit_code == 1

    def test_init_db(self, db_env: str) -> None:
        result = runner.invoke(app, ["init-db"])
        assert result.exit_code == 0
        assert "Database tables created" in result.stdout
        assert self._load_users(db_env) == []
