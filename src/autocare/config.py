"""Application configuration via environment variables with Pydantic validation.

All configuration is loaded from environment variables (with .env file support).
The app fails loudly at startup if required values are missing or invalid.
"""

from limits import parse
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """AutoCare application settings. All values sourced from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./autocare.db"
    db_pool_timeout: int = 5
    db_connect_timeout: int = 5

    # Authentication: required, the app will not start without a signing secret
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 480

    # API server
    api_host: str = "127.0.0.1"
    api_port: int = 4000
    environment: str = "development"

    # CORS
    cors_allowed_origins: str = "http://localhost:3000,http://localhost:5173"

    # Request limits
    max_request_body_bytes: int = 1_048_576

    # Rate limiting tiers ("<count>/<n> <unit>")
    rate_limit_read: str = "60/15 minutes"
    rate_limit_write: str = "20/15 minutes"
    rate_limit_admin: str = "30/15 minutes"
    rate_limit_auth: str = "5/15 minutes"
    rate_limit_storage_uri: str = "async+memory://"
    trust_forwarded_for: bool = False

    # Outbound mail
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True
    mail_from: str = "noreply@autocare.local"
    mail_timeout_seconds: float = 10.0

    # Security monitoring: events per window before a security_alert is logged
    security_alert_window_seconds: int = 300
    security_alert_failed_logins: int = 5
    security_alert_violations: int = 3
    security_alert_suspicious_inputs: int = 2

    # Inventory alerts
    inventory_alert_threshold: int = 10
    inventory_alert_recipient: str = "inventory@autocare.local"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("database_url")
    @classmethod
    def database_url_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("DATABASE_URL must not be empty")
        return v

    @field_validator("jwt_secret")
    @classmethod
    def jwt_secret_strength(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("JWT_SECRET must not be empty")
        if len(v.strip()) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters")
        return v

    @field_validator("rate_limit_read", "rate_limit_write", "rate_limit_admin", "rate_limit_auth")
    @classmethod
    def rate_limit_parses(cls, v: str) -> str:
        try:
            parse(v)
        except ValueError as exc:
            raise ValueError(f"Invalid rate limit string: {v!r}") from exc
        return v

    @field_validator(
        "security_alert_window_seconds",
        "security_alert_failed_logins",
        "security_alert_violations",
        "security_alert_suspicious_inputs",
    )
    @classmethod
    def alert_setting_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Security alert settings must be at least 1")
        return v

    @field_validator("log_format")
    @classmethod
    def log_format_known(cls, v: str) -> str:
        if v not in ("json", "console"):
            raise ValueError("LOG_FORMAT must be 'json' or 'console'")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list.

        Rejects wildcard '*' when allow_credentials=True (browser security).
        Warns on non-HTTPS origins (except localhost).
        """
        import logging

        origins = [origin.strip() for origin in self.cors_allowed_origins.split(",") if origin.strip()]
        validated: list[str] = []
        for origin in origins:
            if origin == "*":
                logging.getLogger(__name__).warning(
                    "CORS origin '*' is not allowed with allow_credentials=True — skipping"
                )
                continue
            if not origin.startswith("https://") and "localhost" not in origin and "127.0.0.1" not in origin:
                logging.getLogger(__name__).warning(
                    "CORS origin '%s' is not HTTPS — consider using HTTPS in production", origin
                )
            validated.append(origin)
        return validated


def get_settings() -> Settings:
    """Create and return a validated Settings instance.

    Raises ValidationError with clear messages if required env vars are missing.
    """
    return Settings()  # type: ignore[call-arg]
