"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded in callers)
    - get_settings() is cached (lru_cache): single instance per process
    - Empty redis_url selects the in-memory OTP cache; empty email_webhook_url
      selects the logging email dispatcher

Design Decisions:
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://parley:parley@db:5432/parley"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # OTP cache
    redis_url: str = "redis://redis:6379/0"
    otp_ttl_seconds: int = 300

    # Bearer tokens
    jwt_secret: str = "parley-dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    token_ttl_seconds: int = 3600

    # Email dispatch
    email_webhook_url: str = ""
    email_sender: str = "no-reply@parley.local"
    email_timeout_seconds: float = 10.0

    # Event streams
    listener_queue_size: int = 100
    sse_ping_seconds: float = 15.0

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
