"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - Expiry strings are validated at load time (bad values fail startup, not the first login)

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
    - JWT_EXPIRY / REFRESH_TOKEN_EXPIRY keep the "15m"/"2h" string form so the
      same value is echoed back to clients as expiresIn
"""

from datetime import timedelta
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dynamicvault.core.durations import parse_duration


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://vault:vault@db:5432/dynamicvault"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres URLs are postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10
    database_auto_create: bool = False

    # Auth
    jwt_secret: str = "fallback-secret-do-not-use-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiry: str = "15m"
    refresh_token_expiry: str = "2h"
    nonce_ttl_seconds: int = 3600

    @field_validator("jwt_expiry", "refresh_token_expiry")
    @classmethod
    def validate_duration(cls, v: str) -> str:
        parse_duration(v)
        return v

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def access_token_ttl(self) -> timedelta:
        return parse_duration(self.jwt_expiry)

    @property
    def refresh_token_ttl(self) -> timedelta:
        return parse_duration(self.refresh_token_expiry)

    @property
    def nonce_ttl(self) -> timedelta:
        return timedelta(seconds=self.nonce_ttl_seconds)


@lru_cache
def get_settings() -> Settings:
    return Settings()
