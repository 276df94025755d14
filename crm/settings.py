"""Application settings using Pydantic BaseSettings."""

import os
import re

from pydantic_settings import BaseSettings, SettingsConfigDict


def get_async_database_url() -> str:
    """Get database URL converted for asyncpg driver."""
    url = os.environ.get("DATABASE_URL", "") or settings.database_url
    # Convert postgres:// to postgresql+asyncpg:// for SQLAlchemy async
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgresql://") and "+asyncpg" not in url:
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    # asyncpg doesn't support sslmode, it uses ssl parameter
    if "sslmode=" in url:
        url = re.sub(r'[?&]sslmode=[^&]*', '', url)
        url = url.rstrip('?&')
    return url


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Postgres in production, sqlite+aiosqlite works for local runs
    database_url: str = "sqlite+aiosqlite:///./crm.db"
    database_echo: bool = False

    # Redis (optional, only used for idempotency keys)
    redis_url: str = "redis://localhost:6379/0"
    redis_enabled: bool = False

    # JWT
    jwt_secret_key: str = "dev-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60 * 24

    # Application
    environment: str = "development"
    log_level: str = "INFO"
    api_v1_prefix: str = "/api"
    cors_allow_origins: list[str] = ["*"]

    # Pagination
    default_page_size: int = 20
    max_page_size: int = 100

    # Idempotency
    idempotency_ttl_seconds: int = 3600

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
