from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables with validation."""

    model_config = SettingsConfigDict(
        env_file=(str(Path(__file__).resolve().parents[1] / ".env"), ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    app_name: str = Field(default="LaundryLocator API", alias="APP_NAME")
    app_env: Literal["development", "staging", "production", "test"] = Field(
        default="production",
        alias="APP_ENV",
    )
    app_debug: bool = Field(default=False, alias="APP_DEBUG")
    api_prefix: str = Field(default="/api", alias="API_PREFIX")
    site_url: str = Field(default="https://laundromatlocator.com", alias="SITE_URL")
    site_name: str = Field(default="LaundryLocator", alias="SITE_NAME")
    secret_key: SecretStr = Field(
        default=SecretStr("change-me-in-production"),
        alias="SECRET_KEY",
    )
    token_ttl_minutes: int = Field(default=60 * 24 * 7, ge=5, alias="TOKEN_TTL_MINUTES")
    admin_email: str = Field(default="admin@laundromatlocator.com", alias="ADMIN_EMAIL")

    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"],
        alias="CORS_ORIGINS",
    )

    database_url: str = Field(
        default="sqlite:///./data/laundrylocator.db",
        alias="DATABASE_URL",
    )
    db_pool_size: int = Field(default=10, ge=1, le=100, alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=20, ge=0, le=200, alias="DB_MAX_OVERFLOW")

    stripe_secret_key: SecretStr | None = Field(default=None, alias="STRIPE_SECRET_KEY")
    stripe_webhook_secret: SecretStr | None = Field(default=None, alias="STRIPE_WEBHOOK_SECRET")
    stripe_currency: str = Field(default="usd", alias="STRIPE_CURRENCY")

    google_maps_api_key: SecretStr | None = Field(default=None, alias="GOOGLE_MAPS_API_KEY")

    upload_dir: Path = Field(default=Path("data/uploads"), alias="UPLOAD_DIR")
    enriched_dir: Path = Field(default=Path("data/enriched"), alias="ENRICHED_DIR")
    import_chunk_size: int = Field(default=100, ge=1, le=10000, alias="IMPORT_CHUNK_SIZE")
    batch_job_ttl_seconds: int = Field(default=3600, ge=0, alias="BATCH_JOB_TTL_SECONDS")
    batch_job_max: int = Field(default=200, ge=1, alias="BATCH_JOB_MAX")

    expiry_check_cron: str = Field(default="0 3 * * *", alias="EXPIRY_CHECK_CRON")
    scheduler_enabled: bool = Field(default=True, alias="SCHEDULER_ENABLED")
    scheduler_poll_seconds: int = Field(default=60, ge=1, alias="SCHEDULER_POLL_SECONDS")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("api_prefix")
    @classmethod
    def validate_api_prefix(cls, value: str) -> str:
        """Ensure the API prefix starts with a slash and has no trailing slash."""
        normalized = value.strip()
        if not normalized.startswith("/"):
            raise ValueError("API_PREFIX must start with '/'.")
        if len(normalized) > 1 and normalized.endswith("/"):
            normalized = normalized.rstrip("/")
        return normalized

    @field_validator("site_url")
    @classmethod
    def strip_site_url(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value: str | list[str]) -> list[str]:
        """Support comma-separated CORS origins from environment variables."""
        if isinstance(value, str):
            if not value.strip():
                return []
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, value: str) -> str:
        """Validate database URL is a PostgreSQL or SQLite SQLAlchemy connection string."""
        lowered = value.lower()
        allowed = ("postgresql://", "postgresql+psycopg2://", "sqlite://")
        if not lowered.startswith(allowed):
            raise ValueError(
                "DATABASE_URL must start with postgresql://, postgresql+psycopg2:// or sqlite://"
            )
        return value

    @property
    def stripe_enabled(self) -> bool:
        return bool(self.stripe_secret_key and self.stripe_secret_key.get_secret_value())


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()


settings: Settings = get_settings()
