# app/core/config.py
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Global application configuration.

    Values are loaded from environment variables (or a local `.env` file)
    at runtime and validated once.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "Meeting Stats"
    APP_ENV: str = Field("local", description="Environment name: local/dev/stage/prod")

    DB_URL: str = Field(
        "sqlite+aiosqlite:///./meeting_stats.db",
        description="SQLAlchemy-compatible async database URL",
    )
    DB_AUTO_CREATE: bool = Field(
        default=True,
        description="Create missing tables on startup (use migrations outside local).",
    )

    STATS_TIMEZONE: str = Field(
        default="UTC",
        description=(
            "IANA timezone used for calendar boundaries (today/week/month) "
            "and for the date keys of trend series."
        ),
    )
    STATS_QUERY_TIMEOUT_SECONDS: float | None = Field(
        default=None,
        description=(
            "Optional deadline for a whole statistics computation. When it "
            "expires, in-flight repository queries are cancelled."
        ),
    )
    PERSON_STATS_MAX_LIMIT: int = Field(
        default=100,
        description="Upper bound for the page size of the by-person endpoint.",
    )
    TREND_DEFAULT_DAYS: int = Field(
        default=30,
        description="Trend window used when the caller does not pass `days`.",
    )

    LOG_LEVEL: str = Field(default="INFO", description="Root log level.")


@lru_cache()
def get_settings() -> Settings:
    """
    Cached accessor for application settings.

    Using LRU cache ensures settings are read and validated only once,
    while still being easily importable across the app.
    """
    return Settings()
