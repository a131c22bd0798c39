"""Application settings and configuration.

This module defines all configuration options for the Haven forum core.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Haven Forum Core", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./haven.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Expiry sweeps (restrictions, warnings, notification retention)
    sweep_enabled: bool = Field(default=True, alias="SWEEP_ENABLED")
    sweep_interval_seconds: float = Field(default=86_400.0, alias="SWEEP_INTERVAL_SECONDS")
    sweep_batch_size: int = Field(default=500, alias="SWEEP_BATCH_SIZE")

    # Notifications
    notification_ttl_days: int = Field(default=90, alias="NOTIFICATION_TTL_DAYS")
    reaction_batch_window_minutes: int = Field(
        default=15,
        alias="REACTION_BATCH_WINDOW_MINUTES",
    )

    # CORS configuration for the gateway in front of this service
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()
