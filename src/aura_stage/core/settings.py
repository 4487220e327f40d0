"""Application settings and configuration.

This module defines all configuration options for the Aura Stage application.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    This class defines all configuration options for the Aura Stage application.
    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Aura Stage", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./aura.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # JWT authentication settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 30,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Rating ledger limits
    rating_budget: int = Field(default=10_000, alias="RATING_BUDGET")
    rating_points_max: int = Field(default=10_000, alias="RATING_POINTS_MAX")
    base_aura: int = Field(default=500, alias="BASE_AURA")
    reason_max_length: int = Field(default=500, alias="REASON_MAX_LENGTH")
    display_name_max_length: int = Field(default=100, alias="DISPLAY_NAME_MAX_LENGTH")

    # Group lifecycle
    group_default_capacity: int = Field(default=50, alias="GROUP_DEFAULT_CAPACITY")
    voting_window_days: int = Field(default=7, alias="VOTING_WINDOW_DAYS")

    # Global leaderboard cache (time-based expiry only)
    leaderboard_cache_ttl_seconds: float = Field(
        default=60.0,
        alias="LEADERBOARD_CACHE_TTL_SECONDS",
    )

    # Feed aura counters
    feed_aura_step: int = Field(default=100, alias="FEED_AURA_STEP")
    feed_aura_min: int = Field(default=-100, alias="FEED_AURA_MIN")
    feed_aura_max: int = Field(default=500, alias="FEED_AURA_MAX")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
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

        Returns:
            Database URL compatible with synchronous database drivers
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides.

        Returns:
            The active database URL (test database if in testing mode, otherwise production)
        """
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def feed_aura_bounds(self) -> tuple[int, int]:
        """Return the inclusive clamp range for feed aura counters."""
        return self.feed_aura_min, self.feed_aura_max


settings = Settings()  # type: ignore[call-arg]
