"""Application settings and configuration.

This module defines all configuration options for the Workpunch relay.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Workpunch Relay", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Signing key for OAuth state tokens
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    oauth_state_ttl_seconds: int = Field(default=600, alias="OAUTH_STATE_TTL_SECONDS")

    # Database configuration
    database_url: str = Field(default="sqlite:///./workpunch.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Salesforce connected app
    salesforce_client_id: str = Field(default="", alias="SALESFORCE_CLIENT_ID")
    salesforce_client_secret: str = Field(default="", alias="SALESFORCE_CLIENT_SECRET")
    salesforce_redirect_uri: str = Field(
        default="http://localhost:8000/api/v1/callback",
        alias="SALESFORCE_REDIRECT_URI",
    )
    salesforce_login_url: str = Field(
        default="https://login.salesforce.com",
        alias="SALESFORCE_LOGIN_URL",
    )
    salesforce_api_version: str = Field(default="v59.0", alias="SALESFORCE_API_VERSION")
    salesforce_oauth_scopes: str = Field(
        default="api refresh_token",
        alias="SALESFORCE_OAUTH_SCOPES",
    )
    salesforce_http_timeout_seconds: float = Field(
        default=15.0,
        alias="SALESFORCE_HTTP_TIMEOUT_SECONDS",
    )

    # Clock synchronization
    lock_stale_after_seconds: int = Field(default=3600, alias="LOCK_STALE_AFTER_SECONDS")
    clock_match_tolerance_seconds: int = Field(
        default=60,
        alias="CLOCK_MATCH_TOLERANCE_SECONDS",
    )
    clock_max_future_skew_seconds: int = Field(
        default=86_400,
        alias="CLOCK_MAX_FUTURE_SKEW_SECONDS",
    )
    default_display_timezone: str = Field(
        default="America/New_York",
        alias="DEFAULT_DISPLAY_TIMEZONE",
    )

    # CORS configuration for the mobile and web clients
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["Content-Type", "Authorization", "X-Request-ID"],
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

    @property
    def salesforce_token_url(self) -> str:
        return f"{self.salesforce_login_url.rstrip('/')}/services/oauth2/token"

    @property
    def salesforce_authorize_url(self) -> str:
        return f"{self.salesforce_login_url.rstrip('/')}/services/oauth2/authorize"


settings = Settings()  # type: ignore[call-arg]
