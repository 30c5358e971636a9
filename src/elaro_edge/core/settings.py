"""Application settings and configuration.

This module defines all configuration options for the ELARO edge functions.
Settings are loaded from environment variables with sensible defaults.
Secrets are injected by the hosting platform and never shipped to clients.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="ELARO Edge Functions", alias="APP_NAME")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./elaro.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Server-to-server request authentication
    internal_hmac_secret: str | None = Field(default=None, alias="INTERNAL_HMAC_SECRET")
    service_role_key: str | None = Field(default=None, alias="SERVICE_ROLE_KEY")
    hmac_timestamp_tolerance_seconds: int = Field(
        default=300,
        alias="HMAC_TIMESTAMP_TOLERANCE_SECONDS",
    )
    hmac_max_future_skew_seconds: int = Field(
        default=300,
        alias="HMAC_MAX_FUTURE_SKEW_SECONDS",
    )
    nonce_ttl_seconds: int = Field(default=600, alias="NONCE_TTL_SECONDS")

    # Outbound email delivery (Resend)
    resend_api_key: str | None = Field(default=None, alias="RESEND_API_KEY")
    resend_base_url: str = Field(default="https://api.resend.com", alias="RESEND_BASE_URL")
    welcome_email_from: str = Field(
        default="Mansur @ ELARO <mansur@myelaro.com>",
        alias="WELCOME_EMAIL_FROM",
    )
    email_http_timeout_seconds: float = Field(
        default=10.0,
        alias="EMAIL_HTTP_TIMEOUT_SECONDS",
    )

    # CORS configuration for browser preflight requests
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_methods: list[str] = Field(
        default=["POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=[
            "authorization",
            "content-type",
            "x-signature",
            "x-timestamp",
            "x-nonce",
        ],
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


settings = Settings()
