"""Application settings and configuration."""

import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application (hardcoded constants)
    app_name: str = "SecureAPI"
    app_version: str = "0.1.0"

    # Environment-specific settings
    debug: bool = False
    environment: str  # development, staging, production

    # Database (async SQLAlchemy URL: postgresql+asyncpg://... or sqlite+aiosqlite:///...)
    database_url: str
    database_pool_size: int = 10
    database_max_overflow: int = 20
    database_pool_timeout: int = 30
    database_pool_recycle: int = 3600
    database_echo: bool = False
    database_auto_create: bool = True

    # API
    api_prefix: str = "/api"

    # Security
    secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "secure-api"
    jwt_audience: str = "secure-api-clients"
    access_token_expire_minutes: int = Field(default=15, ge=1)
    refresh_token_expire_days: int = Field(default=7, ge=1)
    clock_skew_seconds: int = Field(default=5, ge=0)
    password_hash_rounds: int = Field(default=12, ge=4, le=31)

    # API key authentication
    api_key_header: str = "X-API-Key"
    api_key_path_prefixes: list[str] = ["/api/webhooks", "/api/partner"]

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_default: str = "100/minute"
    rate_limit_auth: str = "10/minute"

    # Seeding
    seed_admin_email: str | None = None
    seed_admin_password: str | None = None
    seed_sample_products: bool = False

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        valid_envs = {"development", "staging", "production"}
        env = str(v).lower()
        if env not in valid_envs:
            raise ValueError(f"Environment must be one of {valid_envs}, got {env}")
        return env

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """HS256 signing secret must carry at least 256 bits."""
        if len(v.encode("utf-8")) < 32:
            raise ValueError("SECRET_KEY must be at least 32 bytes long")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format value."""
        fmt = v.lower()
        if fmt not in {"json", "console"}:
            raise ValueError(f"LOG_FORMAT must be 'json' or 'console', got {v}")
        return fmt

    @property
    def access_token_expire_seconds(self) -> int:
        return self.access_token_expire_minutes * 60

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()  # type: ignore[call-arg]
