"""Application configuration using pydantic-settings."""
from functools import lru_cache
from urllib.parse import quote

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "change-me"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str
    db_pool_size: int = Field(default=5, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")

    # Runtime
    app_env: str = Field(default="development", validation_alias="APP_ENV")
    port: int = Field(default=5000, validation_alias="PORT")

    # Tokens
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET, validation_alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
    access_token_ttl_minutes: int = Field(
        default=60, validation_alias="ACCESS_TOKEN_TTL_MINUTES",
    )
    refresh_token_ttl_days: int = Field(default=7, validation_alias="REFRESH_TOKEN_TTL_DAYS")

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:5173",
        validation_alias="CORS_ORIGINS",
    )

    # Redis - for session caching and rate limiting.
    # REDIS_URL wins; otherwise the URL is assembled from host/port/credentials.
    redis_url_override: str | None = Field(default=None, validation_alias="REDIS_URL")
    redis_host: str = Field(default="localhost", validation_alias="REDIS_HOST")
    redis_port: int = Field(default=6379, validation_alias="REDIS_PORT")
    redis_username: str | None = Field(default=None, validation_alias="REDIS_USERNAME")
    redis_password: str | None = Field(default=None, validation_alias="REDIS_PASSWORD")
    redis_enabled: bool = Field(default=True, validation_alias="REDIS_ENABLED")
    redis_pool_size: int = Field(default=20, validation_alias="REDIS_POOL_SIZE")

    @model_validator(mode="after")
    def validate_production_secret(self) -> "Settings":
        """Refuse to sign tokens with the placeholder secret in production."""
        if self.is_production and self.jwt_secret == DEFAULT_JWT_SECRET:
            raise ValueError("JWT_SECRET must be set in production.")
        return self

    @property
    def is_production(self) -> bool:
        """True when running with APP_ENV=production."""
        return self.app_env.strip().lower() == "production"

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @property
    def redis_url(self) -> str:
        """Redis connection URL, built from the discrete settings when not given."""
        if self.redis_url_override:
            return self.redis_url_override
        auth = ""
        if self.redis_password:
            user = quote(self.redis_username or "", safe="")
            auth = f"{user}:{quote(self.redis_password, safe='')}@"
        return f"redis://{auth}{self.redis_host}:{self.redis_port}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
