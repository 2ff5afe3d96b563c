"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with validation.
"""
from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    environment: str = Field(default="development", description="Environment: development, staging, production")
    debug: bool = Field(default=False, description="Debug mode")

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./dreamsocial.db",
        description="Async SQLAlchemy connection URL (postgresql+asyncpg://... in production)"
    )

    # Redis
    redis_url: str = Field(default="", description="Redis connection URL (empty disables caching)")
    redis_password: str = Field(default="", description="Redis password")

    # Security
    jwt_secret: str = Field(
        default="dev-only-secret-change-me-in-production-000",
        min_length=32,
        description="JWT secret key (min 32 chars)"
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT algorithm")
    jwt_expiration_hours: int = Field(default=24, description="JWT expiration time in hours")

    # CORS
    allowed_origins: str = Field(
        default="http://localhost:8081",
        description="Comma-separated list of allowed CORS origins"
    )

    # Rate Limiting
    rate_limit_per_minute: int = Field(default=60, description="Relationship mutations per minute per client")

    # Cache TTL (in seconds)
    cache_counts_ttl: int = Field(default=60, description="Follower/following count cache TTL in seconds")

    # Directory
    search_result_limit: int = Field(default=20, description="Maximum profiles returned by user search")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    def get_allowed_origins_list(self) -> List[str]:
        """Parse comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
