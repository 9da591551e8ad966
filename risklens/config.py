"""
Configuration management for RiskLens contract analysis service.

This module uses pydantic-settings to manage environment variables with type validation.

Usage:
    from risklens.config import get_settings

    # Access configuration values
    settings = get_settings()
    limit = settings.rate_limit_max_requests
    api_url = settings.summarization_api_url
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Get the project root directory (parent of risklens/)
PROJECT_ROOT = Path(__file__).parent.parent
ENV_FILE = PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application Configuration
    environment: str = Field(
        default="development",
        description="Application environment (development/staging/production)"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG/INFO/WARNING/ERROR/CRITICAL)"
    )

    app_name: str = Field(
        default="RiskLens Contract Analyzer",
        description="Application name for FastAPI"
    )

    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )

    host: str = Field(default="0.0.0.0", description="Bind address for uvicorn")
    port: int = Field(default=8000, description="Bind port for uvicorn")

    # Summarization service Configuration
    summarization_api_url: str = Field(
        default="https://api-inference.huggingface.co/models",
        description="Base URL of the abstractive summarization inference API"
    )

    summarization_model: str = Field(
        default="facebook/bart-large-cnn",
        description="Model path appended to summarization_api_url"
    )

    summarization_api_token: Optional[str] = Field(
        default=None,
        description="Bearer token for the summarization API"
    )

    summarization_timeout_seconds: float = Field(
        default=10.0,
        description="Transport timeout for a single summarization call"
    )

    # Authentication Configuration
    jwt_secret: Optional[str] = Field(
        default=None,
        description="HS256 secret used to verify Bearer tokens"
    )

    # Policy Configuration
    rate_limit_max_requests: int = Field(
        default=10,
        description="Maximum analyses per identity per rate-limit window"
    )

    rate_limit_window_seconds: int = Field(
        default=3600,
        description="Rate-limit window length (TTL of the counter)"
    )

    cache_ttl_seconds: int = Field(
        default=86400,
        description="How long analysis results stay cached"
    )

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra fields in .env
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Uses lru_cache to ensure Settings is instantiated only once,
    preventing import-time failures and improving performance.

    Returns:
        Settings: Cached application settings instance
    """
    return Settings()
