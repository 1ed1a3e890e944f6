"""
Configuration settings for the signal-drill scheduling engine.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///signal_drill.db",
        description="SQLAlchemy connection string (SQLite or PostgreSQL)",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # API Server
    # ========================================
    api_host: str = Field(
        default="127.0.0.1",
        description="API server host",
    )
    api_port: int = Field(
        default=8100,
        description="API server port",
    )

    # ========================================
    # Scheduling
    # ========================================
    scheduler_strategy: Literal["leitner", "ease_factor"] = Field(
        default="leitner",
        description="Review scheduling strategy (fixed box table or SM-2 ease factor)",
    )
    sm2_initial_ease: float = Field(
        default=2.5,
        description="Initial ease factor for cards without one",
    )
    sm2_minimum_ease: float = Field(
        default=1.3,
        description="Lower bound for the ease factor",
    )
    sm2_first_interval: int = Field(
        default=1,
        description="Days until the first review after a correct answer",
    )
    sm2_second_interval: int = Field(
        default=6,
        description="Days until the second review after a correct answer",
    )

    # ========================================
    # Sessions
    # ========================================
    default_batch_size: int = Field(
        default=15,
        ge=1,
        description="Questions per session when the caller does not specify a batch size",
    )
    max_batch_size: int = Field(
        default=100,
        ge=1,
        description="Upper bound accepted for a session batch size",
    )

    # ========================================
    # Store access
    # ========================================
    operation_timeout_seconds: float | None = Field(
        default=None,
        description="Default timeout for engine calls (None for no timeout)",
    )
    read_retry_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts for session loads when the store is unavailable",
    )
    read_retry_backoff_seconds: float = Field(
        default=0.2,
        ge=0,
        description="Initial backoff between read retries (doubles per attempt)",
    )
    conflict_retry_attempts: int = Field(
        default=1,
        ge=0,
        description="Extra answer attempts after an optimistic concurrency conflict",
    )

    # ========================================
    # Content store
    # ========================================
    content_api_url: str | None = Field(
        default=None,
        description="Base URL of the REST content store (None to use the local questions table)",
    )
    content_api_key: str | None = Field(
        default=None,
        description="API key sent to the REST content store",
    )
    content_cache_ttl_seconds: float = Field(
        default=300.0,
        ge=0,
        description="How long fetched questions stay cached",
    )
    content_cache_max_entries: int = Field(
        default=256,
        ge=1,
        description="Most distinct queries kept in the content cache",
    )

    # ========================================
    # Helper Methods
    # ========================================
    def has_remote_content(self) -> bool:
        """Check if a REST content store is configured."""
        return bool(self.content_api_url)

    def get_sm2_config(self) -> dict[str, Any]:
        """Get ease factor scheduling configuration as a dictionary."""
        return {
            "initial_ease": self.sm2_initial_ease,
            "minimum_ease": self.sm2_minimum_ease,
            "first_interval": self.sm2_first_interval,
            "second_interval": self.sm2_second_interval,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
