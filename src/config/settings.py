"""
Module: settings.py
Description: Application configuration using pydantic-settings.

Configures delivery, retry and notification settings from environment
variables with validation and defaults. Supports .env files for local
development.
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application settings
    app_name: str = Field(default="Webhook Relay", description="Application name")
    app_version: str = Field(default="0.3.0", description="Application version")
    log_level: str = Field(default="INFO", description="Logging level")

    # Delivery settings
    delivery_timeout: int = Field(
        default=10,
        ge=1,
        le=30,
        description="HTTP timeout in seconds for delivery attempts"
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Delivery attempts per entry, including the first one"
    )
    http_retry_delay: float = Field(
        default=1.0,
        ge=0,
        description="Seconds to wait before retrying after a non-2xx response"
    )
    network_retry_delay: float = Field(
        default=2.0,
        ge=0,
        description="Seconds to wait before retrying after a network error"
    )

    # Notification settings
    notification_interval: int = Field(
        default=5,
        ge=1,
        le=60,
        description="Seconds between queue progress updates"
    )
    notification_max_lifetime: float = Field(
        default=60.0,
        gt=0,
        description="Hard ceiling in seconds for a live progress notification"
    )
    notification_history_size: int = Field(
        default=100,
        ge=1,
        description="Number of rendered notifications kept for inspection"
    )

    # Registry settings
    destinations_file: Optional[str] = Field(
        default=None,
        description="Optional JSON file used to rehydrate destinations at startup"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}")
        return v.upper()


# Global settings instance
settings = Settings()
