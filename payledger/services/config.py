"""Application configuration from environment variables."""

import logging
from typing import Optional

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Settings loaded from environment variables and the .env file.

    Pydantic automatically loads values from:
    1. OS environment variables (at instantiation time)
    2. .env file (if present)
    """

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./payledger.db",
        description="SQLAlchemy connection string",
    )
    database_echo: bool = Field(default=False, description="Log SQL queries")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="logs/payledger.log", description="Log file path")

    # Formatting
    locale: str = Field(default="es_MX", description="Babel locale for amounts and dates")

    # Optimistic concurrency
    max_write_attempts: int = Field(
        default=3,
        ge=1,
        description="Read-compute-write attempts per unit before giving up on conflicts",
    )


_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the settings instance.

    Lazy-loaded so environment variables set before first use are honored.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
        logger.debug("Loaded settings: database_url=%s", _settings_instance.database_url)
    return _settings_instance


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() re-reads the environment."""
    global _settings_instance
    _settings_instance = None


__all__ = ["Settings", "get_settings", "reset_settings"]
