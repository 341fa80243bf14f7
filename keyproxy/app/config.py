"""
Configuration module for the Key Proxy.

This module uses Pydantic Settings to load and validate environment variables
for the listen address, the key table source and logging.

Environment variables are loaded from .env file or system environment.
"""

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    The listen port may also be given as the first command line argument,
    which takes precedence over PROXY_PORT.
    """

    # =========================================================================
    # Server Configuration
    # =========================================================================

    PROXY_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the proxy server",
    )

    PROXY_PORT: int = Field(
        default=9080,
        description="Port to bind the proxy server",
        ge=1,
        le=65535,
    )

    # =========================================================================
    # Key Table
    # =========================================================================

    KEYS_FILE: str = Field(
        default="keys.json",
        description="JSON file mapping application keys to {base_path, real_key}",
        min_length=1,
    )

    # =========================================================================
    # Logging
    # =========================================================================

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """
        Validate that LOG_LEVEL names a standard logging level.

        Args:
            v: Raw level name

        Returns:
            Upper-cased level name

        Raises:
            ValueError: If the level is unknown
        """
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level


@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    Tests that change the environment should call ``get_settings.cache_clear()``.

    Returns:
        Settings instance with all configuration loaded and validated.

    Raises:
        ValidationError: If an environment variable is invalid.
    """
    return Settings()
