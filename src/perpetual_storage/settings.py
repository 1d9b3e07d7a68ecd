# src/perpetual_storage/settings.py
import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for building a storage adapter outside of code, e.g. from the CLI.

    Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    Usage:
        from perpetual_storage.settings import get_settings
        settings = get_settings()
        root = settings.storage_dir

    The adapters never read these implicitly; see PerpetualAdapter.from_settings().
    """

    # Application Settings
    app_name: str = Field(
        default="perpetual-storage",
        description="Application name"
    )

    # Storage Configuration
    storage_dir: str = Field(
        default="storage/perpetual",
        description="Root directory of the local storage"
    )

    # Autonomi Configuration
    use_autonomi_for_directories: bool = Field(
        default=False,
        description="Enable archiving directories on the Autonomi network"
    )

    autonomi_api_url: str = Field(
        default="http://localhost:8000",
        description="Base URL of the Autonomi API"
    )

    autonomi_timeout: float = Field(
        default=120.0,
        gt=0,
        description="Timeout in seconds for each Autonomi API request"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    @field_validator('autonomi_api_url')
    @classmethod
    def strip_trailing_slash(cls, v):
        """Routes are appended to the base URL, so drop any trailing slash."""
        return v.rstrip('/')

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Validate the log level is one the logging module knows."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Invalid log_level: {v}")
        return level

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
