"""
Application configuration using Pydantic settings.

All configurable values are loaded from environment variables with sensible defaults.
Build-time defines (build mode, compile-time flags, kill switch) are not
part of these settings; they live in flagpilot.features.build.BuildConfig.
"""
from pathlib import Path
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Get the directory containing this config file (flagpilot/)
_PACKAGE_DIR = Path(__file__).parent.resolve()

DEFAULT_FLAG_KEY_PREFIX = "feature_flag_"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App metadata
    app_name: str = "FlagPilot"
    app_version: str = "0.1.0"
    debug: bool = False

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL

    # Preference store (any SQLAlchemy URL; SQLite file by default)
    database_url: str = "sqlite:///./flagpilot.db"
    database_echo: bool = False

    # Feature flag persistence
    flag_key_prefix: str = DEFAULT_FLAG_KEY_PREFIX
    strict_feature_ids: bool = False  # Reject reads/writes for unregistered ids

    # CORS - development defaults, override via CORS_ORIGINS env var
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    @field_validator("flag_key_prefix")
    @classmethod
    def validate_flag_key_prefix(cls, value: str) -> str:
        """An empty prefix would let reset_all() wipe unrelated preferences."""
        if not value:
            raise ValueError("FLAG_KEY_PREFIX must not be empty")
        return value

    model_config = SettingsConfigDict(
        env_file=_PACKAGE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def get_settings(**overrides) -> Settings:
    """
    Factory function to create Settings instance.

    Useful for testing where you need to override specific values
    without modifying environment variables.

    Args:
        **overrides: Key-value pairs to override default settings

    Returns:
        Settings instance with overrides applied

    Example:
        test_settings = get_settings(database_url="sqlite:///:memory:")
    """
    return Settings(**overrides)


# Global settings instance
settings = get_settings()
