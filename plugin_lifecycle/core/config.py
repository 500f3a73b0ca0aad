"""
Plugin system configuration using Pydantic Settings.

Centralizes runtime configuration with environment variable support.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Plugin system settings with environment variable support."""

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = False

    # Plugins
    core_plugin_id: str = "home"
    # Seconds; None waits for initialize() indefinitely
    plugin_initialize_timeout: Optional[float] = None
    # Only count plugins that actually reached ACTIVE as active
    plugin_strict_activation: bool = False

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env vars


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
