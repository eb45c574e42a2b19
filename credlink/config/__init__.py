"""
Configuration Module
====================

Centralized configuration management using Pydantic Settings.
Loads from environment variables with type validation and defaults.

Usage:
    from credlink.config import settings

    print(settings.environment)
    print(settings.scoring.tier_breakpoints)
"""

from credlink.config.settings import (
    Environment,
    LogLevel,
    ProvingBackendMode,
    Settings,
    get_settings,
)


# Global settings instance (singleton)
settings = get_settings()

__all__ = [
    "Settings",
    "get_settings",
    "settings",
    "Environment",
    "LogLevel",
    "ProvingBackendMode",
]
