"""Configuration module for the connector core.

Provides centralized configuration management with type-safe enums.

Usage:
    from pagesync.core.config import settings, Environment

    # Access settings
    page_size = request.page_size or settings.DEFAULT_PAGE_SIZE

    # Use enums for type safety
    if settings.ENVIRONMENT == Environment.LOCAL:
        ...
"""

from pagesync.core.config.enums import Environment
from pagesync.core.config.settings import Settings

__all__ = [
    "Settings",
    "Environment",
    "settings",
]

# Singleton settings instance
settings = Settings()
