"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the process.

Usage:
    from tree_service.core.settings.loader import get_tree_settings

    settings = get_tree_settings()  # First call: loads and validates
    settings = get_tree_settings()  # Subsequent calls: returns cached instance

Testing:
    In tests, clear the cache to force reload:
    clear_all_caches()

    Or pass explicit instances:
    TreeService(session, settings=TreeSettings(max_depth=3))
"""

from __future__ import annotations

from functools import lru_cache

from .logs import LoggingSettings
from .postgres import PostgresSettings
from .tree import TreeSettings


@lru_cache(maxsize=1)
def get_db_settings() -> PostgresSettings:
    """Get cached database settings.

    Returns:
        Validated and frozen PostgresSettings instance.
    """
    return PostgresSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings.

    Returns:
        Validated and frozen LoggingSettings instance.
    """
    return LoggingSettings()


@lru_cache(maxsize=1)
def get_tree_settings() -> TreeSettings:
    """Get cached tree settings."""
    return TreeSettings()


def clear_all_caches() -> None:
    """Clear all settings caches.

    Useful for testing or when you need to force reload settings.
    In production, prefer process restarts over cache clearing.
    """
    from .unified import get_settings

    get_db_settings.cache_clear()
    get_logging_settings.cache_clear()
    get_tree_settings.cache_clear()
    get_settings.cache_clear()
