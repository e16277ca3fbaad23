"""Modular Pydantic Settings v2 configuration.

Import settings via cached loaders:
    from tree_service.core.settings import get_tree_settings

Or use unified settings for convenient access to all domains:
    from tree_service.core.settings import get_settings

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. YAML/conf.d files (optional, local/dev)
    3. Environment variables (production)
    4. .env file (development only)
    5. secrets_dir (Kubernetes/Docker secrets)
"""

from __future__ import annotations

from .loader import (
    clear_all_caches,
    get_db_settings,
    get_logging_settings,
    get_tree_settings,
)
from .logs import LoggingSettings
from .postgres import PostgresSettings
from .tree import TreeSettings
from .unified import Settings, get_settings

__all__ = [
    "LoggingSettings",
    "PostgresSettings",
    "Settings",
    "TreeSettings",
    "clear_all_caches",
    "get_db_settings",
    "get_logging_settings",
    "get_settings",
    "get_tree_settings",
]
