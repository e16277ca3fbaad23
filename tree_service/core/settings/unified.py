"""Unified settings composition for convenient access.

Usage:
    from tree_service.core.settings import get_settings

    settings = get_settings()
    print(settings.db.pool_size)
    print(settings.tree.max_depth)

Each nested settings class still respects its own env prefix. Code that only
needs one domain should prefer the individual get_*_settings() loaders.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .logs import LoggingSettings
from .postgres import PostgresSettings
from .tree import TreeSettings


class Settings(BaseSettings):
    """Unified settings composing all domain settings.

    Note: Each nested settings class still loads from its own
    environment prefix (DB_, LOG_, TREE_), not from a unified prefix.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra="ignore",
    )

    db: PostgresSettings = Field(default_factory=PostgresSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    tree: TreeSettings = Field(default_factory=TreeSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get unified settings instance (cached).

    Example:
        settings = get_settings()
        if settings.db.is_configured:
            print(f"Database pool size: {settings.db.pool_size}")
    """
    return Settings()
