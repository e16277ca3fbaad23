"""Nested-set tree behaviour settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .yaml_sources import create_tree_yaml_source


class TreeSettings(BaseSettings):
    """Settings for the tree service.

    Environment variables use TREE_ prefix.
    Example: TREE_ROOT_OWNER_ID=1, TREE_MAX_DEPTH=12
    """

    root_owner_id: int = Field(
        default=0,
        ge=0,
        description="owner_id stamped on the lazily created root node.",
    )

    advisory_lock_enabled: bool = Field(
        default=True,
        description="Serialize tree mutations with a PostgreSQL transaction-level advisory lock.",
    )

    advisory_lock_id: int = Field(
        default=0x7472_6565,
        description="Key passed to pg_advisory_xact_lock. Shared by every writer of the table.",
    )

    max_depth: int | None = Field(
        default=None,
        ge=1,
        description="Reject inserts and moves that would place a node deeper than this.",
    )

    model_config = SettingsConfigDict(
        env_prefix="TREE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @classmethod
    def settings_customise_sources(
        cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings
    ):
        return (
            init_settings,
            create_tree_yaml_source(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )
