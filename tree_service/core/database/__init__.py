"""Database building blocks: declarative base, repository, exceptions, nested sets."""

from tree_service.core.database.base import NAMING_CONVENTION, Base, IntegerPKMixin
from tree_service.core.database.exceptions import (
    InvalidTreeOperationError,
    NodeNotFoundError,
    NotFoundError,
    ParentNotFoundError,
    RepositoryError,
    StoreFailureError,
)
from tree_service.core.database.nested_set import NestedSetMixin, NodeBounds, Position
from tree_service.core.database.repository import BaseRepository

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "BaseRepository",
    "IntegerPKMixin",
    "InvalidTreeOperationError",
    "NestedSetMixin",
    "NodeBounds",
    "NodeNotFoundError",
    "NotFoundError",
    "ParentNotFoundError",
    "Position",
    "RepositoryError",
    "StoreFailureError",
]
