"""Database repository exceptions.

Custom exceptions for repository and tree operations that provide better
error messages and typing than raw SQLAlchemy exceptions.
"""
from __future__ import annotations

from typing import Any


class RepositoryError(Exception):
    """Base exception for repository operations.

    Raised when a repository operation fails due to programming
    errors, configuration issues, or unexpected states.

    This is distinct from data-related errors (NotFoundError) and
    indicates a problem with the repository itself.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize repository error.

        Args:
            message: Error description
            details: Additional context about the error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Format error message with details."""
        if self.details:
            details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class NotFoundError(RepositoryError):
    """Entity not found in database.

    Raised when querying for an entity by primary key or unique
    field that doesn't exist.

    Attributes:
        model_name: Name of the model class that wasn't found
        identifier: The key/value that was searched for
    """

    def __init__(self, model_name: str, identifier: dict[str, Any]):
        """Initialize not found error.

        Args:
            model_name: Name of the model (e.g., "TreeNode")
            identifier: Key-value pairs used in the search (e.g., {"id": 123})
        """
        self.model_name = model_name
        self.identifier = identifier

        id_str = ", ".join(f"{k}={v!r}" for k, v in identifier.items())
        message = f"{model_name} not found with {id_str}"

        super().__init__(message, details={"model": model_name, **identifier})

    def __repr__(self) -> str:
        """Repr for debugging."""
        return f"{type(self).__name__}(model={self.model_name!r}, identifier={self.identifier!r})"


class NodeNotFoundError(NotFoundError):
    """A referenced tree node does not exist.

    Surfaced to the caller as-is; retrying will not help.
    """


class ParentNotFoundError(NodeNotFoundError):
    """The reference node of an insertion does not exist."""


class InvalidTreeOperationError(RepositoryError):
    """Semantically illegal tree request.

    Examples: moving a node into its own subtree, deleting the root,
    placing a sibling next to the root, an unknown position tag.
    Nothing has been written when this is raised.
    """


class StoreFailureError(RepositoryError):
    """The store could not apply or commit a tree mutation.

    The transaction was rolled back, so no partial state is visible and the
    whole operation may be retried from scratch. The driver error is chained
    as ``__cause__``.
    """

    def __init__(self, operation: str, error: BaseException):
        """Initialize store failure.

        Args:
            operation: Tree operation that failed (e.g., "tree.move")
            error: Underlying SQLAlchemy/driver exception
        """
        self.operation = operation
        super().__init__(
            f"Tree store failure during {operation}",
            details={"operation": operation, "error": type(error).__name__},
        )


__all__ = [
    "InvalidTreeOperationError",
    "NodeNotFoundError",
    "NotFoundError",
    "ParentNotFoundError",
    "RepositoryError",
    "StoreFailureError",
]
