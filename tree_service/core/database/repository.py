"""Minimal generic repository for SQLAlchemy models.

Provides primary-key lookup and creation with explicit session passing.
For complex queries, use the session directly - this is a convenience, not a cage.

Example:
    from tree_service.core.database import BaseRepository

    class TreeNodeRepository(BaseRepository[TreeNode]):
        '''Range reads and bound shifts on top of the basics.'''

        async def subtree(self, session: AsyncSession, node_id: int) -> Sequence[TreeNode]:
            ...

    repo = TreeNodeRepository(TreeNode)
    node = await repo.get_or_raise(session, node_id)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, ClassVar

from tree_service.core.database.exceptions import NotFoundError
from tree_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class BaseRepository[T]:
    """Minimal generic repository.

    Provides:
        - get(session, id) -> T | None
        - get_or_raise(session, id) -> T (raises ``not_found_error``)
        - create(session, instance) -> T

    Session is always explicit - no hidden state. Subclasses may narrow
    ``not_found_error`` to a model-specific NotFoundError subclass.
    """

    __slots__ = ("model", "_logger", "_lazy")

    not_found_error: ClassVar[type[NotFoundError]] = NotFoundError

    def __init__(self, model: type[T]) -> None:
        """Initialize repository with model class.

        Args:
            model: SQLAlchemy model class (e.g., TreeNode)
        """
        self.model = model
        # Standard logger for INFO/WARNING/ERROR
        self._logger = logging.getLogger(f"repository.{model.__name__}")
        # Lazy logger for DEBUG (zero overhead when DEBUG disabled)
        self._lazy = get_lazy_logger(f"repository.{model.__name__}")

    async def get(
        self,
        session: AsyncSession,
        id: Any,  # noqa: A002
        *,
        populate_existing: bool = False,
    ) -> T | None:
        """Get entity by primary key.

        Args:
            session: Database session
            id: Primary key value
            populate_existing: Always query and overwrite an instance already
                in the identity map

        Returns:
            Entity if found, None otherwise
        """
        instance = await session.get(self.model, id, populate_existing=populate_existing)

        self._lazy.debug(
            lambda: f"db.get: {self.model.__name__}({id}) -> {'found' if instance else 'not found'}"
        )
        return instance

    async def get_or_raise(
        self,
        session: AsyncSession,
        id: Any,  # noqa: A002
        *,
        populate_existing: bool = False,
        error: type[NotFoundError] | None = None,
    ) -> T:
        """Get entity by primary key or raise.

        Raises:
            NotFoundError: ``error``, or ``not_found_error`` by default, if the
                entity doesn't exist
        """
        instance = await self.get(session, id, populate_existing=populate_existing)
        if instance is None:
            self._logger.info(
                "Entity not found",
                extra={
                    "entity": self.model.__name__,
                    "id": str(id),
                    "operation": "db.get_or_raise",
                },
            )
            raise (error or self.not_found_error)(self.model.__name__, {"id": id})
        return instance

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Persist a new entity.

        Adds to session, flushes to get generated values (like id),
        and refreshes to ensure instance is up-to-date.
        """
        session.add(instance)
        await session.flush()
        await session.refresh(instance)

        entity_id = getattr(instance, "id", None)
        self._lazy.debug(lambda: f"db.create: {self.model.__name__}(id={entity_id})")
        return instance


__all__ = [
    "BaseRepository",
]
