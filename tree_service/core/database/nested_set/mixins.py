"""Mixins for models stored as nested sets.

Declares the bound and depth columns and adds database-free helpers for
comparing nodes, plus class-level SQL criteria that the tree repository
builds its range reads from.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import Integer, and_
from sqlalchemy.orm import Mapped, mapped_column

from tree_service.core.database.nested_set.bounds import NodeBounds

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement


def _edges(other: NodeBounds | Any) -> tuple[Any, Any]:
    if isinstance(other, NodeBounds):
        return other.left, other.right
    return other.lft, other.rgt


class NestedSetMixin:
    """Mixin for models with ``lft``/``rgt``/``depth`` nested-set columns.

    The bounds are owned by the tree service: callers never assign them.
    Properties on this mixin do NOT query the database; they read the
    values loaded on the instance, which may be stale once another mutation
    has shifted the table. Reload before relying on them after a write.

    Example:
        >>> class Category(Base, IntegerPKMixin, NestedSetMixin):
        ...     __tablename__ = "categories"
        ...     name: Mapped[str] = mapped_column(String(255))
        >>>
        >>> cat.bounds
        NodeBounds(left=3, right=8, depth=2)
        >>> cat.descendant_count
        2
        >>> stmt = select(Category).where(Category.inside(cat.bounds))
    """

    __allow_unmapped__ = True

    lft: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        comment="Nested-set left bound",
    )
    rgt: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        comment="Nested-set right bound",
    )
    depth: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        index=True,
        comment="Distance from the root (0 for the root)",
    )

    @property
    def bounds(self) -> NodeBounds:
        """Snapshot of this node's bounds and depth."""
        return NodeBounds.of(self)

    @property
    def descendant_count(self) -> int:
        """Number of descendants, from the bounds alone."""
        return (self.rgt - self.lft - 1) // 2

    @property
    def is_root(self) -> bool:
        return self.depth == 0

    @property
    def is_leaf(self) -> bool:
        return self.rgt - self.lft == 1

    def is_ancestor_of(self, other: Any) -> bool:
        """True if ``other`` lies strictly inside this node's interval."""
        return self.lft < other.lft and other.rgt < self.rgt

    def is_descendant_of(self, other: Any) -> bool:
        """True if this node lies strictly inside ``other``'s interval."""
        return other.lft < self.lft and self.rgt < other.rgt

    # ------------------------------------------------------------------
    # SQL criteria
    #
    # ``other`` is either a NodeBounds snapshot or another node entity,
    # usually an ``aliased(Model)``, so two rows can be compared inside one
    # statement.
    # ------------------------------------------------------------------

    @classmethod
    def inside(cls, other: NodeBounds | Any) -> ColumnElement[bool]:
        """Rows strictly contained in ``other`` (its descendants)."""
        left, right = _edges(other)
        return and_(cls.lft > left, cls.rgt < right)

    @classmethod
    def enclosing(cls, other: NodeBounds | Any) -> ColumnElement[bool]:
        """Rows strictly containing ``other`` (its ancestors)."""
        left, right = _edges(other)
        return and_(cls.lft < left, cls.rgt > right)

    @classmethod
    def within(cls, left: int, right: int) -> ColumnElement[bool]:
        """Rows whose interval lies in ``[left, right]``, inclusive."""
        return and_(cls.lft >= left, cls.rgt <= right)


__all__ = [
    "NestedSetMixin",
]
