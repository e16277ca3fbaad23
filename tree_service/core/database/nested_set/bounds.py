"""Value objects for nested-set (modified preorder traversal) trees.

A node in a nested set is described by two integer bounds and a depth. The
interval ``[left, right]`` of every descendant lies strictly inside the
interval of each of its ancestors, so ancestry, descendant counts and sibling
order can be answered with range predicates alone.

This module is pure: nothing here touches the database.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from tree_service.core.database.exceptions import InvalidTreeOperationError

if TYPE_CHECKING:
    from typing import Self


class Position(StrEnum):
    """Where a node goes relative to a reference node.

    Values match the position tags used by existing clients.
    """

    FIRST_CHILD = "firstChild"
    LAST_CHILD = "lastChild"
    BEFORE_SIBLING = "beforeSibling"
    AFTER_SIBLING = "afterSibling"

    @property
    def is_child(self) -> bool:
        """True when the new node becomes a child of the reference."""
        return self in (Position.FIRST_CHILD, Position.LAST_CHILD)

    @classmethod
    def parse(cls, value: str | Position) -> Position:
        """Coerce a position tag, rejecting anything outside the enumeration.

        Raises:
            InvalidTreeOperationError: If the tag is not a known position
        """
        if isinstance(value, Position):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidTreeOperationError(
                f"Unknown tree position {value!r}",
                details={"allowed": [p.value for p in cls]},
            ) from None


class Bound(StrEnum):
    """Shiftable bound columns."""

    LEFT = "lft"
    RIGHT = "rgt"


@dataclass(slots=True, frozen=True)
class NodeBounds:
    """Snapshot of a node's position in the nested set.

    Shift thresholds are always computed from a snapshot taken before any
    update runs, never from a live ORM instance that the updates may touch.

    Attributes:
        left: Left bound (``lft``)
        right: Right bound (``rgt``)
        depth: Distance from the synthetic root (0 for the root)

    Example:
        >>> root = NodeBounds(0, 5, 0)
        >>> child = NodeBounds(1, 2, 1)
        >>> root.contains(child)
        True
        >>> root.descendant_count
        2
    """

    left: int
    right: int
    depth: int

    def __post_init__(self) -> None:
        if self.left < 0 or self.right <= self.left or self.depth < 0:
            raise ValueError(
                f"Invalid nested-set bounds: left={self.left}, right={self.right}, depth={self.depth}"
            )

    @classmethod
    def of(cls, node: Any) -> Self:
        """Snapshot anything exposing ``lft``, ``rgt`` and ``depth``."""
        return cls(left=node.lft, right=node.rgt, depth=node.depth)

    @property
    def width(self) -> int:
        """Number of bound slots used by the node and its subtree."""
        return self.right - self.left + 1

    @property
    def descendant_count(self) -> int:
        """Number of descendants, exact by construction."""
        return (self.right - self.left - 1) // 2

    @property
    def is_leaf(self) -> bool:
        return self.right - self.left == 1

    @property
    def is_root(self) -> bool:
        return self.depth == 0

    def contains(self, other: NodeBounds) -> bool:
        """True if ``other`` lies strictly inside this interval."""
        return self.left < other.left and other.right < self.right

    def covers(self, other: NodeBounds) -> bool:
        """True if ``other`` is this node or one of its descendants."""
        return self.left <= other.left and other.right <= self.right


__all__ = [
    "Bound",
    "NodeBounds",
    "Position",
]
