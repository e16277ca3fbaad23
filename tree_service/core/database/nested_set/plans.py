"""Mutation planning for nested-set trees.

Every mutation of a nested set is a batch of range updates that has to run
in a precise order inside one transaction. The planners in this module turn
a request (insert, delete, move) into that batch without touching the
database, so the arithmetic can be tested in isolation and the repository
only has to execute the steps it is handed.

All thresholds are computed from ``NodeBounds`` snapshots taken before the
first step runs.

Steps:
    - ShiftBound: ``bound += delta`` for every row where ``bound >= threshold``
    - ShiftSubtree: move every row inside ``[left, right]`` by ``offset``
      and change its depth by ``depth_delta``
    - DeleteSubtree: delete every row inside ``[left, right]``
    - DeleteNode: delete the single row whose left bound is ``left``

Example:
    >>> root = NodeBounds(0, 1, 0)
    >>> plan = plan_insert(root, Position.FIRST_CHILD)
    >>> plan.bounds
    NodeBounds(left=1, right=2, depth=1)
    >>> plan.steps
    (ShiftBound(bound=<Bound.RIGHT: 'rgt'>, threshold=1, delta=2), ShiftBound(bound=<Bound.LEFT: 'lft'>, threshold=1, delta=2))
"""

from __future__ import annotations

from dataclasses import dataclass

from tree_service.core.database.exceptions import InvalidTreeOperationError
from tree_service.core.database.nested_set.bounds import Bound, NodeBounds, Position

# ============================================================================
# Plan steps
# ============================================================================


@dataclass(slots=True, frozen=True)
class ShiftBound:
    """Add ``delta`` to ``bound`` on every row where ``bound >= threshold``."""

    bound: Bound
    threshold: int
    delta: int


@dataclass(slots=True, frozen=True)
class ShiftSubtree:
    """Translate every row with ``lft >= left`` and ``rgt <= right``."""

    left: int
    right: int
    offset: int
    depth_delta: int = 0


@dataclass(slots=True, frozen=True)
class DeleteSubtree:
    """Delete every row with ``lft >= left`` and ``rgt <= right``."""

    left: int
    right: int


@dataclass(slots=True, frozen=True)
class DeleteNode:
    """Delete the single row whose left bound equals ``left``."""

    left: int


type PlanStep = ShiftBound | ShiftSubtree | DeleteSubtree | DeleteNode


@dataclass(slots=True, frozen=True)
class InsertPlan:
    """Steps that open a gap plus the bounds the new node takes in it."""

    bounds: NodeBounds
    steps: tuple[PlanStep, ...]


@dataclass(slots=True, frozen=True)
class MutationPlan:
    """Ordered steps of a delete or move."""

    steps: tuple[PlanStep, ...]
    depth_delta: int = 0

    @property
    def is_noop(self) -> bool:
        return not self.steps


# ============================================================================
# Shared range-shift primitives
# ============================================================================


def open_gap(at: int, size: int) -> tuple[ShiftBound, ShiftBound]:
    """Shift every bound ``>= at`` right by ``size``.

    Afterwards the slots ``at .. at + size - 1`` are free. Right bounds move
    first so no row is ever seen with ``lft >= rgt``.
    """
    return (
        ShiftBound(Bound.RIGHT, at, size),
        ShiftBound(Bound.LEFT, at, size),
    )


def close_gap(after: int, size: int) -> tuple[ShiftBound, ShiftBound]:
    """Shift every bound ``> after`` left by ``size``.

    Left bounds move first, mirroring open_gap.
    """
    return (
        ShiftBound(Bound.LEFT, after + 1, -size),
        ShiftBound(Bound.RIGHT, after + 1, -size),
    )


def gap_point(reference: NodeBounds, position: Position) -> tuple[int, int]:
    """Return the bound slot a node placed at ``position`` starts at, and its depth.

    Args:
        reference: Node the position is relative to
        position: Placement relative to ``reference``

    Returns:
        Tuple of (left bound of the placed node, depth of the placed node)

    Raises:
        InvalidTreeOperationError: For a sibling position relative to the root
    """
    match position:
        case Position.FIRST_CHILD:
            return reference.left + 1, reference.depth + 1
        case Position.LAST_CHILD:
            return reference.right, reference.depth + 1
        case Position.BEFORE_SIBLING | Position.AFTER_SIBLING if reference.is_root:
            raise InvalidTreeOperationError(
                "The root node cannot have siblings",
                details={"position": position.value},
            )
        case Position.BEFORE_SIBLING:
            return reference.left, reference.depth
        case Position.AFTER_SIBLING:
            return reference.right + 1, reference.depth
    raise InvalidTreeOperationError(f"Unknown tree position {position!r}")


# ============================================================================
# Planners
# ============================================================================


def plan_insert(reference: NodeBounds, position: Position | str = Position.FIRST_CHILD) -> InsertPlan:
    """Plan the insertion of a leaf relative to ``reference``.

    A leaf needs two slots, so every insertion opens a gap of width 2 at the
    gap point and puts the new node's bounds in it.

    Args:
        reference: Snapshot of the reference node
        position: Placement relative to the reference

    Returns:
        InsertPlan with the new node's bounds and the shifts to run first
    """
    position = Position.parse(position)
    left, depth = gap_point(reference, position)
    return InsertPlan(
        bounds=NodeBounds(left, left + 1, depth),
        steps=open_gap(left, 2),
    )


def plan_delete(node: NodeBounds, *, cascade: bool = True) -> MutationPlan:
    """Plan the removal of a node.

    With ``cascade`` the whole subtree is removed and the hole it leaves is
    closed in one step. Without it only the node's row goes; its
    descendants move up one level and into the slot its left bound freed.

    Raises:
        InvalidTreeOperationError: When asked to delete the root
    """
    if node.is_root:
        raise InvalidTreeOperationError(
            "The root node cannot be deleted",
            details={"cascade": cascade},
        )

    if cascade:
        # Delete before closing the gap: once rows to the right slide left
        # they fall inside [left, right] and would match the delete.
        return MutationPlan(
            steps=(
                DeleteSubtree(node.left, node.right),
                *close_gap(node.right, node.width),
            ),
        )

    steps: list[PlanStep] = [DeleteNode(node.left)]
    if not node.is_leaf:
        steps.append(ShiftSubtree(node.left + 1, node.right - 1, offset=-1, depth_delta=-1))
    steps.extend(close_gap(node.right, 2))
    return MutationPlan(steps=tuple(steps), depth_delta=-1)


def plan_move(
    node: NodeBounds,
    target: NodeBounds,
    position: Position | str = Position.FIRST_CHILD,
) -> MutationPlan:
    """Plan relocating ``node`` and its subtree relative to ``target``.

    The subtree keeps its internal shape. The move runs in three steps:

    1. open a gap as wide as the subtree at the destination
    2. translate the subtree into the gap, adjusting depth
    3. close the hole the subtree left behind

    Moving a node onto the spot it already occupies yields an empty plan.

    Raises:
        InvalidTreeOperationError: If ``target`` is ``node`` or one of its
            descendants, or for a sibling position relative to the root
    """
    position = Position.parse(position)
    if node.covers(target):
        raise InvalidTreeOperationError(
            "cannot move a node into its own subtree",
            details={"node_left": node.left, "target_left": target.left},
        )

    destination, new_depth = gap_point(target, position)
    depth_delta = new_depth - node.depth
    if destination in (node.left, node.right + 1):
        return MutationPlan(steps=())

    width = node.width
    steps: list[PlanStep] = list(open_gap(destination, width))

    if destination <= node.left:
        source_left, source_right = node.left + width, node.right + width
    else:
        source_left, source_right = node.left, node.right

    steps.append(
        ShiftSubtree(
            source_left,
            source_right,
            offset=destination - source_left,
            depth_delta=depth_delta,
        )
    )
    steps.extend(close_gap(source_right, width))
    return MutationPlan(steps=tuple(steps), depth_delta=depth_delta)


__all__ = [
    "DeleteNode",
    "DeleteSubtree",
    "InsertPlan",
    "MutationPlan",
    "PlanStep",
    "ShiftBound",
    "ShiftSubtree",
    "close_gap",
    "gap_point",
    "open_gap",
    "plan_delete",
    "plan_insert",
    "plan_move",
]
