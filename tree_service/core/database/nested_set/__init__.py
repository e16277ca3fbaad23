"""Hierarchical data support using the nested-set encoding.

Every node stores two integer bounds ``(lft, rgt)`` and a ``depth``. The
interval of each descendant lies strictly inside the interval of each of its
ancestors, which turns tree questions into range predicates:

    - ancestors:   lft < node.lft AND rgt > node.rgt
    - descendants: lft > node.lft AND rgt < node.rgt
    - descendant count: (node.rgt - node.lft - 1) / 2

The price is paid on writes: inserting, deleting or moving a node shifts the
bounds of every row to its right. This package keeps that arithmetic pure.

Components:
    - Position, Bound, NodeBounds: value objects
    - plan_insert, plan_delete, plan_move: mutation planners returning the
      ordered range-update steps to run in one transaction
    - NestedSetMixin: column declarations and helpers for mapped models

Example:
    >>> from tree_service.core.database.nested_set import NodeBounds, Position, plan_insert
    >>>
    >>> root = NodeBounds(0, 1, 0)
    >>> plan = plan_insert(root, Position.LAST_CHILD)
    >>> plan.bounds
    NodeBounds(left=1, right=2, depth=1)
"""

from tree_service.core.database.nested_set.bounds import (
    Bound,
    NodeBounds,
    Position,
)
from tree_service.core.database.nested_set.mixins import (
    NestedSetMixin,
)
from tree_service.core.database.nested_set.plans import (
    DeleteNode,
    DeleteSubtree,
    InsertPlan,
    MutationPlan,
    PlanStep,
    ShiftBound,
    ShiftSubtree,
    close_gap,
    gap_point,
    open_gap,
    plan_delete,
    plan_insert,
    plan_move,
)

__all__ = [
    "Bound",
    "DeleteNode",
    "DeleteSubtree",
    "InsertPlan",
    "MutationPlan",
    "NestedSetMixin",
    "NodeBounds",
    "PlanStep",
    "Position",
    "ShiftBound",
    "ShiftSubtree",
    "close_gap",
    "gap_point",
    "open_gap",
    "plan_delete",
    "plan_insert",
    "plan_move",
]
