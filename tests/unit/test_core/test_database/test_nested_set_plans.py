"""Unit tests for nested-set mutation planning.

Plans are checked both by their steps and by replaying them against an
in-memory list of bounds, which is what the repository does with SQL.
"""

from __future__ import annotations

import pytest

from tree_service.core.database.exceptions import InvalidTreeOperationError
from tree_service.core.database.nested_set import (
    Bound,
    DeleteNode,
    DeleteSubtree,
    NodeBounds,
    Position,
    ShiftBound,
    ShiftSubtree,
    close_gap,
    gap_point,
    open_gap,
    plan_delete,
    plan_insert,
    plan_move,
)


def replay(rows: dict[str, list[int]], steps) -> dict[str, list[int]]:
    """Apply plan steps to ``{name: [lft, rgt, depth]}`` the way the SQL does."""
    rows = {name: list(values) for name, values in rows.items()}
    for step in steps:
        match step:
            case ShiftBound(bound, threshold, delta):
                index = 0 if bound is Bound.LEFT else 1
                for values in rows.values():
                    if values[index] >= threshold:
                        values[index] += delta
            case ShiftSubtree(left, right, offset, depth_delta):
                for values in rows.values():
                    if values[0] >= left and values[1] <= right:
                        values[0] += offset
                        values[1] += offset
                        values[2] += depth_delta
            case DeleteSubtree(left, right):
                rows = {n: v for n, v in rows.items() if not (v[0] >= left and v[1] <= right)}
            case DeleteNode(left):
                rows = {n: v for n, v in rows.items() if v[0] != left}
    return rows


def bounds(rows, name) -> NodeBounds:
    return NodeBounds(*rows[name])


# root
# ├── a
# │   ├── a1
# │   └── a2
# └── b
TREE = {
    "root": [0, 9, 0],
    "a": [1, 6, 1],
    "a1": [2, 3, 2],
    "a2": [4, 5, 2],
    "b": [7, 8, 1],
}


@pytest.mark.unit
class TestGapPrimitives:
    """Test suite for open_gap / close_gap."""

    def test_open_gap_shifts_right_bound_first(self):
        assert open_gap(3, 2) == (
            ShiftBound(Bound.RIGHT, 3, 2),
            ShiftBound(Bound.LEFT, 3, 2),
        )

    def test_close_gap_thresholds_are_exclusive(self):
        assert close_gap(5, 4) == (
            ShiftBound(Bound.LEFT, 6, -4),
            ShiftBound(Bound.RIGHT, 6, -4),
        )


@pytest.mark.unit
class TestGapPoint:
    """Test suite for gap_point."""

    @pytest.mark.parametrize(
        ("position", "expected"),
        [
            (Position.FIRST_CHILD, (2, 2)),
            (Position.LAST_CHILD, (6, 2)),
            (Position.BEFORE_SIBLING, (1, 1)),
            (Position.AFTER_SIBLING, (7, 1)),
        ],
    )
    def test_positions(self, position, expected):
        assert gap_point(bounds(TREE, "a"), position) == expected

    @pytest.mark.parametrize("position", [Position.BEFORE_SIBLING, Position.AFTER_SIBLING])
    def test_root_has_no_siblings(self, position):
        with pytest.raises(InvalidTreeOperationError, match="cannot have siblings"):
            gap_point(bounds(TREE, "root"), position)


@pytest.mark.unit
class TestPlanInsert:
    """Test suite for plan_insert."""

    def test_first_child_of_single_root(self):
        plan = plan_insert(NodeBounds(0, 1, 0), Position.FIRST_CHILD)

        assert plan.bounds == NodeBounds(1, 2, 1)
        assert replay({"root": [0, 1, 0]}, plan.steps) == {"root": [0, 3, 0]}

    def test_last_child_goes_after_existing_children(self):
        plan = plan_insert(bounds(TREE, "a"), "lastChild")
        rows = replay(TREE, plan.steps)

        assert plan.bounds == NodeBounds(6, 7, 2)
        assert rows["a"] == [1, 8, 1]
        assert rows["a2"] == [4, 5, 2]
        assert rows["b"] == [9, 10, 1]
        assert rows["root"] == [0, 11, 0]

    def test_first_child_shifts_existing_children(self):
        plan = plan_insert(bounds(TREE, "a"), Position.FIRST_CHILD)
        rows = replay(TREE, plan.steps)

        assert plan.bounds == NodeBounds(2, 3, 2)
        assert rows["a1"] == [4, 5, 2]
        assert rows["a"] == [1, 8, 1]

    def test_before_sibling_takes_reference_slot(self):
        plan = plan_insert(bounds(TREE, "b"), Position.BEFORE_SIBLING)
        rows = replay(TREE, plan.steps)

        assert plan.bounds == NodeBounds(7, 8, 1)
        assert rows["b"] == [9, 10, 1]
        assert rows["a"] == [1, 6, 1]

    def test_after_sibling(self):
        plan = plan_insert(bounds(TREE, "a1"), Position.AFTER_SIBLING)
        rows = replay(TREE, plan.steps)

        assert plan.bounds == NodeBounds(4, 5, 2)
        assert rows["a1"] == [2, 3, 2]
        assert rows["a2"] == [6, 7, 2]

    def test_default_position_is_first_child(self):
        assert plan_insert(bounds(TREE, "b")).bounds == NodeBounds(8, 9, 2)

    def test_sibling_of_root_rejected(self):
        with pytest.raises(InvalidTreeOperationError):
            plan_insert(bounds(TREE, "root"), Position.AFTER_SIBLING)

    def test_unknown_position_rejected(self):
        with pytest.raises(InvalidTreeOperationError, match="Unknown tree position"):
            plan_insert(bounds(TREE, "a"), "nextTo")


@pytest.mark.unit
class TestPlanDelete:
    """Test suite for plan_delete."""

    def test_cascade_removes_subtree_and_closes_gap(self):
        plan = plan_delete(bounds(TREE, "a"))

        assert plan.steps[0] == DeleteSubtree(1, 6)
        assert replay(TREE, plan.steps) == {"root": [0, 3, 0], "b": [1, 2, 1]}

    def test_cascade_leaf(self):
        rows = replay(TREE, plan_delete(bounds(TREE, "a1")).steps)

        assert rows == {
            "root": [0, 7, 0],
            "a": [1, 4, 1],
            "a2": [2, 3, 2],
            "b": [5, 6, 1],
        }

    def test_non_cascade_promotes_children(self):
        plan = plan_delete(bounds(TREE, "a"), cascade=False)

        assert plan.steps[0] == DeleteNode(1)
        assert plan.depth_delta == -1
        assert replay(TREE, plan.steps) == {
            "root": [0, 7, 0],
            "a1": [1, 2, 1],
            "a2": [3, 4, 1],
            "b": [5, 6, 1],
        }

    def test_non_cascade_leaf_has_no_subtree_shift(self):
        plan = plan_delete(bounds(TREE, "b"), cascade=False)

        assert not any(isinstance(step, ShiftSubtree) for step in plan.steps)
        assert replay(TREE, plan.steps)["root"] == [0, 7, 0]

    @pytest.mark.parametrize("cascade", [True, False])
    def test_root_rejected(self, cascade):
        with pytest.raises(InvalidTreeOperationError, match="root node cannot be deleted"):
            plan_delete(bounds(TREE, "root"), cascade=cascade)


@pytest.mark.unit
class TestPlanMove:
    """Test suite for plan_move."""

    def test_move_subtree_to_last_child_of_later_node(self):
        plan = plan_move(bounds(TREE, "a"), bounds(TREE, "b"), Position.LAST_CHILD)
        rows = replay(TREE, plan.steps)

        assert plan.depth_delta == 1
        assert rows == {
            "root": [0, 9, 0],
            "b": [1, 8, 1],
            "a": [2, 7, 2],
            "a1": [3, 4, 3],
            "a2": [5, 6, 3],
        }

    def test_move_leaf_to_first_child_of_earlier_node(self):
        plan = plan_move(bounds(TREE, "b"), bounds(TREE, "a"), "firstChild")
        rows = replay(TREE, plan.steps)

        assert rows == {
            "root": [0, 9, 0],
            "a": [1, 8, 1],
            "b": [2, 3, 2],
            "a1": [4, 5, 2],
            "a2": [6, 7, 2],
        }

    def test_move_up_a_level_before_parent(self):
        plan = plan_move(bounds(TREE, "a2"), bounds(TREE, "a"), Position.BEFORE_SIBLING)
        rows = replay(TREE, plan.steps)

        assert plan.depth_delta == -1
        assert rows["a2"] == [1, 2, 1]
        assert rows["a"] == [3, 6, 1]
        assert rows["a1"] == [4, 5, 2]

    def test_move_after_sibling(self):
        plan = plan_move(bounds(TREE, "a1"), bounds(TREE, "a2"), Position.AFTER_SIBLING)
        rows = replay(TREE, plan.steps)

        assert rows["a2"] == [2, 3, 2]
        assert rows["a1"] == [4, 5, 2]

    @pytest.mark.parametrize(
        ("node", "target", "position"),
        [
            ("a1", "a", Position.FIRST_CHILD),
            ("a2", "a", Position.LAST_CHILD),
            ("a2", "a1", Position.AFTER_SIBLING),
            ("a1", "a2", Position.BEFORE_SIBLING),
        ],
    )
    def test_move_in_place_is_noop(self, node, target, position):
        plan = plan_move(bounds(TREE, node), bounds(TREE, target), position)

        assert plan.is_noop

    @pytest.mark.parametrize("target", ["a", "a1", "a2"])
    def test_move_into_own_subtree_rejected(self, target):
        with pytest.raises(InvalidTreeOperationError, match="into its own subtree"):
            plan_move(bounds(TREE, "a"), bounds(TREE, target), Position.LAST_CHILD)

    def test_move_root_rejected(self):
        with pytest.raises(InvalidTreeOperationError):
            plan_move(bounds(TREE, "root"), bounds(TREE, "b"))
