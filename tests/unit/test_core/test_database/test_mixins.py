"""Unit tests for NestedSetMixin helpers.

These work on transient instances; nothing touches a database.
"""

from __future__ import annotations

import pytest
from sqlalchemy.dialects import sqlite
from sqlalchemy.orm import aliased

from tree_service.core.database.nested_set import NodeBounds
from tree_service.features.trees import TreeNode


def node(lft: int, rgt: int, depth: int) -> TreeNode:
    return TreeNode(owner_id=1, lft=lft, rgt=rgt, depth=depth)


def compile_sql(clause) -> str:
    return str(clause.compile(dialect=sqlite.dialect(), compile_kwargs={"literal_binds": True}))


@pytest.mark.unit
class TestNestedSetMixin:
    """Test suite for NestedSetMixin."""

    def test_bounds_snapshot(self):
        assert node(3, 8, 2).bounds == NodeBounds(3, 8, 2)

    def test_descendant_count_and_leaf(self):
        assert node(0, 9, 0).descendant_count == 4
        assert node(4, 5, 2).is_leaf
        assert not node(1, 6, 1).is_leaf

    def test_root(self):
        assert node(0, 1, 0).is_root
        assert not node(1, 2, 1).is_root

    def test_ancestry_is_strict(self):
        parent = node(1, 6, 1)
        child = node(2, 3, 2)
        other = node(7, 8, 1)

        assert parent.is_ancestor_of(child)
        assert child.is_descendant_of(parent)
        assert not parent.is_ancestor_of(parent)
        assert not parent.is_ancestor_of(other)
        assert not other.is_descendant_of(parent)

    def test_inside_criterion(self):
        sql = compile_sql(TreeNode.inside(NodeBounds(1, 6, 1)))

        assert "tree_nodes.lft > 1" in sql
        assert "tree_nodes.rgt < 6" in sql

    def test_enclosing_criterion(self):
        sql = compile_sql(TreeNode.enclosing(NodeBounds(2, 3, 2)))

        assert "tree_nodes.lft < 2" in sql
        assert "tree_nodes.rgt > 3" in sql

    def test_within_is_inclusive(self):
        sql = compile_sql(TreeNode.within(1, 6))

        assert "tree_nodes.lft >= 1" in sql
        assert "tree_nodes.rgt <= 6" in sql

    def test_repr_mentions_bounds(self):
        text = repr(node(1, 6, 1))

        assert "lft=1" in text
        assert "rgt=6" in text

    def test_criteria_compare_against_aliased_row(self):
        other = aliased(TreeNode, name="other")

        inside = compile_sql(TreeNode.inside(other))
        enclosing = compile_sql(TreeNode.enclosing(other))

        assert "tree_nodes.lft > other.lft" in inside
        assert "tree_nodes.rgt < other.rgt" in inside
        assert "tree_nodes.lft < other.lft" in enclosing
        assert "tree_nodes.rgt > other.rgt" in enclosing
