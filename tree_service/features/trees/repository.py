"""Repository for the trees feature.

Range reads and range writes over the ``tree_nodes`` table. Writes are
bulk ORM statements keyed on bound predicates; none of them loads rows.
Callers (``TreeService``) are responsible for running them inside one
transaction after taking ``lock()``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.orm import aliased

from tree_service.core.database.exceptions import NodeNotFoundError
from tree_service.core.database.nested_set import (
    Bound,
    DeleteNode,
    DeleteSubtree,
    NodeBounds,
    ShiftBound,
    ShiftSubtree,
)
from tree_service.core.database.repository import BaseRepository
from tree_service.features.trees.models import TreeNode

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy import Select
    from sqlalchemy.ext.asyncio import AsyncSession

    from tree_service.core.database.nested_set import PlanStep

# Loaded instances of shifted rows are refreshed from the database
_SYNC = {"synchronize_session": "fetch"}


class TreeNodeRepository(BaseRepository[TreeNode]):
    """Repository for TreeNode model.

    Inherits from BaseRepository:
        - get_or_raise(session, id) -> TreeNode (raises NodeNotFoundError)
        - create(session, instance) -> TreeNode

    No row-level delete is provided: removing a row without the
    matching gap-closing shifts breaks the tree. Deletes go through
    ``TreeService.delete``, which applies a planned batch.
    """

    not_found_error = NodeNotFoundError

    def __init__(self) -> None:
        """Initialize with TreeNode model."""
        super().__init__(TreeNode)

    # ------------------------------------------------------------------
    # Range reads
    # ------------------------------------------------------------------

    async def select_range(
        self,
        session: AsyncSession,
        *criteria: Any,
        order_by: Iterable[Any] | None = None,
        limit: int | None = None,
    ) -> Sequence[TreeNode]:
        """Select nodes matching every criterion, ordered by ``lft`` unless told otherwise."""
        stmt = select(TreeNode).where(*criteria)
        stmt = stmt.order_by(*(order_by if order_by is not None else (TreeNode.lft.asc(),)))
        if limit is not None:
            stmt = stmt.limit(limit)
        return await self._fetch(session, stmt)

    async def _fetch(self, session: AsyncSession, stmt: Select[Any]) -> Sequence[TreeNode]:
        result = await session.execute(stmt.execution_options(populate_existing=True))
        return result.scalars().all()

    async def get_current(
        self,
        session: AsyncSession,
        node_id: int,
        *,
        error: type[NodeNotFoundError] = NodeNotFoundError,
    ) -> TreeNode:
        """Load a node with its bounds as currently stored.

        Unlike a plain ``get``, an instance already in the identity map is
        overwritten, so the result is safe to snapshot under the lock.

        Raises:
            NodeNotFoundError: ``error`` if the id does not exist
        """
        return await self.get_or_raise(session, node_id, populate_existing=True, error=error)

    async def get_root(self, session: AsyncSession) -> TreeNode | None:
        """Return the depth-0 node with the lowest left bound, if any."""
        nodes = await self.select_range(session, TreeNode.depth == 0, limit=1)
        root = nodes[0] if nodes else None
        self._lazy.debug(lambda: f"db.get_root -> {root!r}")
        return root

    async def get_or_create_root(self, session: AsyncSession, owner_id: int) -> TreeNode:
        """Return the root, creating it at ``(0, 1, 0)`` on an empty table.

        Must run under ``lock()`` so two writers cannot both create a root.
        """
        root = await self.get_root(session)
        if root is not None:
            return root

        root = await self.create(
            session,
            TreeNode(owner_id=owner_id, lft=0, rgt=1, depth=0),
        )
        self._logger.info(
            "Tree root created",
            extra={"node_id": root.id, "owner_id": owner_id, "operation": "db.create_root"},
        )
        return root

    # Each read below is a single statement that returns the node's own row
    # together with the related rows, so every predicate is evaluated against
    # one snapshot and an empty result means the node does not exist.

    async def lineage(
        self,
        session: AsyncSession,
        node_id: int,
        *,
        limit: int | None = None,
    ) -> Sequence[TreeNode]:
        """The node and every node containing it, nearest first."""
        node = aliased(TreeNode, name="node")
        stmt = (
            select(TreeNode)
            .join(node, or_(TreeNode.id == node.id, TreeNode.enclosing(node)))
            .where(node.id == node_id)
            .order_by(TreeNode.depth.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        rows = await self._fetch(session, stmt)
        self._lazy.debug(lambda: f"db.lineage({node_id}) -> {len(rows)} rows")
        return rows

    async def subtree(self, session: AsyncSession, node_id: int) -> Sequence[TreeNode]:
        """The node and all of its descendants, in preorder."""
        node = aliased(TreeNode, name="node")
        stmt = (
            select(TreeNode)
            .join(node, or_(TreeNode.id == node.id, TreeNode.inside(node)))
            .where(node.id == node_id)
            .order_by(TreeNode.lft)
        )
        rows = await self._fetch(session, stmt)
        self._lazy.debug(lambda: f"db.subtree({node_id}) -> {len(rows)} rows")
        return rows

    async def family(self, session: AsyncSession, node_id: int) -> Sequence[TreeNode]:
        """The node followed by its direct children in sibling order."""
        node = aliased(TreeNode, name="node")
        stmt = (
            select(TreeNode)
            .join(
                node,
                or_(
                    TreeNode.id == node.id,
                    and_(TreeNode.inside(node), TreeNode.depth == node.depth + 1),
                ),
            )
            .where(node.id == node_id)
            .order_by(TreeNode.lft)
        )
        return await self._fetch(session, stmt)

    async def sibling_group(self, session: AsyncSession, node_id: int) -> Sequence[TreeNode]:
        """The node and the other children of its parent, in sibling order.

        The parent is found by an outer join, so for the root only its own
        row comes back.
        """
        node = aliased(TreeNode, name="node")
        parent = aliased(TreeNode, name="parent")
        stmt = (
            select(TreeNode)
            .select_from(node)
            .outerjoin(
                parent,
                and_(
                    parent.lft < node.lft,
                    parent.rgt > node.rgt,
                    parent.depth == node.depth - 1,
                ),
            )
            .join(
                TreeNode,
                or_(
                    TreeNode.id == node.id,
                    and_(TreeNode.inside(parent), TreeNode.depth == node.depth),
                ),
            )
            .where(node.id == node_id)
            .order_by(TreeNode.lft)
        )
        return await self._fetch(session, stmt)

    async def count(self, session: AsyncSession) -> int:
        result = await session.execute(select(func.count()).select_from(TreeNode))
        return result.scalar_one()

    async def max_depth_within(self, session: AsyncSession, bounds: NodeBounds) -> int:
        """Depth of the deepest node in the subtree rooted at ``bounds``."""
        stmt = select(func.max(TreeNode.depth)).where(TreeNode.within(bounds.left, bounds.right))
        result = await session.execute(stmt)
        return result.scalar_one_or_none() or bounds.depth

    # ------------------------------------------------------------------
    # Range writes
    # ------------------------------------------------------------------

    async def shift_bound(
        self,
        session: AsyncSession,
        bound: Bound,
        threshold: int,
        delta: int,
    ) -> int:
        """Add ``delta`` to ``bound`` on every row where ``bound >= threshold``."""
        column = getattr(TreeNode, bound.value)
        stmt = (
            update(TreeNode)
            .where(column >= threshold)
            .values({column: column + delta})
            .execution_options(**_SYNC)
        )
        result = await session.execute(stmt)
        self._lazy.debug(
            lambda: f"db.shift_bound: {bound.value} >= {threshold} by {delta:+d} -> {result.rowcount} rows"
        )
        return result.rowcount

    async def shift_subtree(
        self,
        session: AsyncSession,
        left: int,
        right: int,
        offset: int,
        depth_delta: int = 0,
    ) -> int:
        """Translate every row inside ``[left, right]`` by ``offset`` and ``depth_delta``."""
        stmt = (
            update(TreeNode)
            .where(TreeNode.within(left, right))
            .values(
                lft=TreeNode.lft + offset,
                rgt=TreeNode.rgt + offset,
                depth=TreeNode.depth + depth_delta,
            )
            .execution_options(**_SYNC)
        )
        result = await session.execute(stmt)
        self._lazy.debug(
            lambda: f"db.shift_subtree: [{left}, {right}] by {offset:+d}/depth {depth_delta:+d} -> {result.rowcount} rows"
        )
        return result.rowcount

    async def delete_subtree(self, session: AsyncSession, left: int, right: int) -> int:
        """Delete every row inside ``[left, right]``."""
        stmt = delete(TreeNode).where(TreeNode.within(left, right)).execution_options(**_SYNC)
        result = await session.execute(stmt)
        self._lazy.debug(lambda: f"db.delete_subtree: [{left}, {right}] -> {result.rowcount} rows")
        return result.rowcount

    async def delete_node(self, session: AsyncSession, left: int) -> int:
        """Delete the single row whose left bound is ``left``."""
        stmt = delete(TreeNode).where(TreeNode.lft == left).execution_options(**_SYNC)
        result = await session.execute(stmt)
        self._lazy.debug(lambda: f"db.delete_node: lft={left} -> {result.rowcount} rows")
        return result.rowcount

    async def apply(self, session: AsyncSession, steps: Iterable[PlanStep]) -> int:
        """Execute plan steps in order.

        Returns:
            Number of rows deleted by the steps
        """
        deleted = 0
        for step in steps:
            match step:
                case ShiftBound(bound, threshold, delta):
                    await self.shift_bound(session, bound, threshold, delta)
                case ShiftSubtree(left, right, offset, depth_delta):
                    await self.shift_subtree(session, left, right, offset, depth_delta)
                case DeleteSubtree(left, right):
                    deleted += await self.delete_subtree(session, left, right)
                case DeleteNode(left):
                    deleted += await self.delete_node(session, left)
                case _:
                    raise TypeError(f"Unknown plan step {step!r}")
        return deleted

    async def lock(self, session: AsyncSession, lock_id: int) -> None:
        """Take the store-wide mutation lock for the current transaction.

        On PostgreSQL this is ``pg_advisory_xact_lock``, released at commit or
        rollback. SQLite serializes writers on its own database lock, so
        nothing is issued there.
        """
        dialect = session.get_bind().dialect.name
        if dialect != "postgresql":
            self._lazy.debug(lambda: f"db.lock: skipped on {dialect}")
            return
        await session.execute(select(func.pg_advisory_xact_lock(lock_id)))
        self._lazy.debug(lambda: f"db.lock: pg_advisory_xact_lock({lock_id}) acquired")


_tree_node_repository: TreeNodeRepository | None = None


def get_tree_node_repository() -> TreeNodeRepository:
    """Get the shared TreeNodeRepository instance.

    Usage:
        repo = get_tree_node_repository()
        node = await repo.get_or_raise(session, node_id)
    """
    global _tree_node_repository
    if _tree_node_repository is None:
        _tree_node_repository = TreeNodeRepository()
    return _tree_node_repository


__all__ = [
    "TreeNodeRepository",
    "get_tree_node_repository",
]
