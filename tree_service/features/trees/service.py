"""Service layer for the trees feature.

``TreeService`` answers structural queries with range predicates and applies
insert, delete and move as planned batches of range updates. A mutation
reads its reference nodes, plans and writes inside one transaction that
starts with the store-wide lock, so thresholds are never computed from
bounds another writer is about to shift.
"""

from __future__ import annotations

import logging
from bisect import bisect_right
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import SQLAlchemyError

from tree_service.core.database.exceptions import (
    InvalidTreeOperationError,
    NodeNotFoundError,
    ParentNotFoundError,
    RepositoryError,
    StoreFailureError,
)
from tree_service.core.database.nested_set import (
    Position,
    plan_delete,
    plan_insert,
    plan_move,
)
from tree_service.core.settings import get_tree_settings
from tree_service.features.trees.models import TreeNode
from tree_service.features.trees.repository import (
    TreeNodeRepository,
    get_tree_node_repository,
)
from tree_service.features.trees.schemas import TreeNodeCreate, TreeNodeRead, TreeProblems
from tree_service.infra.logging import get_lazy_logger, log_context

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from tree_service.core.settings import TreeSettings

type NodeRef = TreeNode | int

# Standard logger for INFO/WARNING/ERROR
logger = logging.getLogger(__name__)
# Lazy logger for DEBUG (zero overhead when DEBUG disabled)
lazy_logger = get_lazy_logger(__name__)


def _node_id(ref: NodeRef | None) -> int | None:
    """Primary key of a node reference without touching expired attributes."""
    if ref is None or not isinstance(ref, TreeNode):
        return ref
    identity = sa_inspect(ref).identity
    if identity is None:
        raise InvalidTreeOperationError("TreeNode has not been persisted")
    return identity[0]


def _split(rows: Sequence[TreeNode], node_id: int) -> tuple[TreeNode, list[TreeNode]]:
    """Separate ``node_id``'s own row from the related rows read with it.

    Raises:
        NodeNotFoundError: If the node's row is missing
    """
    current = next((row for row in rows if row.id == node_id), None)
    if current is None:
        raise NodeNotFoundError("TreeNode", {"id": node_id})
    return current, [row for row in rows if row is not current]


class TreeService:
    """Nested-set tree operations.

    Nodes may be passed as loaded ``TreeNode`` instances or as integer ids;
    either way the service re-reads the stored bounds before using them.

    Transactions: each mutation runs in a SAVEPOINT. With ``autocommit``
    (the default) the service then commits the session; without it the
    caller owns the outer transaction and the lock is held until the caller
    commits.
    """

    def __init__(
        self,
        session: AsyncSession,
        repo: TreeNodeRepository | None = None,
        settings: TreeSettings | None = None,
        *,
        autocommit: bool = True,
    ) -> None:
        """Initialize the tree service.

        Args:
            session: Database session for operations
            repo: Tree node repository (optional, uses default if not provided)
            settings: Tree settings (optional, loaded from the environment)
            autocommit: Commit the session after each successful mutation
        """
        self._session = session
        self._repo = repo or get_tree_node_repository()
        self._settings = settings or get_tree_settings()
        self._autocommit = autocommit

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def resolve(self, node: NodeRef) -> TreeNode:
        """Return the stored state of ``node``.

        Raises:
            NodeNotFoundError: If the node does not exist
        """
        return await self._load(node)

    async def get_root(self) -> TreeNode:
        """Return the forest root, creating it on first access."""
        root = await self._repo.get_root(self._session)
        if root is not None:
            return root

        async with self._mutation("tree.create_root"):
            root = await self._repo.get_or_create_root(self._session, self._settings.root_owner_id)
        return root

    async def parent(self, node: NodeRef) -> TreeNode | None:
        """Return the parent of ``node``, or None for the root."""
        node_id = _node_id(node)
        _, ancestors = _split(await self._repo.lineage(self._session, node_id, limit=2), node_id)
        return ancestors[0] if ancestors else None

    async def ancestors(self, node: NodeRef) -> Sequence[TreeNode]:
        """Return all ancestors of ``node``, nearest first."""
        node_id = _node_id(node)
        _, ancestors = _split(await self._repo.lineage(self._session, node_id), node_id)
        return ancestors

    async def descendants(self, node: NodeRef) -> Sequence[TreeNode]:
        """Return all descendants of ``node`` in preorder."""
        node_id = _node_id(node)
        _, descendants = _split(await self._repo.subtree(self._session, node_id), node_id)
        return descendants

    async def children(self, node: NodeRef) -> Sequence[TreeNode]:
        node_id = _node_id(node)
        _, children = _split(await self._repo.family(self._session, node_id), node_id)
        return children

    async def siblings(self, node: NodeRef) -> Sequence[TreeNode]:
        """Return the children of ``node``'s parent, ``node`` included.

        The root has no siblings.
        """
        node_id = _node_id(node)
        rows = await self._repo.sibling_group(self._session, node_id)
        current, _ = _split(rows, node_id)
        return [] if current.is_root else list(rows)

    async def child_count(self, node: NodeRef) -> int:
        """Number of descendants of ``node``, computed from its bounds alone."""
        current = await self._load(node)
        return current.bounds.descendant_count

    async def get_tree(self, node: NodeRef | None = None) -> TreeNodeRead:
        """Build the nested subtree rooted at ``node`` (default the root).

        One preorder read of the subtree; a stack of open ancestors
        attaches every row to the nearest one still enclosing it.
        """
        top_id = _node_id(await self.get_root() if node is None else node)
        top, rows = _split(await self._repo.subtree(self._session, top_id), top_id)

        tree = TreeNodeRead.model_validate(top)
        stack = [tree]
        for row in rows:
            item = TreeNodeRead.model_validate(row)
            while stack[-1].rgt < item.lft:
                stack.pop()
            stack[-1].children.append(item)
            stack.append(item)

        lazy_logger.debug(lambda: f"service.get_tree({top.id}) -> {len(rows)} descendants")
        return tree

    async def check_integrity(self) -> TreeProblems:
        """Scan the whole table for nested-set corruption.

        Read-only; nothing is repaired.
        """
        rows = await self._repo.select_range(self._session)
        problems = TreeProblems()

        seen_bounds: set[int] = set()
        valid: list[TreeNode] = []
        for row in rows:
            if row.lft < 0 or row.rgt <= row.lft or row.depth < 0:
                problems.bad_bounds.append(row.id)
                continue
            if row.lft in seen_bounds or row.rgt in seen_bounds:
                problems.duplicate_bounds.append(row.id)
            seen_bounds.update((row.lft, row.rgt))
            valid.append(row)

        lefts = [row.lft for row in valid]
        stack: list[TreeNode] = []
        root_seen = False
        for index, row in enumerate(valid):
            while stack and stack[-1].rgt < row.lft:
                stack.pop()

            if stack:
                if stack[-1].rgt < row.rgt:
                    problems.overlapping.append(row.id)
                if row.depth != stack[-1].depth + 1:
                    problems.wrong_depth.append(row.id)
            else:
                if root_seen:
                    problems.multiple_roots.append(row.id)
                elif row.depth != 0:
                    problems.wrong_depth.append(row.id)
                root_seen = True

            end = bisect_right(lefts, row.rgt, lo=index + 1)
            inside = sum(1 for other in valid[index + 1 : end] if other.rgt < row.rgt)
            if (row.rgt - row.lft) % 2 == 0 or inside != (row.rgt - row.lft - 1) // 2:
                problems.wrong_child_count.append(row.id)

            stack.append(row)

        if problems.is_healthy:
            lazy_logger.debug(lambda: f"service.check_integrity -> {len(rows)} nodes, healthy")
        else:
            logger.warning(
                "Tree integrity problems found",
                extra={"operation": "tree.check_integrity", "problems": problems.model_dump()},
            )
        return problems

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def insert(
        self,
        payload: TreeNodeCreate | Mapping[str, Any] | None = None,
        reference: NodeRef | None = None,
        position: Position | str = Position.FIRST_CHILD,
    ) -> TreeNode:
        """Insert a leaf relative to ``reference`` (default the root).

        Args:
            payload: Node attributes; ``lft``/``rgt``/``depth`` are rejected
            reference: Node the position is relative to
            position: Where the new node goes

        Returns:
            The persisted node

        Raises:
            ParentNotFoundError: If ``reference`` does not exist
            InvalidTreeOperationError: For a sibling of the root, an unknown
                position, an invalid payload or a depth over the limit
        """
        reference_id = _node_id(reference)
        async with self._mutation("tree.insert", reference_id=reference_id, position=str(position)):
            position = Position.parse(position)
            data = self._validate_payload(payload)

            if reference is None:
                ref = await self._repo.get_or_create_root(self._session, self._settings.root_owner_id)
            else:
                ref = await self._load(reference, error=ParentNotFoundError)

            plan = plan_insert(ref.bounds, position)
            self._check_depth(plan.bounds.depth)
            lazy_logger.debug(lambda: f"service.insert plan: {plan}")

            await self._repo.apply(self._session, plan.steps)
            node = await self._repo.create(
                self._session,
                TreeNode(
                    owner_id=self._settings.root_owner_id if data.owner_id is None else data.owner_id,
                    label=data.label,
                    lft=plan.bounds.left,
                    rgt=plan.bounds.right,
                    depth=plan.bounds.depth,
                ),
            )

        logger.info(
            "Tree node inserted",
            extra={
                "operation": "tree.insert",
                "node_id": node.id,
                "reference_id": ref.id,
                "position": position.value,
                "steps": len(plan.steps) + 1,
            },
        )
        return node

    async def delete(self, node: NodeRef, *, cascade: bool = True) -> int:
        """Delete ``node``.

        With ``cascade`` its whole subtree goes; otherwise its children are
        promoted one level into its place.

        Returns:
            Number of rows removed

        Raises:
            NodeNotFoundError: If the node does not exist
            InvalidTreeOperationError: When asked to delete the root
        """
        node_id = _node_id(node)
        async with self._mutation("tree.delete", node_id=node_id, cascade=cascade):
            current = await self._load(node)
            plan = plan_delete(current.bounds, cascade=cascade)
            lazy_logger.debug(lambda: f"service.delete plan: {plan}")
            removed = await self._repo.apply(self._session, plan.steps)

        logger.info(
            "Tree node deleted",
            extra={
                "operation": "tree.delete",
                "node_id": node_id,
                "cascade": cascade,
                "removed": removed,
                "steps": len(plan.steps),
            },
        )
        return removed

    async def move(
        self,
        node: NodeRef,
        target: NodeRef,
        position: Position | str = Position.FIRST_CHILD,
    ) -> TreeNode:
        """Move ``node`` and its subtree relative to ``target``.

        Returns:
            The moved node with its new bounds

        Raises:
            NodeNotFoundError: If either node does not exist
            InvalidTreeOperationError: If ``target`` is inside ``node``'s
                subtree, ``node`` is the root, for a sibling of the root, or
                when the subtree would exceed the depth limit
        """
        node_id = _node_id(node)
        target_id = _node_id(target)
        async with self._mutation(
            "tree.move", node_id=node_id, target_id=target_id, position=str(position)
        ):
            position = Position.parse(position)
            current = await self._load(node)
            destination = await self._load(target)

            plan = plan_move(current.bounds, destination.bounds, position)
            if plan.depth_delta > 0 and self._settings.max_depth is not None:
                deepest = await self._repo.max_depth_within(self._session, current.bounds)
                self._check_depth(deepest + plan.depth_delta)
            lazy_logger.debug(lambda: f"service.move plan: {plan}")

            await self._repo.apply(self._session, plan.steps)
            if not plan.is_noop:
                await self._session.refresh(current)

        if plan.is_noop:
            lazy_logger.debug(lambda: f"service.move({node_id}) -> already in place")
        else:
            logger.info(
                "Tree node moved",
                extra={
                    "operation": "tree.move",
                    "node_id": node_id,
                    "target_id": target_id,
                    "position": position.value,
                    "steps": len(plan.steps),
                },
            )
        return current

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _load(
        self,
        ref: NodeRef,
        *,
        error: type[NodeNotFoundError] = NodeNotFoundError,
    ) -> TreeNode:
        return await self._repo.get_current(self._session, _node_id(ref), error=error)

    def _validate_payload(self, payload: TreeNodeCreate | Mapping[str, Any] | None) -> TreeNodeCreate:
        if isinstance(payload, TreeNodeCreate):
            return payload
        try:
            return TreeNodeCreate.model_validate(payload or {})
        except ValidationError as exc:
            raise InvalidTreeOperationError(
                "Invalid tree node payload",
                details={"errors": exc.errors(include_url=False, include_context=False)},
            ) from exc

    def _check_depth(self, depth: int) -> None:
        limit = self._settings.max_depth
        if limit is not None and depth > limit:
            raise InvalidTreeOperationError(
                "Tree depth limit exceeded",
                details={"depth": depth, "max_depth": limit},
            )

    @asynccontextmanager
    async def _mutation(self, operation: str, **context: Any) -> AsyncIterator[None]:
        """Run one mutation under the store lock in a SAVEPOINT.

        Database errors are rolled back and re-raised as StoreFailureError;
        rejected requests propagate unchanged after the SAVEPOINT rollback.
        """
        with log_context(operation=operation, **context):
            try:
                async with self._session.begin_nested():
                    if self._settings.advisory_lock_enabled:
                        await self._repo.lock(self._session, self._settings.advisory_lock_id)
                    yield
                if self._autocommit:
                    await self._session.commit()
            except SQLAlchemyError as exc:
                logger.exception("Tree store failure", extra={"operation": operation})
                if self._autocommit:
                    await self._session.rollback()
                raise StoreFailureError(operation, exc) from exc
            except RepositoryError as exc:
                logger.warning(
                    "Tree operation rejected",
                    extra={"operation": operation, "reason": exc.message},
                )
                raise


__all__ = [
    "TreeService",
]
