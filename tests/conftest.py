"""Pytest configuration and shared fixtures.

Organization:
    - Database Fixtures: SQLAlchemy engine and session on in-memory SQLite
    - Tree Fixtures: TreeService wired to the test session, tree assertions
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from tree_service.core.settings import TreeSettings
    from tree_service.features.trees import TreeService

# Ensure tests run without external infrastructure
os.environ.setdefault("DB_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "")
os.environ.setdefault("LOG_FILE_ENABLED", "false")


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Create async SQLAlchemy engine with in-memory SQLite.

    SAVEPOINT support is switched on the same way the application engine
    does it, so begin_nested() nests for real.

    Yields:
        Async SQLAlchemy engine connected to in-memory SQLite.
    """
    from tree_service.infra.database.session import enable_sqlite_savepoints

    engine = enable_sqlite_savepoints(
        create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            echo=False,
        )
    )

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create async database session with automatic table creation and cleanup.

    This fixture:
    1. Creates all tables defined in Base.metadata
    2. Provides a session for database operations
    3. Rolls back whatever is left open after each test
    4. Drops the tables after the test
    """
    from tree_service.core.database.base import Base
    from tree_service.features.trees import models  # noqa: F401

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ============================================================================
# Tree Fixtures
# ============================================================================


@pytest.fixture
def tree_settings() -> TreeSettings:
    """Explicit tree settings, independent of the environment."""
    from tree_service.core.settings import TreeSettings

    return TreeSettings(root_owner_id=1, advisory_lock_enabled=True, max_depth=None)


@pytest.fixture
def tree_service(db_session: AsyncSession, tree_settings: TreeSettings) -> TreeService:
    """TreeService bound to the test session with its own repository."""
    from tree_service.features.trees import TreeNodeRepository, TreeService

    return TreeService(db_session, repo=TreeNodeRepository(), settings=tree_settings)


@pytest.fixture
def assert_tree_valid(db_session: AsyncSession):
    """Return an async checker for the nested-set invariants of the whole table.

    Checks, from a fresh read: every interval is well formed, bounds are
    pairwise distinct and cover ``0 .. 2n - 1``, any two intervals are nested
    or disjoint, depth equals the number of enclosing nodes, and each node's
    descendant count matches its span.
    """
    from tree_service.features.trees import TreeNodeRepository

    async def check() -> None:
        rows = await TreeNodeRepository().select_range(db_session)
        bounds = [b for row in rows for b in (row.lft, row.rgt)]

        assert sorted(bounds) == list(range(2 * len(rows)))
        for row in rows:
            assert row.lft < row.rgt
            enclosing = [o for o in rows if o.lft < row.lft and row.rgt < o.rgt]
            inside = [o for o in rows if row.lft < o.lft and o.rgt < row.rgt]
            assert row.depth == len(enclosing), row
            assert len(inside) == (row.rgt - row.lft - 1) // 2, row
            for other in rows:
                if other is row:
                    continue
                nested = (row.lft < other.lft and other.rgt < row.rgt) or (
                    other.lft < row.lft and row.rgt < other.rgt
                )
                disjoint = row.rgt < other.lft or other.rgt < row.lft
                assert nested or disjoint, (row, other)

    return check
