"""Database session management with psycopg3 async driver."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.ext.asyncio import async_sessionmaker as _async_sessionmaker
from sqlalchemy.ext.asyncio import create_async_engine as _create_async_engine

from tree_service.core.settings import get_db_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from typing import Any

    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

db_settings = get_db_settings()


def enable_sqlite_savepoints(async_engine: AsyncEngine) -> AsyncEngine:
    """Let SQLAlchemy own BEGIN on SQLite so SAVEPOINT nests correctly.

    The sqlite3 driver delays BEGIN until the first DML statement, which
    turns the first SAVEPOINT of a transaction into its outer boundary.
    Disabling that behaviour and emitting BEGIN ourselves restores real
    nesting for begin_nested().
    """
    if async_engine.dialect.name != "sqlite":
        return async_engine

    @event.listens_for(async_engine.sync_engine, "connect")
    def _on_connect(dbapi_conn: Any, connection_record: Any) -> None:
        _ = connection_record
        dbapi_conn.isolation_level = None

    @event.listens_for(async_engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")

    return async_engine


# Falls back to a local aiosqlite file when PostgreSQL is disabled
engine = _create_async_engine(
    db_settings.get_sqlalchemy_url(),
    **db_settings.sqlalchemy_engine_kwargs(),
)
enable_sqlite_savepoints(engine)

AsyncSessionLocal = _async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
    autocommit=False,
)


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Get async database session.

    Yields:
        Database session that is automatically closed.

    Example:
        async with get_async_session() as session:
            service = TreeService(session)
            node = await service.insert({"owner_id": 7}, parent_id)
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_database(*, create_schema: bool = False) -> None:
    """Verify the database connection on startup.

    Args:
        create_schema: Also create missing tables from the ORM metadata.
            Intended for the SQLite fallback and throwaway databases;
            PostgreSQL deployments use Alembic migrations.

    Raises:
        sqlalchemy.exc.SQLAlchemyError: If the database cannot be reached.
    """
    db_url = engine.url.render_as_string(hide_password=True)
    logger.info("Initializing database connection", extra={"url": db_url})

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

        if create_schema:
            from tree_service.core.database import Base
            from tree_service.features.trees import models  # noqa: F401

            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

        logger.info(
            "Database connection established successfully",
            extra={"url": db_url, "driver": engine.dialect.driver},
        )
    except Exception as e:
        logger.error(
            "Failed to connect to database",
            extra={"url": db_url, "error": str(e)},
        )
        raise


async def close_database() -> None:
    """Close database connection and cleanup resources.

    This should be called during application shutdown.
    """
    logger.info("Closing database connection")

    try:
        await engine.dispose()
        logger.info("Database connection closed successfully")
    except Exception as e:
        logger.exception("Error closing database connection", extra={"error": str(e)})


# Re-export for convenience
create_async_engine = _create_async_engine
async_sessionmaker = _async_sessionmaker

__all__ = [
    "AsyncSessionLocal",
    "async_sessionmaker",
    "close_database",
    "create_async_engine",
    "enable_sqlite_savepoints",
    "engine",
    "get_async_session",
    "init_database",
]
