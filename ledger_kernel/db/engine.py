"""
Module: ledger_kernel.db.engine
Responsibility: Async SQLAlchemy engine initialization, session factory
    management and transactional scope utilities.  Single point of database
    connection configuration for the SQL ledger store.
Architecture position: Kernel > DB.  May import from db/base.py, and from
    models/ inside create_tables/drop_tables only.

Invariants enforced:
    - Sessions never expire attributes on commit, so domain conversion after
      a transaction needs no further I/O.
    - In-memory SQLite URLs share one connection (StaticPool) so every
      session sees the same database.

Failure modes:
    - RuntimeError if get_engine/get_session_factory is called before
      init_engine_from_url().

Usage:
    init_engine_from_url("sqlite+aiosqlite:///:memory:")
    await create_tables()
    async with session_scope() as session:
        session.add(model)
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from ledger_kernel.logging_config import get_logger

logger = get_logger("db.engine")

# Module-level engine and session factory
_engine: AsyncEngine | None = None
_SessionFactory: async_sessionmaker[AsyncSession] | None = None


def _is_memory_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite") and (
        ":memory:" in database_url or database_url.rstrip("/").endswith("sqlite+aiosqlite:")
    )


def build_engine(database_url: str, echo: bool = False, **engine_kwargs: Any) -> AsyncEngine:
    """Create an async engine without touching module state."""
    if _is_memory_sqlite(database_url):
        engine_kwargs.setdefault("poolclass", StaticPool)
        engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
    elif not database_url.startswith("sqlite"):
        engine_kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(database_url, echo=echo, **engine_kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    **engine_kwargs: Any,
) -> AsyncEngine:
    """
    Initialize the module-level async engine and session factory.

    A second call replaces the first; dispose the old engine beforehand with
    ``dispose_engine()`` when it is still open.

    Args:
        database_url: Async SQLAlchemy URL, e.g. ``sqlite+aiosqlite:///ledger.db``.
        echo: If True, log all SQL statements.
        **engine_kwargs: Passed through to ``create_async_engine``.
    """
    global _engine, _SessionFactory

    _engine = build_engine(database_url, echo=echo, **engine_kwargs)
    _SessionFactory = build_session_factory(_engine)

    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "echo": echo},
    )
    return _engine


def get_engine() -> AsyncEngine:
    """
    Get the current engine instance.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Get the session factory for creating sessions.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """
    Provide a transactional scope around a series of operations.

    Commits on normal exit; rolls back and re-raises on exception.
    """
    async with get_session_factory()() as session:
        logger.debug("transaction_started")
        try:
            yield session
            await session.commit()
            logger.debug("transaction_committed")
        except Exception:
            await session.rollback()
            logger.warning("transaction_rolled_back", exc_info=True)
            raise


async def create_tables(engine: AsyncEngine | None = None) -> None:
    """Create all ledger tables."""
    from ledger_kernel.db.base import Base
    import ledger_kernel.models  # noqa: F401  (registers tables on Base.metadata)

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables(engine: AsyncEngine | None = None) -> None:
    """
    Drop all tables. Use with caution - primarily for testing.
    """
    from ledger_kernel.db.base import Base
    import ledger_kernel.models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def dispose_engine() -> None:
    """Dispose the module-level engine and forget the session factory."""
    global _engine, _SessionFactory
    if _engine is not None:
        await _engine.dispose()
        logger.info("engine_disposed")
    _engine = None
    _SessionFactory = None
