"""Async SQLAlchemy engine and session factory.

PostgreSQL goes through psycopg3 (``postgresql+psycopg://``); the default
single-operator deployment uses SQLite through aiosqlite.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from vibeconsole.sandbox.db.tables import Base


def _is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def create_engine(database_url: str, **kwargs: object) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    Server databases get a small connection pool:

    - **pool_size=5** / **max_overflow=10**: a single operator never needs more.
    - **pool_pre_ping=True**: survive server-side disconnects.
    - **pool_recycle=3600**: recycle connections after 1 hour.

    SQLite ignores pooling and only gets ``echo`` defaults.  All defaults can
    be overridden via *kwargs*.
    """
    defaults: dict[str, object] = {"echo": False}
    if not _is_sqlite(database_url):
        defaults.update(
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
    defaults.update(kwargs)
    return create_async_engine(database_url, **defaults)  # type: ignore[arg-type]


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to *engine*.

    ``expire_on_commit=False`` so that ORM instances remain usable after
    commit without triggering lazy loads (important for async code where
    implicit IO is forbidden).
    """
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    """Create missing tables (SQLite deployments and tests).

    PostgreSQL deployments use ``vibeconsole db upgrade`` instead.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
