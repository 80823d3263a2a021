"""Async engine and session handling.

Services only flush. A route commits once when its work succeeds, and
`get_db` rolls back when the request fails. Scripts use `session_scope`,
which commits on exit.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from questlog.core.config import settings


def get_async_database_url(url: str) -> str:
    """Convert database URL to async format for SQLAlchemy + asyncpg.

    Hosting providers hand out postgres:// URLs but SQLAlchemy async requires
    postgresql+asyncpg:// format.
    """
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def enable_sqlite_foreign_keys(target: AsyncEngine) -> None:
    """Turn on foreign keys and ON DELETE cascades for every new SQLite connection."""

    @event.listens_for(target.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """Engine for `url`. SQLite gets foreign key enforcement, other backends a pre-ping pool."""
    url = get_async_database_url(url)
    if url.startswith("sqlite"):
        sqlite_engine = create_async_engine(url, echo=settings.debug, **kwargs)
        enable_sqlite_foreign_keys(sqlite_engine)
        return sqlite_engine
    return create_async_engine(url, echo=settings.debug, pool_pre_ping=True, **kwargs)


database_url = get_async_database_url(settings.database_url)

engine = build_engine(database_url)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncIterator[AsyncSession]:
    """Dependency that provides a request's session. The route decides when to commit."""
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Unit of work for scripts: commit if the block succeeds, roll back if it raises."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
