"""Database configuration and async session management."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, nullcontext

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

# Create declarative base for models
Base = declarative_base()


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    In-memory SQLite databases use a StaticPool so every session sees the
    same connection (and therefore the same tables).
    """
    is_sqlite = database_url.startswith("sqlite")
    return create_async_engine(
        database_url,
        echo=echo,
        future=True,
        pool_pre_ping=not is_sqlite,
        poolclass=StaticPool if is_sqlite else None,
        connect_args={"check_same_thread": False} if is_sqlite else {},
    )


class SessionProvider:
    """
    Hands out short-lived sessions bound to one engine.

    A StaticPool SQLite engine shares a single DBAPI connection between all
    sessions, so sessions on SQLite are serialized; otherwise they run
    concurrently and rely on the database for isolation.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        self._serialized = engine.dialect.name == "sqlite"
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Yield a session; rolled back on error and always closed.

        Sessions must not be nested: callers open one, finish with it, then
        open the next.
        """
        guard = self._lock if self._serialized else nullcontext()
        async with guard:
            async with self._factory() as session:
                try:
                    yield session
                except Exception:
                    await session.rollback()
                    raise


async def init_db(engine: AsyncEngine) -> None:
    """Initialize the database by creating all tables."""
    # Import models so they register with Base.metadata
    from .. import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine) -> None:
    """Close database connections."""
    await engine.dispose()
