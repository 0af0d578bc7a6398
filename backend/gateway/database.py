"""
Board Gateway — Database Engine
================================

What:  Async SQLAlchemy engine and session factory for the session store.
Why:   The gateway only owns one table (`sessions`); content tables belong to
       the mounted collaborators, which may share this engine.
How:   `build_engine()` creates an async engine from Settings. The factory
       calls it once per application; the engine (and its pool) is shared by
       every request and closed on shutdown.

Connection Pooling Strategy:
    Server databases (PostgreSQL via asyncpg, MySQL via aiomysql):
        pool_size / max_overflow from settings, pre-ping, hourly recycle.
    SQLite (aiosqlite, used by the test-suite):
        in-memory databases use a StaticPool so every checkout sees the same
        database; file databases use SQLAlchemy's default pool.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from gateway.config import Settings


class Base(DeclarativeBase):
    """Declarative base for the gateway's own tables."""
    pass


def _is_memory_sqlite(url: str) -> bool:
    return ":memory:" in url or url.endswith("://")


def build_engine(settings: Settings) -> AsyncEngine:
    url = settings.database_url
    echo = settings.log_level == "DEBUG"

    if url.startswith("sqlite"):
        if _is_memory_sqlite(url):
            return create_async_engine(
                url,
                echo=echo,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        return create_async_engine(url, echo=echo)

    return create_async_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,
        echo=echo,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    # expire_on_commit=False: rows stay readable after the transaction closes
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def dispose_engine(engine: AsyncEngine) -> None:
    """Close all pooled connections. Called from the application lifespan."""
    await engine.dispose()
