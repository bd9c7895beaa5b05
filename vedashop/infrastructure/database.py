"""Database configuration and session management.

Provides the async SQLAlchemy engine, the session factory and the
request-scoped session dependency. Production runs on PostgreSQL
(asyncpg); tests point the same builders at a SQLite file (aiosqlite).
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from vedashop.infrastructure.config import settings

# Base class for models
Base = declarative_base()


def build_engine(database_url: str, **kwargs: Any) -> AsyncEngine:
    """Create an async engine for a database URL.

    SQLite files are opened per connection without a pool, so a test
    database can be created and disposed from different event loops.

    Args:
        database_url: SQLAlchemy URL with an async driver.
        **kwargs: Extra ``create_async_engine`` options.

    Returns:
        The configured engine.
    """
    if database_url.startswith("sqlite"):
        kwargs.setdefault("poolclass", NullPool)
    else:
        kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(database_url, **kwargs)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory whose objects stay readable after commit."""
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.database_url, echo=settings.debug)
async_session_factory = build_session_factory(engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get a request-scoped database session.

    Everything a request writes commits together when the handler
    returns, and rolls back together when it raises.

    Yields:
        AsyncSession for database operations.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def ping(session: AsyncSession) -> None:
    """Round-trip to the database.

    Raises:
        SQLAlchemyError: If the database cannot be reached.
    """
    await session.execute(text("SELECT 1"))
