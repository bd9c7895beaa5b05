"""Fixtures for application service tests.

Services run directly against an async session on a per-test SQLite
database, without the HTTP layer.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any
from uuid import uuid4

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vedashop.infrastructure.database import Base, build_engine, build_session_factory
from vedashop.infrastructure.models import ProductModel, UserModel
from vedashop.infrastructure.security import hash_password


@pytest_asyncio.fixture
async def db_factory(tmp_path: Any) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory over a fresh schema."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'services.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def session(
    db_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """An open session for the test body."""
    async with db_factory() as s:
        yield s


@pytest_asyncio.fixture
async def add_product(
    session: AsyncSession,
) -> Callable[..., Awaitable[str]]:
    """Insert a catalog product and return its id."""

    async def _add(
        name: str = "Brahmi Capsules",
        price_cents: int | None = 999,
    ) -> str:
        product_id = str(uuid4())
        session.add(ProductModel(id=product_id, name=name, price_cents=price_cents))
        await session.commit()
        return product_id

    return _add


@pytest_asyncio.fixture
async def add_user(
    session: AsyncSession,
) -> Callable[..., Awaitable[str]]:
    """Insert a user and return their id."""

    async def _add(email: str | None = None, password: str = "correct horse battery") -> str:
        user_id = str(uuid4())
        session.add(
            UserModel(
                id=user_id,
                email=email or f"{user_id[:8]}@example.com",
                password_hash=hash_password(password),
                role="customer",
            )
        )
        await session.commit()
        return user_id

    return _add
