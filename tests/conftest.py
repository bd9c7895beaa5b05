"""Shared test fixtures.

Each test gets its own SQLite database file and a mocked payment
provider. The application's session dependency is overridden so every
request runs against that database.
"""

import asyncio
import itertools
import json
from collections.abc import AsyncGenerator, Callable, Generator
from typing import Any
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vedashop.infrastructure.database import (
    Base,
    build_engine,
    build_session_factory,
    get_session,
)
from vedashop.infrastructure.models import ProductModel, UserModel
from vedashop.infrastructure.payment_provider import (
    PaymentIntent,
    PaymentProviderClient,
    get_payment_provider,
)
from vedashop.infrastructure.security import (
    build_signature_header,
    create_access_token,
    hash_password,
)
from vedashop.main import app

TEST_PASSWORD = "correct horse battery"


# ============================================================================
# Database Fixtures
# ============================================================================


async def _create_schema(engine: Any) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
def session_factory(tmp_path: Any) -> Generator[async_sessionmaker[AsyncSession], None, None]:
    """Create a fresh SQLite database with the full schema."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'vedashop.db'}")
    asyncio.run(_create_schema(engine))
    yield build_session_factory(engine)
    asyncio.run(engine.dispose())


@pytest.fixture
def run_db(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[Callable[[AsyncSession], Any]], Any]:
    """Run an async function against the test database and commit."""

    def _run(fn: Callable[[AsyncSession], Any]) -> Any:
        async def _inner() -> Any:
            async with session_factory() as session:
                result = await fn(session)
                await session.commit()
                return result

        return asyncio.run(_inner())

    return _run


# ============================================================================
# Payment Provider Fixtures
# ============================================================================


@pytest.fixture
def payment_provider() -> AsyncMock:
    """Mock payment provider issuing sequential intent ids."""
    counter = itertools.count(1)

    def _create_intent(
        amount_cents: int,
        currency: str,
        metadata: dict[str, str] | None = None,
        idempotency_key: str | None = None,
    ) -> PaymentIntent:
        n = next(counter)
        return PaymentIntent(
            transaction_id=f"pi_test_{n}",
            client_secret=f"pi_test_{n}_secret_{n}",
            amount_cents=amount_cents,
            currency=currency.upper(),
            status="requires_payment_method",
        )

    provider = AsyncMock(spec=PaymentProviderClient)
    provider.create_payment_intent.side_effect = _create_intent
    return provider


# ============================================================================
# Client Fixtures
# ============================================================================


@pytest.fixture
def client(
    session_factory: async_sessionmaker[AsyncSession],
    payment_provider: AsyncMock,
) -> Generator[TestClient, None, None]:
    """Create a test client bound to the per-test database."""

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def override_get_payment_provider() -> AsyncGenerator[AsyncMock, None]:
        yield payment_provider

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_payment_provider] = override_get_payment_provider
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


# ============================================================================
# Data Fixtures
# ============================================================================


@pytest.fixture
def seed_product(run_db: Callable[..., Any]) -> Callable[..., str]:
    """Insert a catalog product and return its id."""

    def _seed(
        name: str = "Ashwagandha Root Powder",
        price_cents: int | None = 999,
        product_id: str | None = None,
    ) -> str:
        pid = product_id or str(uuid4())

        async def _insert(session: AsyncSession) -> None:
            session.add(
                ProductModel(id=pid, name=name, price_cents=price_cents, stock=100)
            )

        run_db(_insert)
        return pid

    return _seed


@pytest.fixture
def create_user(run_db: Callable[..., Any]) -> Callable[..., tuple[str, dict[str, str]]]:
    """Insert a user and return ``(user_id, auth_headers)``."""

    def _create(email: str | None = None, role: str = "customer") -> tuple[str, dict[str, str]]:
        user_id = str(uuid4())

        async def _insert(session: AsyncSession) -> None:
            session.add(
                UserModel(
                    id=user_id,
                    email=email or f"{user_id[:8]}@example.com",
                    name="Test User",
                    password_hash=hash_password(TEST_PASSWORD),
                    role=role,
                )
            )

        run_db(_insert)
        token = create_access_token(user_id, role)
        return user_id, {"Authorization": f"Bearer {token}"}

    return _create


# ============================================================================
# Webhook Fixtures
# ============================================================================


@pytest.fixture
def webhook_event() -> Callable[..., tuple[bytes, dict[str, str]]]:
    """Build a signed payment provider event.

    Returns ``(raw_body, headers)`` ready to POST to the webhook endpoint.
    """

    def _build(
        event_type: str,
        transaction_id: str,
        amount: int = 2997,
        currency: str = "usd",
        metadata: dict[str, str] | None = None,
        event_id: str | None = None,
    ) -> tuple[bytes, dict[str, str]]:
        body = {
            "id": event_id or f"evt_{uuid4().hex[:16]}",
            "type": event_type,
            "data": {
                "object": {
                    "id": transaction_id,
                    "object": "payment_intent",
                    "amount": amount,
                    "currency": currency,
                    "payment_method_types": ["card"],
                    "metadata": metadata or {},
                }
            },
        }
        payload = json.dumps(body).encode()
        headers = {
            "Stripe-Signature": build_signature_header(payload),
            "Content-Type": "application/json",
        }
        return payload, headers

    return _build
