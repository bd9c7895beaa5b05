"""Tests for engine and session construction."""

from typing import Any

import pytest
from sqlalchemy.pool import NullPool

from vedashop.infrastructure.database import build_engine, build_session_factory, ping


class TestBuildEngine:
    """Tests for build_engine."""

    def test_sqlite_has_no_pool(self, tmp_path: Any) -> None:
        """SQLite files are opened per connection."""
        engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'pool.db'}")

        assert isinstance(engine.sync_engine.pool, NullPool)

    def test_caller_options_are_passed(self, tmp_path: Any) -> None:
        """Extra options reach the engine."""
        engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'echo.db'}", echo=True)

        assert engine.sync_engine.echo is True


class TestPing:
    """Tests for the database round trip."""

    @pytest.mark.asyncio
    async def test_ping_succeeds(self, tmp_path: Any) -> None:
        """A reachable database answers the ping."""
        engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'ping.db'}")
        factory = build_session_factory(engine)

        async with factory() as session:
            await ping(session)

        await engine.dispose()
