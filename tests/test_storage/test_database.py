"""Tests for the asyncpg pool wrapper using a mocked pool."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from regtrack.storage.database import Database


def _connected(pool) -> Database:
    db = Database(database_url="postgresql://localhost/regtrack_test")
    db._pool = pool
    return db


class TestDatabase:
    def test_pool_requires_connect(self):
        db = Database(database_url="postgresql://localhost/regtrack_test")

        with pytest.raises(RuntimeError, match="not connected"):
            _ = db.pool

    @pytest.mark.asyncio
    async def test_context_manager_opens_and_closes_pool(self):
        pool = AsyncMock()

        with patch("asyncpg.create_pool", AsyncMock(return_value=pool)) as create_pool:
            async with Database(
                database_url="postgresql://localhost/regtrack_test", min_size=1, max_size=3,
            ) as db:
                assert db.pool is pool

        assert create_pool.call_args.kwargs["min_size"] == 1
        assert create_pool.call_args.kwargs["max_size"] == 3
        pool.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_execute_returns_status(self):
        pool = MagicMock()
        pool.execute = AsyncMock(return_value="DELETE 2")

        status = await _connected(pool).execute("DELETE FROM rate_limit_windows WHERE subject = $1", "x")

        assert status == "DELETE 2"

    @pytest.mark.asyncio
    async def test_health_check_ok(self):
        pool = MagicMock()
        pool.fetchrow = AsyncMock(return_value={"ok": 1})

        assert await _connected(pool).health_check() is True

    @pytest.mark.asyncio
    async def test_health_check_connection_refused(self):
        pool = MagicMock()
        pool.fetchrow = AsyncMock(side_effect=OSError("connection refused"))

        assert await _connected(pool).health_check() is False

    @pytest.mark.asyncio
    async def test_health_check_not_connected(self):
        db = Database(database_url="postgresql://localhost/regtrack_test")

        assert await db.health_check() is False


def _pool_with_connection(conn):
    acquired = MagicMock()
    acquired.__aenter__ = AsyncMock(return_value=conn)
    acquired.__aexit__ = AsyncMock(return_value=False)
    pool = MagicMock()
    pool.acquire = MagicMock(return_value=acquired)
    return pool


class TestAdvisoryLock:
    @pytest.mark.asyncio
    async def test_acquired_lock_released_on_exit(self):
        conn = MagicMock()
        conn.fetchval = AsyncMock(return_value=True)
        conn.execute = AsyncMock()
        db = _connected(_pool_with_connection(conn))

        async with db.try_advisory_lock("regtrack:scheduler-tick") as acquired:
            assert acquired is True
            conn.execute.assert_not_awaited()

        assert "pg_try_advisory_lock" in conn.fetchval.call_args.args[0]
        assert "pg_advisory_unlock" in conn.execute.call_args.args[0]
        assert conn.execute.call_args.args[1] == "regtrack:scheduler-tick"

    @pytest.mark.asyncio
    async def test_held_elsewhere_yields_false_without_unlock(self):
        conn = MagicMock()
        conn.fetchval = AsyncMock(return_value=False)
        conn.execute = AsyncMock()
        db = _connected(_pool_with_connection(conn))

        async with db.try_advisory_lock("regtrack:scheduler-tick") as acquired:
            assert acquired is False

        conn.execute.assert_not_awaited()
