"""asyncpg pool shared by the rate limit store and the health check log."""

import logging
from collections.abc import AsyncIterator, Iterable, Sequence
from contextlib import asynccontextmanager
from typing import Any

import asyncpg

from regtrack.config.settings import get_settings

logger = logging.getLogger(__name__)


class Database:
    """
    Connection pool for the regtrack tables.

    Repositories call the query helpers, which borrow a pooled connection
    per statement. ``transaction()`` pins one connection for work that must
    share it, such as an advisory lock followed by an upsert.

    Usage:
        async with Database() as db:
            await HealthCheckRepository(db).create_tables()
    """

    def __init__(
        self,
        database_url: str | None = None,
        min_size: int | None = None,
        max_size: int | None = None,
    ):
        settings = get_settings()
        self._dsn = database_url or str(settings.database_url)
        self._pool_size = (
            min_size or settings.db_pool_min_size,
            max_size or settings.db_pool_max_size,
        )
        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        min_size, max_size = self._pool_size
        try:
            self._pool = await asyncpg.create_pool(
                self._dsn, min_size=min_size, max_size=max_size, command_timeout=60,
            )
        except (OSError, asyncpg.PostgresError) as e:
            logger.error("Could not open database pool: %s", e)
            raise
        logger.info("Database pool open (%d-%d connections)", min_size, max_size)

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("Database pool closed")

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._pool

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """Yield one connection inside a transaction; commits on clean exit."""
        async with self.pool.acquire() as conn, conn.transaction():
            yield conn

    @asynccontextmanager
    async def try_advisory_lock(self, name: str) -> AsyncIterator[bool]:
        """Session-level advisory lock shared by every process on the database.

        Yields False without waiting when another session holds ``name``.
        """
        async with self.pool.acquire() as conn:
            acquired = await conn.fetchval("SELECT pg_try_advisory_lock(hashtext($1))", name)
            try:
                yield acquired
            finally:
                if acquired:
                    await conn.execute("SELECT pg_advisory_unlock(hashtext($1))", name)

    async def execute(self, query: str, *args: Any) -> str:
        """Run a statement and return its status tag (e.g. ``DELETE 2``)."""
        return await self.pool.execute(query, *args)

    async def executemany(self, query: str, args: Iterable[Sequence[Any]]) -> None:
        await self.pool.executemany(query, args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        return await self.pool.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        return await self.pool.fetchrow(query, *args)

    async def health_check(self) -> bool:
        """True when a trivial query round-trips."""
        try:
            row = await self.fetchrow("SELECT 1 AS ok")
        except (OSError, RuntimeError, asyncpg.PostgresError) as e:
            logger.warning("Database health check failed: %s", e)
            return False
        return row is not None and row["ok"] == 1
