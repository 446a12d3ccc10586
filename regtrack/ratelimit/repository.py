"""PostgreSQL window store for the rate limiter.

Each check runs in one transaction that first takes a transaction-scoped
advisory lock on the ``(subject, action)`` key, so concurrent requests for
the same key serialize (even when no row exists yet) while other keys
proceed in parallel. Writes are upserts on the ``(subject, action)``
primary key.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import asyncpg

from regtrack.ratelimit.schemas import RateLimitAction, RateLimitWindow
from regtrack.ratelimit.store import RateLimitStore, WindowSlot
from regtrack.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS rate_limit_windows (
    subject          TEXT NOT NULL,
    action           TEXT NOT NULL,
    attempt_count    INTEGER NOT NULL CHECK (attempt_count >= 0),
    window_reset_at  TIMESTAMPTZ NOT NULL,
    updated_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (subject, action)
);

CREATE INDEX IF NOT EXISTS idx_rate_limit_windows_reset
    ON rate_limit_windows(window_reset_at);
"""

_LOCK_SQL = "SELECT pg_advisory_xact_lock(hashtext($1))"

_SELECT_SQL = """
SELECT subject, action, attempt_count, window_reset_at
FROM rate_limit_windows
WHERE subject = $1 AND action = $2
"""

_UPSERT_SQL = """
INSERT INTO rate_limit_windows (subject, action, attempt_count, window_reset_at)
VALUES ($1, $2, $3, $4)
ON CONFLICT (subject, action) DO UPDATE SET
    attempt_count = EXCLUDED.attempt_count,
    window_reset_at = EXCLUDED.window_reset_at,
    updated_at = NOW()
"""


def _lock_key(subject: str, action: RateLimitAction) -> str:
    return f"rate_limit:{action.value}:{subject}"


def _record_to_window(record: Any) -> RateLimitWindow:
    """Convert an asyncpg Record to a RateLimitWindow."""
    return RateLimitWindow(
        subject=record["subject"],
        action=RateLimitAction(record["action"]),
        attempt_count=record["attempt_count"],
        window_reset_at=record["window_reset_at"],
    )


class _PostgresSlot(WindowSlot):
    def __init__(
        self,
        conn: asyncpg.Connection,
        window: RateLimitWindow | None,
    ) -> None:
        self._conn = conn
        self._window = window

    @property
    def window(self) -> RateLimitWindow | None:
        return self._window

    async def write(self, window: RateLimitWindow) -> None:
        await self._conn.execute(
            _UPSERT_SQL,
            window.subject,
            window.action.value,
            window.attempt_count,
            window.window_reset_at,
        )
        self._window = window


class PostgresRateLimitStore(RateLimitStore):
    """Rate limit windows in the ``rate_limit_windows`` table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the rate_limit_windows table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Rate limit table ensured")

    @asynccontextmanager
    async def locked(
        self, subject: str, action: RateLimitAction
    ) -> AsyncIterator[WindowSlot]:
        async with self._db.transaction() as conn:
            await conn.execute(_LOCK_SQL, _lock_key(subject, action))
            row = await conn.fetchrow(_SELECT_SQL, subject, action.value)
            yield _PostgresSlot(conn, _record_to_window(row) if row else None)

    async def get(
        self, subject: str, action: RateLimitAction
    ) -> RateLimitWindow | None:
        row = await self._db.fetchrow(_SELECT_SQL, subject, action.value)
        return _record_to_window(row) if row else None

    async def clear_subject(self, subject: str) -> int:
        status = await self._db.execute(
            "DELETE FROM rate_limit_windows WHERE subject = $1", subject,
        )
        # asyncpg returns e.g. "DELETE 3"
        removed = int(status.split()[-1]) if status else 0
        logger.info("Cleared %d rate limit windows for subject", removed)
        return removed
