"""Repository for monitored URLs and the append-only health check log."""

import logging
from collections.abc import Sequence
from typing import Any

from regtrack.healthcheck.schemas import HealthCheckRecord
from regtrack.probing.schemas import ProbeTarget
from regtrack.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS monitored_urls (
    url         TEXT PRIMARY KEY,
    title       TEXT NOT NULL DEFAULT '',
    category    TEXT NOT NULL DEFAULT 'regulation_page',
    owner_tag   TEXT NOT NULL DEFAULT 'Unknown',
    is_active   BOOLEAN NOT NULL DEFAULT TRUE,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS url_health_checks (
    id             BIGSERIAL PRIMARY KEY,
    run_id         TEXT NOT NULL,
    checked_at     TIMESTAMPTZ NOT NULL,
    url            TEXT NOT NULL,
    title          TEXT NOT NULL DEFAULT '',
    category       TEXT NOT NULL,
    owner_tag      TEXT NOT NULL,
    reachable      BOOLEAN NOT NULL,
    status_code    INTEGER,
    latency_ms     DOUBLE PRECISION NOT NULL,
    error_kind     TEXT NOT NULL DEFAULT 'none',
    error_message  TEXT
);

CREATE INDEX IF NOT EXISTS idx_url_health_checks_url_checked
    ON url_health_checks(url, checked_at DESC);
CREATE INDEX IF NOT EXISTS idx_url_health_checks_run
    ON url_health_checks(run_id);
"""

_INSERT_CHECK_SQL = """
INSERT INTO url_health_checks (
    run_id, checked_at, url, title, category, owner_tag,
    reachable, status_code, latency_ms, error_kind, error_message
) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
"""

_UPSERT_TARGET_SQL = """
INSERT INTO monitored_urls (url, title, category, owner_tag, is_active)
VALUES ($1, $2, $3, $4, TRUE)
ON CONFLICT (url) DO UPDATE SET
    title = EXCLUDED.title,
    category = EXCLUDED.category,
    owner_tag = EXCLUDED.owner_tag,
    is_active = TRUE,
    updated_at = NOW()
"""


def _record_to_check(record: Any) -> HealthCheckRecord:
    """Convert an asyncpg Record to a HealthCheckRecord."""
    return HealthCheckRecord(
        id=record["id"],
        run_id=record["run_id"],
        checked_at=record["checked_at"],
        url=record["url"],
        title=record["title"],
        category=record["category"],
        owner_tag=record["owner_tag"],
        reachable=record["reachable"],
        status_code=record["status_code"],
        latency_ms=record["latency_ms"],
        error_kind=record["error_kind"],
        error_message=record["error_message"],
    )


def _record_to_target(record: Any) -> ProbeTarget:
    return ProbeTarget(
        url=record["url"],
        category=record["category"],
        owner_tag=record["owner_tag"],
        title=record["title"],
    )


class HealthCheckRepository:
    """CRUD for ``monitored_urls`` and appends to ``url_health_checks``."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create both tables and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLES_SQL)
        logger.info("Health check tables ensured")

    async def get_targets(self) -> list[ProbeTarget]:
        """Active monitored URLs, oldest first."""
        rows = await self._db.fetch(
            """
            SELECT url, title, category, owner_tag
            FROM monitored_urls
            WHERE is_active = TRUE
            ORDER BY created_at, url
            """
        )
        return [_record_to_target(row) for row in rows]

    async def upsert_targets(self, targets: Sequence[ProbeTarget]) -> int:
        """Insert or refresh monitored URLs. Returns the number written."""
        if not targets:
            return 0
        await self._db.executemany(
            _UPSERT_TARGET_SQL,
            [(t.url, t.title, t.category, t.owner_tag) for t in targets],
        )
        logger.info("Upserted %d monitored URLs", len(targets))
        return len(targets)

    async def deactivate_target(self, url: str) -> bool:
        status = await self._db.execute(
            "UPDATE monitored_urls SET is_active = FALSE, updated_at = NOW() "
            "WHERE url = $1",
            url,
        )
        return status == "UPDATE 1"

    async def insert_batch(self, records: Sequence[HealthCheckRecord]) -> int:
        """Append one run's records in a single batch. Never updates."""
        if not records:
            return 0
        await self._db.executemany(
            _INSERT_CHECK_SQL,
            [
                (
                    r.run_id, r.checked_at, r.url, r.title, r.category,
                    r.owner_tag, r.reachable, r.status_code, r.latency_ms,
                    r.error_kind, r.error_message,
                )
                for r in records
            ],
        )
        logger.info("Persisted %d health check records", len(records))
        return len(records)

    async def latest_per_url(self, limit: int = 100) -> list[HealthCheckRecord]:
        """Newest record for each URL, broken links first."""
        rows = await self._db.fetch(
            """
            SELECT * FROM (
                SELECT DISTINCT ON (url) *
                FROM url_health_checks
                ORDER BY url, checked_at DESC, id DESC
            ) latest
            ORDER BY reachable, checked_at DESC
            LIMIT $1
            """,
            limit,
        )
        return [_record_to_check(row) for row in rows]

