"""Tests for HealthCheckRepository with a mocked Database."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from regtrack.healthcheck.repository import HealthCheckRepository
from regtrack.healthcheck.schemas import HealthCheckRecord
from regtrack.probing.schemas import ProbeTarget

CHECKED_AT = datetime(2026, 3, 2, 6, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_db():
    db = MagicMock()
    db.execute = AsyncMock(return_value="UPDATE 1")
    db.executemany = AsyncMock()
    db.fetch = AsyncMock(return_value=[])
    return db


def _record(url: str = "https://example.gov/a", reachable: bool = False) -> HealthCheckRecord:
    return HealthCheckRecord(
        run_id="run_1",
        checked_at=CHECKED_AT,
        url=url,
        title="Example",
        category="regulation_page",
        owner_tag="CA",
        reachable=reachable,
        status_code=404 if not reachable else 200,
        latency_ms=12.5,
        error_message="HTTP 404" if not reachable else None,
    )


def _row(**overrides) -> dict:
    row = {
        "id": 7,
        "run_id": "run_1",
        "checked_at": CHECKED_AT,
        "url": "https://example.gov/a",
        "title": "Example",
        "category": "regulation_page",
        "owner_tag": "CA",
        "reachable": False,
        "status_code": 404,
        "latency_ms": 12.5,
        "error_kind": "none",
        "error_message": "HTTP 404",
    }
    row.update(overrides)
    return row


class TestHealthCheckRepository:
    @pytest.mark.asyncio
    async def test_create_tables(self, mock_db):
        await HealthCheckRepository(mock_db).create_tables()

        sql = mock_db.execute.call_args.args[0]
        assert "CREATE TABLE IF NOT EXISTS url_health_checks" in sql
        assert "CREATE TABLE IF NOT EXISTS monitored_urls" in sql

    @pytest.mark.asyncio
    async def test_insert_batch_single_executemany(self, mock_db):
        repo = HealthCheckRepository(mock_db)

        written = await repo.insert_batch([_record("https://a/"), _record("https://b/", True)])

        assert written == 2
        mock_db.executemany.assert_awaited_once()
        sql, rows = mock_db.executemany.call_args.args
        assert sql.strip().startswith("INSERT INTO url_health_checks")
        assert "UPDATE" not in sql
        assert rows[0][:3] == ("run_1", CHECKED_AT, "https://a/")

    @pytest.mark.asyncio
    async def test_insert_empty_batch(self, mock_db):
        assert await HealthCheckRepository(mock_db).insert_batch([]) == 0
        mock_db.executemany.assert_not_called()

    @pytest.mark.asyncio
    async def test_latest_per_url(self, mock_db):
        mock_db.fetch.return_value = [_row(), _row(id=8, url="https://example.gov/b", reachable=True)]

        records = await HealthCheckRepository(mock_db).latest_per_url(limit=50)

        sql, limit = mock_db.fetch.call_args.args
        assert "DISTINCT ON (url)" in sql
        assert limit == 50
        assert [r.id for r in records] == [7, 8]
        assert records[0].error == "HTTP 404"

    @pytest.mark.asyncio
    async def test_get_targets(self, mock_db):
        mock_db.fetch.return_value = [{
            "url": "https://example.gov/a",
            "title": "Example",
            "category": "news_page",
            "owner_tag": "NV",
        }]

        targets = await HealthCheckRepository(mock_db).get_targets()

        assert targets == [ProbeTarget("https://example.gov/a", "news_page", "NV", "Example")]

    @pytest.mark.asyncio
    async def test_upsert_targets(self, mock_db):
        targets = [ProbeTarget(url="https://example.gov/a", owner_tag="CA")]

        assert await HealthCheckRepository(mock_db).upsert_targets(targets) == 1

        sql, rows = mock_db.executemany.call_args.args
        assert "ON CONFLICT (url)" in sql
        assert rows == [("https://example.gov/a", "https://example.gov/a", "regulation_page", "CA")]

    @pytest.mark.asyncio
    async def test_deactivate_target(self, mock_db):
        assert await HealthCheckRepository(mock_db).deactivate_target("https://example.gov/a") is True
