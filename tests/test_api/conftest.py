"""Shared fixtures for API tests."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from regtrack.api.app import create_app
from regtrack.api.dependencies import (
    get_dispatcher,
    get_health_check_repository,
    get_health_check_service,
    get_rate_limiter,
)
from regtrack.healthcheck.schemas import HealthCheckRecord, HealthSummary
from regtrack.ratelimit.service import RateLimiter
from regtrack.ratelimit.store import InMemoryRateLimitStore
from regtrack.scheduler.config import SchedulerConfig
from regtrack.scheduler.dispatcher import JobDispatcher
from regtrack.scheduler.jobs import Job
from regtrack.scheduler.schedules import Always, DailyAt
from regtrack.scheduler.schemas import JobOutcome

API_KEY = "test-key"
AUTH = {"X-API-KEY": API_KEY}
TICK_TIME = datetime(2026, 3, 2, 10, 0, 0, tzinfo=timezone.utc)


class _FixedJob(Job):
    def __init__(self, name, schedule, outcome):
        super().__init__(name, schedule)
        self._outcome = outcome

    async def run(self) -> JobOutcome:
        return self._outcome


@pytest.fixture
def rate_limiter(clock) -> RateLimiter:
    return RateLimiter(InMemoryRateLimitStore(), clock=clock)


@pytest.fixture
def dispatcher() -> JobDispatcher:
    jobs = [
        _FixedJob("federal-register", Always(), JobOutcome(True, "Added 4", 4)),
        _FixedJob("comment-reminders", DailyAt(9), JobOutcome(True, "Sent 2", 2)),
    ]
    return JobDispatcher(jobs, SchedulerConfig(), clock=lambda: TICK_TIME)


@pytest.fixture
def mock_health_service():
    service = AsyncMock()
    service.run_health_check.return_value = HealthSummary(
        run_id="run_abc", total=25, valid=18, invalid=7, not_attempted=0, notified=True,
    )
    return service


@pytest.fixture
def mock_health_repo():
    repo = AsyncMock()
    repo.latest_per_url.return_value = [
        HealthCheckRecord(
            id=1,
            run_id="run_abc",
            checked_at=TICK_TIME,
            url="https://cannabis.ca.gov/rules",
            title="DCC Rules",
            category="regulation_page",
            owner_tag="CA",
            reachable=False,
            status_code=404,
            latency_ms=80.2,
            error_message="HTTP 404",
        ),
        HealthCheckRecord(
            id=2,
            run_id="run_abc",
            checked_at=TICK_TIME,
            url="https://www.federalregister.gov/",
            title="Federal Register",
            category="agency_root",
            owner_tag="Federal",
            reachable=True,
            status_code=200,
            latency_ms=45.0,
        ),
    ]
    return repo


@pytest.fixture
def app(monkeypatch, rate_limiter, dispatcher, mock_health_service, mock_health_repo):
    monkeypatch.setenv("API_KEYS", API_KEY)
    application = create_app()
    application.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    application.dependency_overrides[get_dispatcher] = lambda: dispatcher
    application.dependency_overrides[get_health_check_service] = lambda: mock_health_service
    application.dependency_overrides[get_health_check_repository] = lambda: mock_health_repo
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
