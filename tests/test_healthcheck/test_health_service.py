"""Tests for HealthCheckService: probe, persist, notify."""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from regtrack.healthcheck.channels import NotificationChannel
from regtrack.healthcheck.config import HealthCheckConfig
from regtrack.healthcheck.schemas import BrokenLinkReport
from regtrack.healthcheck.service import HealthCheckService, dedupe_targets
from regtrack.probing.config import ProbeConfig
from regtrack.probing.prober import URLProber
from regtrack.probing.schemas import ProbeTarget


class RecordingChannel(NotificationChannel):
    def __init__(self, name: str = "recording", result: bool = True, exc: Exception | None = None):
        self._name = name
        self._result = result
        self._exc = exc
        self.reports: list[BrokenLinkReport] = []

    @property
    def name(self) -> str:
        return self._name

    async def send(self, report: BrokenLinkReport) -> bool:
        self.reports.append(report)
        if self._exc:
            raise self._exc
        return self._result


def _mock_repo(targets=None):
    repo = AsyncMock()
    repo.get_targets.return_value = targets or []
    repo.insert_batch.side_effect = lambda records: len(records)
    return repo


def _prober(handler, timeout: float = 0.2) -> URLProber:
    return URLProber(
        ProbeConfig(per_request_timeout=timeout, concurrency=10),
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def scenario_targets() -> list[ProbeTarget]:
    """25 URLs across three jurisdictions: 0-4 return 500, 5-6 hang."""
    owners = ["CA", "CO", "Federal"]
    return [
        ProbeTarget(
            url=f"https://regs.example.gov/doc{i}",
            owner_tag=owners[i % 3],
            title=f"Regulation {i}",
        )
        for i in range(25)
    ]


def _scenario_handler():
    async def handler(request):
        index = int(request.url.path.removeprefix("/doc"))
        if index < 5:
            return httpx.Response(500)
        if index < 7:
            await asyncio.sleep(5)
        return httpx.Response(200)
    return handler


class TestRunHealthCheck:
    @pytest.mark.asyncio
    async def test_end_to_end_scenario(self, scenario_targets):
        repo = _mock_repo(scenario_targets)
        channel = RecordingChannel()
        service = HealthCheckService(
            repo, prober=_prober(_scenario_handler()), channels=[channel],
        )

        summary = await service.run_health_check()

        assert summary.total == 25
        assert summary.invalid == 7
        assert summary.valid == 18
        assert summary.not_attempted == 0
        assert summary.notified is True

        repo.insert_batch.assert_awaited_once()
        records = repo.insert_batch.call_args.args[0]
        assert len(records) == 25
        assert {r.run_id for r in records} == {summary.run_id}

        assert len(channel.reports) == 1
        report = channel.reports[0]
        assert len(report.links) == 7
        errors = sorted(link.error for link in report.links)
        assert errors.count("HTTP 500") == 5
        assert sum("Timed out" in e for e in errors) == 2

    @pytest.mark.asyncio
    async def test_broken_grouped_by_owner(self, scenario_targets):
        service = HealthCheckService(
            _mock_repo(scenario_targets), prober=_prober(_scenario_handler()),
        )

        summary = await service.run_health_check()

        grouped = summary.broken_by_owner()
        assert sum(len(v) for v in grouped.values()) == 7
        assert set(grouped) <= {"CA", "CO", "Federal"}

    @pytest.mark.asyncio
    async def test_all_healthy_does_not_notify(self, sample_targets):
        channel = RecordingChannel()
        service = HealthCheckService(
            _mock_repo(), prober=_prober(lambda r: httpx.Response(200)), channels=[channel],
        )

        summary = await service.run_health_check(sample_targets)

        assert summary.invalid == 0
        assert summary.notified is False
        assert channel.reports == []

    @pytest.mark.asyncio
    async def test_threshold_suppresses_small_breakage(self, sample_targets):
        channel = RecordingChannel()
        service = HealthCheckService(
            _mock_repo(),
            prober=_prober(lambda r: httpx.Response(404)),
            channels=[channel],
            config=HealthCheckConfig(alert_threshold=3),
        )

        summary = await service.run_health_check(sample_targets)

        assert summary.invalid == 3
        assert channel.reports == []

    @pytest.mark.asyncio
    async def test_explicit_targets_skip_repository_load(self, sample_targets):
        repo = _mock_repo()
        service = HealthCheckService(repo, prober=_prober(lambda r: httpx.Response(200)))

        summary = await service.run_health_check(sample_targets)

        repo.get_targets.assert_not_called()
        assert summary.total == 3

    @pytest.mark.asyncio
    async def test_duplicate_urls_collapsed(self):
        targets = [
            ProbeTarget(url="https://example.gov/a", owner_tag="CA"),
            ProbeTarget(url="https://example.gov/a", owner_tag="NV"),
            ProbeTarget(url="https://example.gov/b"),
        ]
        repo = _mock_repo()
        service = HealthCheckService(repo, prober=_prober(lambda r: httpx.Response(200)))

        summary = await service.run_health_check(targets)

        assert summary.total == 2
        records = repo.insert_batch.call_args.args[0]
        assert [r.owner_tag for r in records if r.url.endswith("/a")] == ["CA"]

    @pytest.mark.asyncio
    async def test_no_targets(self):
        repo = _mock_repo([])
        service = HealthCheckService(repo, prober=_prober(lambda r: httpx.Response(200)))

        summary = await service.run_health_check()

        assert summary.total == 0
        repo.insert_batch.assert_not_called()

    @pytest.mark.asyncio
    async def test_channel_failure_does_not_fail_run(self, sample_targets):
        failing = RecordingChannel("webhook", exc=RuntimeError("boom"))
        rejecting = RecordingChannel("email", result=False)
        working = RecordingChannel("other", result=True)
        service = HealthCheckService(
            _mock_repo(),
            prober=_prober(lambda r: httpx.Response(503)),
            channels=[failing, rejecting, working],
        )

        summary = await service.run_health_check(sample_targets)

        assert summary.invalid == 3
        assert summary.notified is True
        assert all(len(c.reports) == 1 for c in (failing, rejecting, working))

    @pytest.mark.asyncio
    async def test_persistence_failure_propagates(self, sample_targets):
        repo = _mock_repo()
        repo.insert_batch.side_effect = OSError("database gone")
        service = HealthCheckService(repo, prober=_prober(lambda r: httpx.Response(200)))

        with pytest.raises(OSError):
            await service.run_health_check(sample_targets)

    @pytest.mark.asyncio
    async def test_caller_deadline_tighter_than_config(self):
        async def handler(request):
            if request.url.path == "/slow":
                await asyncio.sleep(5)
            return httpx.Response(200)

        targets = [
            ProbeTarget(url="https://regs.example.gov/a"),
            ProbeTarget(url="https://regs.example.gov/b"),
            ProbeTarget(url="https://regs.example.gov/slow"),
        ]
        repo = _mock_repo()
        service = HealthCheckService(
            repo,
            prober=_prober(handler, timeout=5.0),
            config=HealthCheckConfig(run_deadline_seconds=10.0),
        )

        summary = await service.run_health_check(targets, deadline=0.2)

        assert summary.valid == 2
        assert summary.not_attempted == 1
        assert len(repo.insert_batch.call_args.args[0]) == 2


class TestDedupeTargets:
    def test_keeps_first_occurrence_order(self):
        targets = [ProbeTarget(url=u) for u in ["https://a/", "https://b/", "https://a/"]]
        assert [t.url for t in dedupe_targets(targets)] == ["https://a/", "https://b/"]
