"""Tests for URLProber using httpx.MockTransport."""

import asyncio
import time

import httpx
import pytest

from regtrack.probing.config import ProbeConfig
from regtrack.probing.prober import URLProber, is_reachable_status
from regtrack.probing.schemas import ProbeTarget


def _targets(n: int, prefix: str = "https://example.gov/page") -> list[ProbeTarget]:
    return [ProbeTarget(url=f"{prefix}{i}") for i in range(n)]


def _prober(handler, **config) -> URLProber:
    config.setdefault("per_request_timeout", 2.0)
    return URLProber(ProbeConfig(**config), transport=httpx.MockTransport(handler))


class TestClassification:
    """Status and error mapping for single probes."""

    @pytest.mark.parametrize("code,expected", [
        (200, True), (204, True), (301, True), (399, True),
        (400, False), (404, False), (500, False), (503, False),
    ])
    def test_reachable_status(self, code, expected):
        assert is_reachable_status(code) is expected

    @pytest.mark.asyncio
    async def test_ok_response(self):
        prober = _prober(lambda request: httpx.Response(200))

        batch = await prober.probe_all([ProbeTarget(url="https://example.gov/")])

        [result] = batch.results
        assert result.reachable is True
        assert result.status_code == 200
        assert result.error_kind == "none"
        assert result.error_message is None
        assert result.latency_ms >= 0

    @pytest.mark.asyncio
    async def test_server_error_is_unreachable(self):
        prober = _prober(lambda request: httpx.Response(500))

        batch = await prober.probe_all([ProbeTarget(url="https://example.gov/")])

        [result] = batch.results
        assert result.reachable is False
        assert result.status_code == 500
        assert result.error_kind == "none"
        assert result.error_message == "HTTP 500"

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("Name or service not known", request=request)

        batch = await _prober(handler).probe_all([ProbeTarget(url="https://nope.invalid/")])

        [result] = batch.results
        assert result.reachable is False
        assert result.status_code is None
        assert result.error_kind == "connection"
        assert "not known" in result.error_message

    @pytest.mark.asyncio
    async def test_protocol_error(self):
        def handler(request):
            raise httpx.RemoteProtocolError("malformed status line", request=request)

        batch = await _prober(handler).probe_all([ProbeTarget(url="https://example.gov/")])

        assert batch.results[0].error_kind == "protocol"

    @pytest.mark.asyncio
    async def test_slow_server_times_out(self):
        async def handler(request):
            await asyncio.sleep(5)
            return httpx.Response(200)

        prober = _prober(handler, per_request_timeout=0.1)
        batch = await prober.probe_all([ProbeTarget(url="https://slow.example.gov/")])

        [result] = batch.results
        assert result.reachable is False
        assert result.error_kind == "timeout"
        assert result.status_code is None

    @pytest.mark.asyncio
    async def test_head_rejected_falls_back_to_get(self):
        methods = []

        def handler(request):
            methods.append(request.method)
            if request.method == "HEAD":
                return httpx.Response(405)
            return httpx.Response(200, content=b"<html>large body</html>")

        batch = await _prober(handler).probe_all([ProbeTarget(url="https://example.gov/")])

        assert methods == ["HEAD", "GET"]
        assert batch.results[0].reachable is True
        assert batch.results[0].status_code == 200

    @pytest.mark.asyncio
    async def test_no_fallback_for_other_errors(self):
        methods = []

        def handler(request):
            methods.append(request.method)
            return httpx.Response(404)

        batch = await _prober(handler).probe_all([ProbeTarget(url="https://example.gov/")])

        assert methods == ["HEAD"]
        assert batch.results[0].error_message == "HTTP 404"

    @pytest.mark.asyncio
    async def test_sends_user_agent(self):
        seen = {}

        def handler(request):
            seen["ua"] = request.headers.get("user-agent")
            return httpx.Response(200)

        prober = _prober(handler, user_agent="RegTrackTest/1.0")
        await prober.probe_all([ProbeTarget(url="https://example.gov/")])

        assert seen["ua"] == "RegTrackTest/1.0"


class TestBatch:
    """Pool behaviour across many targets."""

    @pytest.mark.asyncio
    async def test_empty_targets(self):
        batch = await _prober(lambda r: httpx.Response(200)).probe_all([])

        assert batch.results == []
        assert batch.not_attempted == 0

    @pytest.mark.asyncio
    async def test_one_result_per_target(self):
        broken = {"https://example.gov/page3", "https://example.gov/page7"}

        def handler(request):
            return httpx.Response(404 if str(request.url) in broken else 200)

        batch = await _prober(handler).probe_all(_targets(10))

        assert len(batch.results) == 10
        assert {r.url for r in batch.unreachable} == broken
        assert batch.not_attempted == 0
        assert batch.deadline_exceeded is False

    @pytest.mark.asyncio
    async def test_concurrency_bound(self):
        in_flight = 0
        peak = 0

        async def handler(request):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.02)
            in_flight -= 1
            return httpx.Response(200)

        await _prober(handler).probe_all(_targets(12), concurrency=3)

        assert peak == 3

    @pytest.mark.asyncio
    async def test_wall_clock_scales_with_waves(self):
        """20 targets, 5 workers, 0.1s each: about four waves."""

        async def handler(request):
            await asyncio.sleep(0.1)
            return httpx.Response(200)

        start = time.perf_counter()
        batch = await _prober(handler).probe_all(_targets(20), concurrency=5)
        elapsed = time.perf_counter() - start

        assert len(batch.results) == 20
        assert 0.35 <= elapsed < 1.5

    @pytest.mark.asyncio
    async def test_slow_target_does_not_block_others(self):
        async def handler(request):
            if request.url.path == "/page0":
                await asyncio.sleep(5)
            return httpx.Response(200)

        start = time.perf_counter()
        batch = await _prober(handler, per_request_timeout=0.3).probe_all(
            _targets(10), concurrency=2,
        )
        elapsed = time.perf_counter() - start

        assert len(batch.results) == 10
        assert [r.error_kind for r in batch.unreachable] == ["timeout"]
        assert elapsed < 1.5

    @pytest.mark.asyncio
    async def test_outer_deadline_returns_partial_batch(self):
        async def handler(request):
            if request.url.path in ("/page0", "/page1"):
                return httpx.Response(200)
            await asyncio.sleep(5)
            return httpx.Response(200)

        batch = await _prober(handler, per_request_timeout=10.0).probe_all(
            _targets(6), concurrency=2, deadline=0.3,
        )

        assert batch.deadline_exceeded is True
        assert len(batch.results) == 2
        assert batch.not_attempted == 4
        assert all(r.reachable for r in batch.results)


class TestProbeTarget:
    def test_title_defaults_to_url(self):
        assert ProbeTarget(url="https://example.gov/").title == "https://example.gov/"

    def test_rejects_unknown_category(self):
        with pytest.raises(ValueError):
            ProbeTarget(url="https://example.gov/", category="blog")
