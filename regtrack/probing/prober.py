"""
Bounded-concurrency URL reachability prober.

A fixed pool of worker tasks drains a queue of targets, so at most
``concurrency`` probes are in flight and a slow target only ever occupies
its own worker. Every failure is converted into a ``ProbeResult``; the
prober itself never raises for network problems and never retries.

Classification:
- 200-399 final status -> reachable
- any other status -> unreachable, error_kind "none"
- deadline elapsed -> "timeout"
- DNS / socket failure -> "connection"
- malformed response, bad URL, redirect loop -> "protocol"
"""

import asyncio
import logging
import time
from collections.abc import Sequence

import httpx

from regtrack.observability.metrics import get_metrics
from regtrack.probing.config import ProbeConfig
from regtrack.probing.schemas import ProbeBatch, ProbeResult, ProbeTarget

logger = logging.getLogger(__name__)

# Servers that refuse HEAD answer with one of these; retry once with GET
HEAD_REJECTED_STATUSES = frozenset({405, 501})


def is_reachable_status(status_code: int) -> bool:
    return 200 <= status_code <= 399


class URLProber:
    """
    Probes URLs with HEAD (falling back to GET) under a worker pool.

    Example:
        prober = URLProber(ProbeConfig(concurrency=10))
        batch = await prober.probe_all(targets, deadline=120)
        broken = batch.unreachable
    """

    def __init__(
        self,
        config: ProbeConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the prober.

        Args:
            config: Concurrency/timeout defaults. Uses env-backed defaults if None.
            transport: Optional httpx transport (tests inject a MockTransport).
        """
        self._config = config or ProbeConfig()
        self._transport = transport

    @property
    def config(self) -> ProbeConfig:
        return self._config

    async def probe_all(
        self,
        targets: Sequence[ProbeTarget],
        *,
        concurrency: int | None = None,
        per_request_timeout: float | None = None,
        deadline: float | None = None,
    ) -> ProbeBatch:
        """
        Probe every target with bounded concurrency.

        Results come back in completion order, not input order; correlate
        on ``url``.

        Args:
            targets: URLs to probe.
            concurrency: Worker count (default from config).
            per_request_timeout: Seconds allowed per probe (default from config).
            deadline: Seconds allowed for the whole batch. On expiry the
                in-flight probes are cancelled and a partial batch returned.

        Returns:
            ProbeBatch with one result per completed target.
        """
        if not targets:
            return ProbeBatch()

        concurrency = concurrency or self._config.concurrency
        timeout = per_request_timeout or self._config.per_request_timeout
        deadline = deadline if deadline is not None else self._config.outer_deadline

        queue: asyncio.Queue[ProbeTarget] = asyncio.Queue()
        for target in targets:
            queue.put_nowait(target)

        results: list[ProbeResult] = []
        start = time.perf_counter()

        async with httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=self._config.follow_redirects,
            headers={"User-Agent": self._config.user_agent},
            limits=httpx.Limits(max_connections=concurrency),
            transport=self._transport,
        ) as client:

            async def worker() -> None:
                while True:
                    try:
                        target = queue.get_nowait()
                    except asyncio.QueueEmpty:
                        return
                    results.append(await self.probe_one(client, target, timeout))

            workers = [
                asyncio.create_task(worker())
                for _ in range(min(concurrency, len(targets)))
            ]
            _done, pending = await asyncio.wait(workers, timeout=deadline)

            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        batch = ProbeBatch(
            results=results,
            not_attempted=len(targets) - len(results),
            deadline_exceeded=bool(pending),
        )

        elapsed = time.perf_counter() - start
        if batch.deadline_exceeded:
            logger.warning(
                "Probe batch hit %.1fs deadline: %d/%d probed, %d not attempted",
                deadline, len(results), len(targets), batch.not_attempted,
            )
        logger.info(
            "Probed %d URLs in %.2fs (concurrency=%d): %d unreachable",
            len(results), elapsed, concurrency, len(batch.unreachable),
        )
        return batch

    async def probe_one(
        self,
        client: httpx.AsyncClient,
        target: ProbeTarget,
        timeout: float,
    ) -> ProbeResult:
        """Probe a single target. Never raises except on cancellation."""
        start = time.perf_counter()
        status_code: int | None = None
        error_kind = "none"
        error_message: str | None = None

        try:
            async with asyncio.timeout(timeout):
                status_code = await self._request_status(client, target.url)
        except (TimeoutError, httpx.TimeoutException):
            error_kind = "timeout"
            error_message = f"Timed out after {timeout:g}s"
        except httpx.NetworkError as e:
            error_kind = "connection"
            error_message = str(e) or type(e).__name__
        except (
            httpx.ProtocolError,
            httpx.DecodingError,
            httpx.UnsupportedProtocol,
            httpx.TooManyRedirects,
            httpx.InvalidURL,
        ) as e:
            error_kind = "protocol"
            error_message = str(e) or type(e).__name__
        except Exception as e:
            # Anything else from the transport still counts as a bad response
            logger.warning("Unexpected probe error for %s: %r", target.url, e)
            error_kind = "protocol"
            error_message = str(e) or type(e).__name__

        latency = time.perf_counter() - start
        reachable = status_code is not None and is_reachable_status(status_code)
        if status_code is not None and not reachable:
            error_message = f"HTTP {status_code}"

        result = ProbeResult(
            url=target.url,
            reachable=reachable,
            status_code=status_code,
            latency_ms=round(latency * 1000, 2),
            error_kind=error_kind,
            error_message=error_message,
        )
        get_metrics().record_probe(reachable, error_kind, latency)

        if not reachable:
            logger.debug(
                "Unreachable %s (%s): %s", target.url, error_kind, error_message,
            )
        return result

    async def _request_status(self, client: httpx.AsyncClient, url: str) -> int:
        """HEAD the URL; fall back to a streamed GET if HEAD is refused."""
        response = await client.head(url)
        if response.status_code not in HEAD_REJECTED_STATUSES:
            return response.status_code

        # Only the status line matters; do not download the body
        async with client.stream("GET", url) as streamed:
            return streamed.status_code
