"""
Command-line interface for regtrack.

Usage:
    regtrack serve              # Run the API server
    regtrack init-db            # Create tables
    regtrack tick               # Run one scheduler tick (hourly cron)
    regtrack health-check       # Check all monitored URLs now
    regtrack probe URL...       # Probe URLs without persisting
    regtrack seed-urls FILE     # Load monitored URLs from CSV
    regtrack clear-rate-limit S # Clear all windows for an IP or email
"""

import asyncio
import csv
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

import click

from regtrack.config.settings import get_settings
from regtrack.observability.logging import setup_logging
from regtrack.observability.metrics import get_metrics

# Advisory lock shared by every `regtrack tick` process on the same database
TICK_LOCK_NAME = "regtrack:scheduler-tick"


def _read_targets_csv(path: str) -> list[Any]:
    """Read ``url,category,owner_tag,title`` rows (header required)."""
    from regtrack.probing.schemas import ProbeTarget

    targets = []
    with Path(path).open(newline="", encoding="utf-8") as fh:
        for row in csv.DictReader(fh):
            url = (row.get("url") or "").strip()
            if not url:
                continue
            targets.append(ProbeTarget(
                url=url,
                category=(row.get("category") or "regulation_page").strip(),
                owner_tag=(row.get("owner_tag") or "Unknown").strip(),
                title=(row.get("title") or "").strip(),
            ))
    return targets


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Regtrack - scheduled polling, rate limiting and URL health checks."""
    if debug:
        import os
        os.environ["LOG_LEVEL"] = "DEBUG"
        get_settings.cache_clear()

    setup_logging()


@main.command()
@click.option("--host", default=None, help="API server host")
@click.option("--port", default=None, type=int, help="API server port")
@click.option("--reload", is_flag=True, help="Enable auto-reload (dev only)")
@click.option("--metrics-port", default=None, type=int, help="Metrics server port")
def serve(host: str | None, port: int | None, reload: bool, metrics_port: int | None) -> None:
    """Start the API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    metrics_port = metrics_port or settings.metrics_port

    get_metrics().start_server(port=metrics_port)

    click.echo(f"Starting API server on {host}:{port}")
    click.echo(f"Metrics available on http://localhost:{metrics_port}/metrics")
    click.echo(f"API docs available on http://localhost:{port}/docs")

    uvicorn.run(
        "regtrack.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema."""
    from regtrack.healthcheck.repository import HealthCheckRepository
    from regtrack.ratelimit.repository import PostgresRateLimitStore
    from regtrack.storage.database import Database

    async def run():
        async with Database() as db:
            await PostgresRateLimitStore(db).create_table()
            await HealthCheckRepository(db).create_tables()

        click.echo("Database initialized successfully")

    asyncio.run(run())


@main.command()
@click.option(
    "--at", "at", default=None, type=click.DateTime(formats=["%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M"]),
    help="Tick time in UTC (default: now)",
)
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
def tick(at: datetime | None, as_json: bool) -> None:
    """Run one scheduler tick.

    Designed for cron scheduling: 0 * * * * regtrack tick

    Each cron run is a new process, so overlapping runs are detected with a
    Postgres advisory lock. A run that finds the lock taken executes no jobs
    and reports every job as skipped.
    """
    from regtrack.healthcheck.channels import build_channels
    from regtrack.healthcheck.config import NotificationConfig
    from regtrack.healthcheck.repository import HealthCheckRepository
    from regtrack.healthcheck.service import HealthCheckService
    from regtrack.scheduler.config import SchedulerConfig
    from regtrack.scheduler.dispatcher import JobDispatcher
    from regtrack.scheduler.jobs import build_jobs
    from regtrack.storage.database import Database

    async def run():
        config = SchedulerConfig()
        async with Database() as db:
            health_service = HealthCheckService(
                HealthCheckRepository(db),
                channels=build_channels(NotificationConfig()),
            )
            dispatcher = JobDispatcher(build_jobs(config, health_service), config)
            async with db.try_advisory_lock(TICK_LOCK_NAME) as acquired:
                if acquired:
                    report = await dispatcher.tick(at)
                else:
                    report = dispatcher.overlap_report(at)

        if as_json:
            click.echo(json.dumps(report.to_dict(), indent=2))
            return

        click.echo(f"\nTick at {report.executed_at.isoformat()} (hour {report.current_hour}):")
        for job in report.jobs:
            if not job.triggered:
                icon, color = "-", "yellow"
            elif job.success:
                icon, color = "✓", "green"
            else:
                icon, color = "✗", "red"
            click.echo(click.style(
                f"  {icon} {job.job_name}: {job.message}"
                + (f" ({job.records_affected} records)" if job.records_affected else ""),
                fg=color,
            ))
        click.echo(f"  Elapsed: {report.execution_time_ms:.0f}ms")

        if report.failed:
            sys.exit(1)

    asyncio.run(run())


@main.command("health-check")
def health_check() -> None:
    """Probe every monitored URL, persist results and notify on breakage."""
    from regtrack.healthcheck.channels import build_channels
    from regtrack.healthcheck.config import NotificationConfig
    from regtrack.healthcheck.repository import HealthCheckRepository
    from regtrack.healthcheck.service import HealthCheckService
    from regtrack.storage.database import Database

    async def run():
        async with Database() as db:
            service = HealthCheckService(
                HealthCheckRepository(db),
                channels=build_channels(NotificationConfig()),
            )
            summary = await service.run_health_check()

        click.echo(f"\nHealth check {summary.run_id}:")
        click.echo(f"  Total:         {summary.total}")
        click.echo(f"  Valid:         {summary.valid}")
        click.echo(f"  Invalid:       {summary.invalid}")
        click.echo(f"  Not attempted: {summary.not_attempted}")
        click.echo(f"  Notified:      {summary.notified}")

        for owner, records in sorted(summary.broken_by_owner().items()):
            click.echo(click.style(f"\n  {owner}:", fg="red"))
            for record in records:
                click.echo(f"    - {record.url} ({record.error})")

    asyncio.run(run())


@main.command()
@click.argument("urls", nargs=-1)
@click.option("--file", "csv_file", default=None, type=click.Path(exists=True, dir_okay=False),
              help="CSV with url,category,owner_tag,title columns")
@click.option("--concurrency", default=None, type=click.IntRange(1, 200), help="Probes in flight")
@click.option("--timeout", default=None, type=float, help="Per-request timeout in seconds")
@click.option("--deadline", default=None, type=float, help="Deadline for the whole batch")
def probe(
    urls: tuple[str, ...],
    csv_file: str | None,
    concurrency: int | None,
    timeout: float | None,
    deadline: float | None,
) -> None:
    """Probe URLs and print reachability. Nothing is persisted."""
    from regtrack.healthcheck.service import dedupe_targets
    from regtrack.probing.prober import URLProber
    from regtrack.probing.schemas import ProbeTarget

    targets = [ProbeTarget(url=u) for u in urls]
    if csv_file:
        targets.extend(_read_targets_csv(csv_file))
    targets = dedupe_targets(targets)

    if not targets:
        raise click.UsageError("Give at least one URL or --file")

    async def run():
        batch = await URLProber().probe_all(
            targets,
            concurrency=concurrency,
            per_request_timeout=timeout,
            deadline=deadline,
        )

        for result in sorted(batch.results, key=lambda r: (r.reachable, r.url)):
            if result.reachable:
                line = click.style(f"  ✓ {result.status_code} {result.url}", fg="green")
            else:
                line = click.style(
                    f"  ✗ {result.url} [{result.error_kind}] {result.error_message or ''}",
                    fg="red",
                )
            click.echo(f"{line}  ({result.latency_ms:.0f}ms)")

        click.echo(
            f"\n{len(batch.results) - len(batch.unreachable)} reachable, "
            f"{len(batch.unreachable)} unreachable, {batch.not_attempted} not attempted"
        )
        if batch.unreachable:
            sys.exit(1)

    asyncio.run(run())


@main.command("seed-urls")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
def seed_urls(csv_file: str) -> None:
    """Upsert monitored URLs from a CSV (url,category,owner_tag,title)."""
    from regtrack.healthcheck.repository import HealthCheckRepository
    from regtrack.storage.database import Database

    targets = _read_targets_csv(csv_file)

    async def run():
        async with Database() as db:
            written = await HealthCheckRepository(db).upsert_targets(targets)
        click.echo(f"Seeded {written} monitored URLs")

    asyncio.run(run())


@main.command("deactivate-url")
@click.argument("url")
def deactivate_url(url: str) -> None:
    """Stop health-checking a monitored URL. Its past results are kept."""
    from regtrack.healthcheck.repository import HealthCheckRepository
    from regtrack.storage.database import Database

    async def run():
        async with Database() as db:
            found = await HealthCheckRepository(db).deactivate_target(url)
        if not found:
            click.echo(f"Not a monitored URL: {url}", err=True)
            sys.exit(1)
        click.echo(f"Deactivated {url}")

    asyncio.run(run())


@main.command("clear-rate-limit")
@click.argument("subject")
def clear_rate_limit(subject: str) -> None:
    """Remove every rate limit window for an IP address or email."""
    from regtrack.ratelimit.repository import PostgresRateLimitStore
    from regtrack.ratelimit.service import RateLimiter
    from regtrack.storage.database import Database

    async def run():
        async with Database() as db:
            cleared = await RateLimiter(PostgresRateLimitStore(db)).clear_subject(subject)
        click.echo(f"Cleared {cleared} rate limit windows for {subject}")

    asyncio.run(run())


if __name__ == "__main__":
    main()
