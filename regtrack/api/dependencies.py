"""
Dependency injection for FastAPI endpoints.

Services are module-level singletons created on first request and torn
down by ``cleanup_dependencies()`` at shutdown. Tests replace them with
``app.dependency_overrides``.
"""

from regtrack.config.settings import get_settings
from regtrack.healthcheck.channels import build_channels
from regtrack.healthcheck.config import HealthCheckConfig, NotificationConfig
from regtrack.healthcheck.repository import HealthCheckRepository
from regtrack.healthcheck.service import HealthCheckService
from regtrack.probing.prober import URLProber
from regtrack.ratelimit.config import RateLimitConfig
from regtrack.ratelimit.repository import PostgresRateLimitStore
from regtrack.ratelimit.service import RateLimiter
from regtrack.ratelimit.store import InMemoryRateLimitStore, RateLimitStore
from regtrack.scheduler.config import SchedulerConfig
from regtrack.scheduler.dispatcher import JobDispatcher
from regtrack.scheduler.jobs import build_jobs
from regtrack.storage.database import Database

# Global service instances (initialized on first request)
_database: Database | None = None
_rate_limiter: RateLimiter | None = None
_health_check_repository: HealthCheckRepository | None = None
_health_check_service: HealthCheckService | None = None
_dispatcher: JobDispatcher | None = None


async def get_database() -> Database:
    """Get the shared, connected database."""
    global _database

    if _database is None:
        database = Database()
        await database.connect()
        _database = database

    return _database


async def get_rate_limiter() -> RateLimiter:
    """
    Get rate limiter instance.

    Window storage follows ``RATE_LIMIT_BACKEND``: the Postgres table
    (shared across replicas) or process memory.
    """
    global _rate_limiter

    if _rate_limiter is None:
        settings = get_settings()
        store: RateLimitStore
        if settings.rate_limit_backend == "memory":
            store = InMemoryRateLimitStore()
        else:
            store = PostgresRateLimitStore(await get_database())
        _rate_limiter = RateLimiter(store, RateLimitConfig())

    return _rate_limiter


async def get_health_check_repository() -> HealthCheckRepository:
    global _health_check_repository

    if _health_check_repository is None:
        _health_check_repository = HealthCheckRepository(await get_database())

    return _health_check_repository


async def get_health_check_service() -> HealthCheckService:
    global _health_check_service

    if _health_check_service is None:
        _health_check_service = HealthCheckService(
            repository=await get_health_check_repository(),
            prober=URLProber(),
            channels=build_channels(NotificationConfig()),
            config=HealthCheckConfig(),
        )

    return _health_check_service


async def get_dispatcher() -> JobDispatcher:
    """Get the tick dispatcher. One instance so the overlap guard is shared."""
    global _dispatcher

    if _dispatcher is None:
        config = SchedulerConfig()
        health_service = (
            await get_health_check_service() if config.health_check_enabled else None
        )
        _dispatcher = JobDispatcher(build_jobs(config, health_service), config)

    return _dispatcher


async def cleanup_dependencies() -> None:
    """Clean up global dependencies on shutdown."""
    global _database, _rate_limiter, _health_check_repository, _health_check_service, _dispatcher

    _dispatcher = None
    _health_check_service = None
    _health_check_repository = None
    _rate_limiter = None

    if _database is not None:
        await _database.close()
        _database = None
