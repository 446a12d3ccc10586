"""
FastAPI application factory.
"""

import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from regtrack import __version__
from regtrack.api.dependencies import cleanup_dependencies
from regtrack.api.middleware.timeout import TimeoutMiddleware
from regtrack.api.routes import health, health_checks, rate_limit, scheduler
from regtrack.config.settings import get_settings
from regtrack.observability.logging import bind_context, clear_context

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Regtrack API starting up")
    yield
    logger.info("Regtrack API shutting down")
    await cleanup_dependencies()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()

    openapi_tags = [
        {"name": "health", "description": "Service health checks"},
        {"name": "scheduler", "description": "Hourly job tick"},
        {"name": "rate-limit", "description": "Signup and verification rate limiting"},
        {"name": "health-checks", "description": "Regulation URL health checks"},
    ]

    app = FastAPI(
        title="Regtrack API",
        description="""
Scheduled polling, signup rate limiting and regulation URL health checks.

## Authentication

Requires `X-API-KEY` header for all requests except `/health` and
`/rate-limit/check`.
        """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=openapi_tags,
    )

    cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # Added before the logging middleware so the timeout wraps the whole request
    if settings.request_timeout_seconds > 0:
        app.add_middleware(
            TimeoutMiddleware,
            timeout_seconds=settings.request_timeout_seconds,
        )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = (
            request.headers.get("X-Request-ID")
            or request.headers.get("X-Correlation-ID")
            or str(uuid.uuid4())
        )
        bind_context(request_id=request_id)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
            duration = time.perf_counter() - start_time

            response.headers["X-Request-ID"] = request_id
            logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2),
            )
            return response
        finally:
            clear_context()

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "error_type": "internal"},
        )

    app.include_router(health.router, tags=["health"])
    app.include_router(scheduler.router, tags=["scheduler"])
    app.include_router(rate_limit.router, tags=["rate-limit"])
    app.include_router(health_checks.router, tags=["health-checks"])

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "service": "Regtrack API",
            "version": __version__,
            "docs": "/docs",
        }

    return app
