"""HTTP API for the scheduler tick, rate limiting and URL health checks."""

from regtrack.api.app import create_app

__all__ = ["create_app"]
