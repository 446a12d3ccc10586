"""Storage layer for rate limit windows and health check history."""

from regtrack.storage.database import Database

__all__ = ["Database"]
