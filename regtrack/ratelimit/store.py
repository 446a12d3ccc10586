"""Window storage for the rate limiter.

A store hands out a *slot* for one ``(subject, action)`` key while holding
that key's lock, so the limiter's read-decide-write sequence is atomic
with respect to other callers of the same key. Different keys never share
a lock.

Pattern: ABC + in-memory implementation (Postgres lives in
``repository.py``).
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import datetime, timezone

from regtrack.ratelimit.schemas import RateLimitAction, RateLimitWindow

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WindowSlot(ABC):
    """Locked view of one key's window."""

    @property
    @abstractmethod
    def window(self) -> RateLimitWindow | None:
        """The stored window, or None if the key has never been seen."""

    @abstractmethod
    async def write(self, window: RateLimitWindow) -> None:
        """Insert or replace the window for this key."""


class RateLimitStore(ABC):
    """Abstract base for rate limit window stores."""

    @abstractmethod
    def locked(
        self, subject: str, action: RateLimitAction
    ) -> AbstractAsyncContextManager[WindowSlot]:
        """Lock the key and yield its slot until the context exits."""

    @abstractmethod
    async def get(
        self, subject: str, action: RateLimitAction
    ) -> RateLimitWindow | None:
        """Read a window without locking (inspection only)."""

    @abstractmethod
    async def clear_subject(self, subject: str) -> int:
        """Delete every window for a subject. Returns rows removed."""


class _MemorySlot(WindowSlot):
    def __init__(
        self,
        store: "InMemoryRateLimitStore",
        key: tuple[str, RateLimitAction],
    ) -> None:
        self._store = store
        self._key = key

    @property
    def window(self) -> RateLimitWindow | None:
        return self._store._windows.get(self._key)

    async def write(self, window: RateLimitWindow) -> None:
        self._store._windows[self._key] = window


class InMemoryRateLimitStore(RateLimitStore):
    """Process-local store with one ``asyncio.Lock`` per key.

    Suitable for single-process deployments and tests. Windows are lost on
    restart, which only ever errs towards allowing attempts.

    Keys come from callers (IPs, emails), so expired windows are swept every
    ``prune_every`` lock acquisitions. A key's lock is dropped only once no
    caller holds or waits on it.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] | None = None,
        prune_every: int = 1024,
    ) -> None:
        self._windows: dict[tuple[str, RateLimitAction], RateLimitWindow] = {}
        self._locks: dict[tuple[str, RateLimitAction], asyncio.Lock] = {}
        self._users: dict[tuple[str, RateLimitAction], int] = {}
        self._clock = clock or _utcnow
        self._prune_every = prune_every
        self._acquisitions = 0

    @asynccontextmanager
    async def locked(
        self, subject: str, action: RateLimitAction
    ) -> AsyncIterator[WindowSlot]:
        self._acquisitions += 1
        if self._prune_every and self._acquisitions % self._prune_every == 0:
            self.prune_expired()

        key = (subject, action)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield _MemorySlot(self, key)
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                if key not in self._windows:
                    self._locks.pop(key, None)

    def prune_expired(self, now: datetime | None = None) -> int:
        """Drop expired windows nobody is using. Returns windows removed."""
        now = now or self._clock()
        expired = [
            key for key, window in self._windows.items()
            if window.is_expired(now) and key not in self._users
        ]
        for key in expired:
            del self._windows[key]
            self._locks.pop(key, None)
        if expired:
            logger.debug("Pruned %d expired rate limit windows", len(expired))
        return len(expired)

    async def get(
        self, subject: str, action: RateLimitAction
    ) -> RateLimitWindow | None:
        return self._windows.get((subject, action))

    async def clear_subject(self, subject: str) -> int:
        keys = [k for k in self._windows if k[0] == subject]
        for key in keys:
            del self._windows[key]
            if key not in self._users:
                self._locks.pop(key, None)
        logger.info("Cleared %d rate limit windows for subject", len(keys))
        return len(keys)

    def __len__(self) -> int:
        return len(self._windows)
