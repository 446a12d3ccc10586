"""Pytest fixtures for regtrack tests."""

import logging
from datetime import datetime, timedelta, timezone

import pytest
import structlog

from regtrack.config.settings import get_settings
from regtrack.observability.logging import HANDLER_NAME
from regtrack.probing.schemas import ProbeTarget


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _reset_logging():
    """Undo setup_logging() calls made by CLI and logging tests."""
    yield
    root = logging.getLogger()
    root.handlers = [h for h in root.handlers if h.get_name() != HANDLER_NAME]
    structlog.reset_defaults()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 2, 10, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def sample_targets() -> list[ProbeTarget]:
    return [
        ProbeTarget(
            url="https://www.cdtfa.ca.gov/industry/cannabis.htm",
            owner_tag="CA",
            title="CDTFA Cannabis Tax",
        ),
        ProbeTarget(
            url="https://cannabis.ca.gov/resources/rules-and-regulations/",
            owner_tag="CA",
            title="DCC Rules and Regulations",
        ),
        ProbeTarget(
            url="https://www.federalregister.gov/",
            category="agency_root",
            owner_tag="Federal",
            title="Federal Register",
        ),
    ]
