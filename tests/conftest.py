"""Test configuration for pytest."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from finance_ledger.persistence.database import LedgerStore
from finance_ledger.service.manager import LedgerManager


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")


class FakeClock:
    """Deterministic clock that moves forward one day per reading."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(days=1)):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store():
    """In-memory store, closed after the test."""
    with LedgerStore.open(":memory:") as store:
        yield store


@pytest.fixture
def manager(store, clock) -> LedgerManager:
    return LedgerManager(store=store, clock=clock)
