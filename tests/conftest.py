"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import sys
from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import pytest_asyncio

from hooksafe.ledger import IdempotencyLedger
from hooksafe.retry import RetryScheduler
from hooksafe.storage import Database

# Add tests directory to path so factories can be imported
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))


class FakeClock:
    """Controllable clock returning timezone-aware UTC datetimes."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        """Move time forward by a timedelta built from kwargs."""
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    """Clock frozen at a fixed instant."""
    return FakeClock(datetime(2026, 3, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """SQLite URL for a fresh per-test database file."""
    return f"sqlite+aiosqlite:///{tmp_path / 'hooksafe.db'}"


@pytest_asyncio.fixture
async def db(database_url: str) -> AsyncIterator[Database]:
    """Initialized database with all tables created."""
    database = Database(database_url)
    await database.initialize()
    yield database
    await database.close()


@pytest.fixture
def ledger(db: Database, clock: FakeClock) -> IdempotencyLedger:
    """Ledger backed by the test database."""
    return IdempotencyLedger(db, clock=clock)


@pytest.fixture
def scheduler(db: Database, clock: FakeClock) -> RetryScheduler:
    """Scheduler with no jitter (random source fixed at 0.5)."""
    return RetryScheduler(db, clock=clock, random_source=lambda: 0.5)
