"""Tests for the database wrapper."""

from __future__ import annotations

import pytest
from sqlalchemy import inspect, select
from sqlalchemy.exc import IntegrityError, OperationalError
from tenacity import wait_none

from hooksafe.exceptions import StorageError
from hooksafe.models import utc_now
from hooksafe.storage import Database, ProcessedWebhookEventRow, db_read_retry


class TestDatabase:
    """Tests for Database lifecycle and sessions."""

    def test_engine_before_initialize(self, database_url: str) -> None:
        """Using the engine before initialize() raises StorageError."""
        db = Database(database_url)
        assert not db.is_initialized
        with pytest.raises(StorageError):
            _ = db.engine

    @pytest.mark.asyncio
    async def test_session_before_initialize(self, database_url: str) -> None:
        """Opening a session before initialize() raises StorageError."""
        db = Database(database_url)
        with pytest.raises(StorageError):
            async with db.session():
                pass

    @pytest.mark.asyncio
    async def test_creates_tables(self, db: Database) -> None:
        """initialize() creates both tables."""
        async with db.engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        assert {"processed_webhook_events", "webhook_retries"} <= set(tables)

    @pytest.mark.asyncio
    async def test_ping(self, db: Database) -> None:
        """ping() succeeds on a live database."""
        assert await db.ping() is True

    @pytest.mark.asyncio
    async def test_session_commits(self, db: Database) -> None:
        """Changes made in a session are committed on exit."""
        async with db.session() as session:
            session.add(
                ProcessedWebhookEventRow(
                    event_id="evt_1", event_type="t", processed_at=utc_now(), is_successful=True
                )
            )

        async with db.session() as session:
            row = await session.scalar(select(ProcessedWebhookEventRow))
        assert row is not None
        assert row.event_id == "evt_1"

    @pytest.mark.asyncio
    async def test_session_rolls_back_on_error(self, db: Database) -> None:
        """Changes are rolled back when the block raises."""
        with pytest.raises(RuntimeError):
            async with db.session() as session:
                session.add(
                    ProcessedWebhookEventRow(
                        event_id="evt_1", event_type="t", processed_at=utc_now(), is_successful=True
                    )
                )
                await session.flush()
                raise RuntimeError("abort")

        async with db.session() as session:
            assert await session.scalar(select(ProcessedWebhookEventRow)) is None

    @pytest.mark.asyncio
    async def test_context_manager(self, database_url: str) -> None:
        """Database works as an async context manager."""
        async with Database(database_url) as db:
            assert db.is_initialized
        assert not db.is_initialized


class TestReadRetry:
    """Tests for the db_read_retry decorator."""

    @pytest.mark.asyncio
    async def test_retries_operational_errors(self) -> None:
        """Transient operational errors are retried until success."""
        calls = 0

        @db_read_retry
        async def flaky() -> str:
            nonlocal calls
            calls += 1
            if calls < 3:
                raise OperationalError("SELECT", {}, Exception("database is locked"))
            return "ok"

        assert await flaky.retry_with(wait=wait_none())() == "ok"
        assert calls == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_three_attempts(self) -> None:
        """The original error propagates once attempts are exhausted."""
        calls = 0

        @db_read_retry
        async def broken() -> None:
            nonlocal calls
            calls += 1
            raise OperationalError("SELECT", {}, Exception("connection refused"))

        with pytest.raises(OperationalError):
            await broken.retry_with(wait=wait_none())()
        assert calls == 3

    @pytest.mark.asyncio
    async def test_other_errors_not_retried(self) -> None:
        """Integrity errors are not transient and fail immediately."""
        calls = 0

        @db_read_retry
        async def conflicting() -> None:
            nonlocal calls
            calls += 1
            raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

        with pytest.raises(IntegrityError):
            await conflicting()
        assert calls == 1
