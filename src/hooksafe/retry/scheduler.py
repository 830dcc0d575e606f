"""Retry scheduler: durable queue of events waiting to be re-driven.

Each event has at most one row in ``webhook_retries``. A new failure for the
same event updates that row in place (attempt number, error, next due time)
instead of inserting another one.

State machine::

    PENDING --(retry succeeds)--------------------> SUCCEEDED
    PENDING --(non-retryable / attempts exhausted)-> FAILED
    SUCCEEDED | FAILED --(schedule_retry)----------> PENDING

Example:
    ```python
    scheduler = RetryScheduler(db, batch_size=50, max_retries=5)

    await scheduler.schedule_retry(
        "evt_1", "invoice.paid", payload, signature, "connection reset"
    )

    for record in await scheduler.get_pending_retries():
        if await scheduler.acquire(record):
            ...
    ```
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from hooksafe.exceptions import StorageError
from hooksafe.models import RetryRecord, RetryStatus, utc_now
from hooksafe.storage import WebhookRetryRow, db_read_retry

from .backoff import compute_backoff

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from hooksafe.config import Settings
    from hooksafe.storage import Database

logger = logging.getLogger(__name__)


class RetryScheduler:
    """Persists retry records and answers which of them are due."""

    def __init__(
        self,
        db: Database,
        clock: Callable[[], datetime] = utc_now,
        random_source: Callable[[], float] = random.random,
        batch_size: int = 50,
        max_retries: int = 5,
        backoff_base_minutes: float = 1.0,
        backoff_cap_minutes: float = 60.0,
        backoff_jitter_fraction: float = 0.1,
        backoff_min_delay_minutes: float = 0.5,
        lease_seconds: float = 300.0,
    ) -> None:
        """Initialize the scheduler.

        Args:
            db: Initialized Database.
            clock: Source of the current UTC time.
            random_source: Returns a float in [0, 1) used for jitter.
            batch_size: Maximum records returned by get_pending_retries().
            max_retries: Attempts allowed per event, stored on each record.
            backoff_base_minutes: Delay before the first retry.
            backoff_cap_minutes: Upper bound on the exponential delay.
            backoff_jitter_fraction: Jitter as a fraction of the delay.
            backoff_min_delay_minutes: Floor applied after jitter.
            lease_seconds: How long acquire() holds a record.
        """
        self._db = db
        self._clock = clock
        self._random = random_source
        self._batch_size = batch_size
        self._max_retries = max_retries
        self._base_minutes = backoff_base_minutes
        self._cap_minutes = backoff_cap_minutes
        self._jitter_fraction = backoff_jitter_fraction
        self._min_delay_minutes = backoff_min_delay_minutes
        self._lease = timedelta(seconds=lease_seconds)

    @classmethod
    def from_settings(cls, db: Database, settings: Settings) -> RetryScheduler:
        """Build a scheduler from application settings."""
        return cls(
            db,
            batch_size=settings.retry_batch_size,
            max_retries=settings.max_retries,
            backoff_base_minutes=settings.backoff_base_minutes,
            backoff_cap_minutes=settings.backoff_cap_minutes,
            backoff_jitter_fraction=settings.backoff_jitter_fraction,
            backoff_min_delay_minutes=settings.backoff_min_delay_minutes,
            lease_seconds=settings.retry_lease_seconds,
        )

    @property
    def max_retries(self) -> int:
        return self._max_retries

    @property
    def batch_size(self) -> int:
        return self._batch_size

    def backoff(self, attempt_number: int) -> timedelta:
        """Delay before the given attempt, drawing jitter from the random source."""
        return compute_backoff(
            attempt_number,
            self._random(),
            base_minutes=self._base_minutes,
            cap_minutes=self._cap_minutes,
            jitter_fraction=self._jitter_fraction,
            min_delay_minutes=self._min_delay_minutes,
        )

    def next_retry_time(self, attempt_number: int) -> datetime:
        """Absolute time at which the given attempt becomes due."""
        return self._clock() + self.backoff(attempt_number)

    async def schedule_retry(
        self,
        event_id: str,
        event_type: str,
        payload: str,
        signature: str,
        error_message: str,
        attempt_number: int = 1,
    ) -> RetryRecord:
        """Create or update the retry record for an event.

        If attempt_number exceeds max_retries the record is stored as FAILED
        and will never be returned by get_pending_retries().

        Args:
            event_id: Provider event ID.
            event_type: Event type.
            payload: Raw body exactly as received.
            signature: Signature header exactly as received.
            error_message: Error from the failed attempt.
            attempt_number: Attempt to schedule (1-indexed).

        Returns:
            The stored record.
        """
        now = self._clock()
        next_retry_at = now + self.backoff(attempt_number)
        status = (
            RetryStatus.FAILED if attempt_number > self._max_retries else RetryStatus.PENDING
        )
        values = {
            "event_type": event_type,
            "payload": payload,
            "signature": signature,
            "attempt_number": attempt_number,
            "max_retries": self._max_retries,
            "status": status.value,
            "next_retry_at": next_retry_at,
            "last_error_message": error_message,
            "updated_at": now,
        }

        async with self._db.session() as session:
            row = await self._get_row(session, event_id)
            if row is None:
                row = WebhookRetryRow(event_id=event_id, created_at=now, **values)
                session.add(row)
                try:
                    await session.flush()
                except IntegrityError:
                    # A concurrent caller inserted first; update its row instead
                    await session.rollback()
                    row = await self._get_row(session, event_id)
                    if row is None:
                        raise StorageError(
                            f"Retry record for {event_id} conflicted but could not be read"
                        ) from None
                    self._apply(row, values)
            else:
                self._apply(row, values)
            await session.flush()
            record = RetryRecord.model_validate(row)

        if status is RetryStatus.FAILED:
            logger.warning(
                "Webhook retry attempts exhausted",
                extra={**record.summary(), "error": error_message},
            )
        else:
            logger.info("Scheduled webhook retry", extra=record.summary())
        return record

    @db_read_retry
    async def get_pending_retries(self) -> list[RetryRecord]:
        """Return due PENDING records, oldest due first, at most batch_size of them.

        Records whose next_retry_at is in the future or whose attempt number
        exceeds their max_retries are never returned.
        """
        now = self._clock()
        async with self._db.session() as session:
            result = await session.scalars(
                select(WebhookRetryRow)
                .where(
                    WebhookRetryRow.status == RetryStatus.PENDING.value,
                    WebhookRetryRow.next_retry_at <= now,
                    WebhookRetryRow.attempt_number <= WebhookRetryRow.max_retries,
                )
                .order_by(WebhookRetryRow.next_retry_at, WebhookRetryRow.id)
                .limit(self._batch_size)
            )
            return [RetryRecord.model_validate(row) for row in result.all()]

    async def acquire(self, record: RetryRecord) -> bool:
        """Lease a due record so only one sweeper re-drives it.

        Pushes next_retry_at forward by the lease duration, but only if the
        record is still PENDING, still on the same attempt and still due. A
        lease that is never resolved expires on its own.

        Returns:
            True if this call took the lease, False if someone else holds it
            or the record already moved on.
        """
        now = self._clock()
        async with self._db.session() as session:
            result = await session.execute(
                update(WebhookRetryRow)
                .where(
                    WebhookRetryRow.event_id == record.event_id,
                    WebhookRetryRow.status == RetryStatus.PENDING.value,
                    WebhookRetryRow.attempt_number == record.attempt_number,
                    WebhookRetryRow.next_retry_at <= now,
                )
                .values(next_retry_at=now + self._lease, updated_at=now)
            )

        acquired = result.rowcount == 1
        if not acquired:
            logger.debug(
                "Retry lease not acquired",
                extra={"event_id": record.event_id, "attempt_number": record.attempt_number},
            )
        return acquired

    async def mark_succeeded(self, event_id: str) -> None:
        """Resolve a PENDING record as SUCCEEDED. No-op if there is none."""
        now = self._clock()
        async with self._db.session() as session:
            result = await session.execute(
                update(WebhookRetryRow)
                .where(
                    WebhookRetryRow.event_id == event_id,
                    WebhookRetryRow.status == RetryStatus.PENDING.value,
                )
                .values(status=RetryStatus.SUCCEEDED.value, updated_at=now)
            )

        if result.rowcount == 0:
            logger.warning(
                "No pending retry to mark as succeeded",
                extra={"event_id": event_id},
            )
        else:
            logger.info("Webhook retry succeeded", extra={"event_id": event_id})

    async def mark_abandoned(self, event_id: str, error_message: str) -> None:
        """Mark a record FAILED so it is never retried again. No-op if missing."""
        now = self._clock()
        async with self._db.session() as session:
            result = await session.execute(
                update(WebhookRetryRow)
                .where(WebhookRetryRow.event_id == event_id)
                .values(
                    status=RetryStatus.FAILED.value,
                    last_error_message=error_message,
                    updated_at=now,
                )
            )

        if result.rowcount == 0:
            logger.warning(
                "No retry record to abandon",
                extra={"event_id": event_id},
            )
        else:
            logger.warning(
                "Webhook retry abandoned",
                extra={"event_id": event_id, "error": error_message},
            )

    async def get_retry(self, event_id: str) -> RetryRecord | None:
        """Get the retry record for an event, if one was ever scheduled."""
        async with self._db.session() as session:
            row = await self._get_row(session, event_id)
            if row is None:
                return None
            return RetryRecord.model_validate(row)

    async def list_retries(
        self,
        status: RetryStatus | None = None,
        limit: int = 100,
    ) -> list[RetryRecord]:
        """List retry records, optionally filtered by status, soonest due first."""
        stmt = select(WebhookRetryRow)
        if status is not None:
            stmt = stmt.where(WebhookRetryRow.status == status.value)
        stmt = stmt.order_by(WebhookRetryRow.next_retry_at, WebhookRetryRow.id).limit(limit)

        async with self._db.session() as session:
            result = await session.scalars(stmt)
            return [RetryRecord.model_validate(row) for row in result.all()]

    @staticmethod
    async def _get_row(session: AsyncSession, event_id: str) -> WebhookRetryRow | None:
        return await session.scalar(
            select(WebhookRetryRow).where(WebhookRetryRow.event_id == event_id)
        )

    @staticmethod
    def _apply(row: WebhookRetryRow, values: dict[str, object]) -> None:
        for key, value in values.items():
            setattr(row, key, value)
