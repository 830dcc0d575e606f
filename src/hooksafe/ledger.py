"""Idempotency ledger: durable record of every event ID ever claimed.

Claiming is an insert into a table keyed by event_id. When two deliveries of
the same event race, the database lets exactly one insert through and rejects
the other with a unique-constraint violation, which is reported as "already
claimed". No in-process lock is involved, so the guarantee holds across any
number of processes sharing the database.

Example:
    ```python
    ledger = IdempotencyLedger(db)

    if await ledger.try_claim("evt_123", "invoice.paid"):
        ...  # first delivery: process it
    else:
        ...  # duplicate: skip
    ```
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import IntegrityError

from hooksafe.models import ProcessedEventRecord, utc_now
from hooksafe.storage import Database, ProcessedWebhookEventRow

logger = logging.getLogger(__name__)


class IdempotencyLedger:
    """Claim store answering "has this event already been accepted?".

    Storage errors other than the claim conflict propagate to the caller.
    """

    def __init__(
        self,
        db: Database,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the ledger.

        Args:
            db: Initialized Database.
            clock: Source of the current UTC time.
        """
        self._db = db
        self._clock = clock

    async def try_claim(self, event_id: str, event_type: str) -> bool:
        """Attempt to claim an event for processing.

        Args:
            event_id: Provider event ID.
            event_type: Event type, stored for audit.

        Returns:
            True if this call created the ledger entry, False if the event was
            already claimed (a duplicate delivery).
        """
        if not event_id:
            raise ValueError("event_id must be a non-empty string")

        async with self._db.session() as session:
            try:
                await session.execute(
                    insert(ProcessedWebhookEventRow).values(
                        event_id=event_id,
                        event_type=event_type,
                        processed_at=self._clock(),
                        is_successful=True,
                        error_message=None,
                    )
                )
            except IntegrityError:
                await session.rollback()
                logger.info(
                    "Webhook event already claimed",
                    extra={"event_id": event_id, "event_type": event_type},
                )
                return False

        logger.info(
            "Claimed webhook event",
            extra={"event_id": event_id, "event_type": event_type},
        )
        return True

    async def mark_successful(self, event_id: str) -> None:
        """Record that processing succeeded. No-op if the event was never claimed."""
        async with self._db.session() as session:
            result = await session.execute(
                update(ProcessedWebhookEventRow)
                .where(ProcessedWebhookEventRow.event_id == event_id)
                .values(is_successful=True, error_message=None)
            )

        if result.rowcount == 0:
            logger.warning(
                "Attempted to mark unknown webhook event as successful",
                extra={"event_id": event_id},
            )

    async def mark_failed(self, event_id: str, error_message: str) -> None:
        """Record that processing failed. No-op if the event was never claimed."""
        async with self._db.session() as session:
            result = await session.execute(
                update(ProcessedWebhookEventRow)
                .where(ProcessedWebhookEventRow.event_id == event_id)
                .values(is_successful=False, error_message=error_message)
            )

        if result.rowcount == 0:
            logger.warning(
                "Attempted to mark unknown webhook event as failed",
                extra={"event_id": event_id},
            )

    async def get(self, event_id: str) -> ProcessedEventRecord | None:
        """Get the ledger entry for an event, or None if it was never claimed."""
        async with self._db.session() as session:
            row = await session.scalar(
                select(ProcessedWebhookEventRow).where(
                    ProcessedWebhookEventRow.event_id == event_id
                )
            )
            if row is None:
                return None
            return ProcessedEventRecord.model_validate(row)

    async def count(self) -> int:
        """Number of events ever claimed."""
        async with self._db.session() as session:
            total = await session.scalar(
                select(func.count()).select_from(ProcessedWebhookEventRow)
            )
        return int(total or 0)
