"""Background sweeper that re-drives due retries.

The sweeper runs as one asyncio task per process. Every interval it pulls a
bounded batch of due records from the scheduler and hands each one to the
orchestrator's retry path. Failures are contained per record: one bad event
never stops the rest of the batch, and a failed batch fetch only costs one
interval.

Stopping is cooperative. A stop request during the sleep ends the loop
immediately; a stop request mid-batch lets the current record finish and
starts no new ones.

Example:
    ```python
    sweeper = RetrySweeper(orchestrator, scheduler, interval_seconds=60)
    await sweeper.start()
    ...
    await sweeper.stop()
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from hooksafe.logging import get_logger

if TYPE_CHECKING:
    from hooksafe.webhooks.orchestrator import WebhookOrchestrator

    from .scheduler import RetryScheduler

logger = get_logger(__name__)


def _cancel_requested() -> bool:
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


class SweepResult(BaseModel):
    """Counts from one sweep.

    Attributes:
        fetched: Due records returned by the scheduler.
        succeeded: Records whose retry attempt completed.
        failed: Records whose retry attempt raised.
        skipped: Records leased by another sweeper or left unstarted on stop.
        fetch_failed: True if the batch itself could not be loaded.
    """

    fetched: int = Field(default=0, ge=0)
    succeeded: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    fetch_failed: bool = False


class RetrySweeper:
    """Polls the scheduler and re-drives due retries through the orchestrator."""

    def __init__(
        self,
        orchestrator: WebhookOrchestrator,
        scheduler: RetryScheduler,
        interval_seconds: float = 60.0,
    ) -> None:
        """Initialize the sweeper.

        Args:
            orchestrator: Orchestrator whose process_retry() re-drives records.
            scheduler: Source of due records.
            interval_seconds: Seconds to wait between sweeps.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self._orchestrator = orchestrator
        self._scheduler = scheduler
        self._interval = interval_seconds
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        """True while the background task is alive."""
        return self._task is not None and not self._task.done()

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    async def sweep_once(self) -> SweepResult:
        """Run one sweep over the current batch of due retries.

        Never raises for a single record's failure or for a failed fetch;
        both are logged and reflected in the result.
        """
        try:
            records = await self._scheduler.get_pending_retries()
        except Exception:
            logger.exception("Failed to fetch due webhook retries")
            return SweepResult(fetch_failed=True)

        result = SweepResult(fetched=len(records))
        if not records:
            logger.debug("No webhook retries due")
            return result

        logger.info("Sweep started", due=len(records))

        for index, record in enumerate(records):
            if self.stop_requested:
                result.skipped += len(records) - index
                logger.info("Sweep interrupted by stop request", remaining=len(records) - index)
                break

            try:
                ran = await self._orchestrator.process_retry(record)
            except (Exception, asyncio.CancelledError) as e:
                # Only a cancel aimed at this task ends the sweep
                if isinstance(e, asyncio.CancelledError) and _cancel_requested():
                    raise
                result.failed += 1
                logger.warning(
                    "Webhook retry attempt failed",
                    event_id=record.event_id,
                    event_type=record.event_type,
                    attempt_number=record.attempt_number,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue

            if ran:
                result.succeeded += 1
            else:
                result.skipped += 1

        logger.info(
            "Sweep finished",
            fetched=result.fetched,
            succeeded=result.succeeded,
            failed=result.failed,
            skipped=result.skipped,
        )
        return result

    async def run(self) -> None:
        """Sweep, then sleep, until stop is requested."""
        logger.info("Retry sweeper started", interval_seconds=self._interval)
        try:
            while not self.stop_requested:
                await self.sweep_once()

                # Sleep, waking early if stop is requested
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
        finally:
            logger.info("Retry sweeper stopped")

    async def start(self) -> None:
        """Start the sweep loop as a background task."""
        if self.is_running:
            logger.warning("Retry sweeper already running")
            return

        self._stop_event.clear()
        self._task = asyncio.create_task(self.run(), name="hooksafe-retry-sweeper")

    async def stop(self, timeout: float = 30.0) -> None:
        """Request a stop and wait for the loop to exit.

        The record being processed is allowed to finish. If the loop has not
        exited after timeout seconds, the task is cancelled.
        """
        self._stop_event.set()

        if self._task is None:
            return

        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=timeout)
        except TimeoutError:
            logger.warning("Retry sweeper shutdown timed out, cancelling", timeout=timeout)
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        finally:
            self._task = None
