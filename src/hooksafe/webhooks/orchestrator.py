"""Webhook orchestrator: the single entry point for inbound events.

handle_webhook() is the synchronous path, called once per received request:

    verify -> claim -> process -> mark ledger
                          |
                          +-- fails -> mark ledger failed
                                       -> retryable?  schedule attempt 1
                                       -> re-raise either way

process_retry() is the sweeper path. It leases the record, re-verifies the
stored payload and re-runs the processor without claiming again (the original
delivery already owns the claim), then resolves the retry record.

Failures are never swallowed. The caller always sees the processor's original
exception after the outcome has been recorded.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from hooksafe.exceptions import ConfigurationError, VerificationError
from hooksafe.logging import bind_context, get_logger, unbind_context
from hooksafe.retry.classifier import is_retryable
from hooksafe.retry.translation import translate_error

from .verification import EventVerifier, HmacEventVerifier

if TYPE_CHECKING:
    from hooksafe.ledger import IdempotencyLedger
    from hooksafe.models import RetryRecord, WebhookEvent
    from hooksafe.retry.scheduler import RetryScheduler

    from .processor import EventProcessor

logger = get_logger(__name__)

_CONTEXT_KEYS = ("event_id", "event_type", "attempt_number")


def _error_message(error: BaseException) -> str:
    return str(error) or type(error).__name__


class WebhookOrchestrator:
    """Verifies, deduplicates, processes and retries webhook events.

    Example:
        ```python
        orchestrator = WebhookOrchestrator(
            ledger=IdempotencyLedger(db),
            scheduler=RetryScheduler(db),
            processor=router,
            secret=settings.webhook_secret,
        )

        await orchestrator.handle_webhook(raw_body, request.headers["X-Hooksafe-Signature"])
        ```
    """

    def __init__(
        self,
        ledger: IdempotencyLedger,
        scheduler: RetryScheduler,
        processor: EventProcessor,
        verifier: EventVerifier | None = None,
        secret: str | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            ledger: Idempotency ledger used to claim events.
            scheduler: Retry scheduler for transient failures.
            processor: Business processor invoked once per claimed event.
            verifier: Signature verifier. Defaults to HmacEventVerifier.
            secret: Shared webhook secret. Every call raises
                ConfigurationError while it is unset.
        """
        self._ledger = ledger
        self._scheduler = scheduler
        self._processor = processor
        self._verifier = verifier or HmacEventVerifier()
        self._secret = secret

    def _require_secret(self) -> str:
        if not self._secret:
            raise ConfigurationError(
                "Webhook secret is not configured. Set HOOKSAFE_WEBHOOK_SECRET."
            )
        return self._secret

    async def handle_webhook(self, payload: str | bytes, signature: str) -> None:
        """Handle one inbound delivery.

        Returns normally on success and on duplicate deliveries.

        Args:
            payload: Raw request body exactly as received.
            signature: Signature header exactly as received.

        Raises:
            ConfigurationError: If no webhook secret is configured.
            VerificationError: If the signature or envelope is invalid. The
                ledger is not touched.
            Exception: Whatever the processor raised, after the failure has
                been recorded (and a retry scheduled if it is transient).
        """
        secret = self._require_secret()
        event = self._verifier.verify(payload, signature, secret)
        payload_text = payload.decode("utf-8") if isinstance(payload, bytes) else payload

        bind_context(event_id=event.id, event_type=event.type)
        try:
            if not await self._ledger.try_claim(event.id, event.type):
                logger.info("Duplicate webhook delivery ignored")
                return

            try:
                await self._processor.process(event)
            except (Exception, asyncio.CancelledError) as e:
                # Cancellation is a transient failure; record it before propagating
                await self._record_first_failure(event, payload_text, signature, e)
                raise

            await self._ledger.mark_successful(event.id)
            logger.info("Webhook processed")
        finally:
            unbind_context(*_CONTEXT_KEYS)

    async def _record_first_failure(
        self,
        event: WebhookEvent,
        payload: str,
        signature: str,
        error: BaseException,
    ) -> None:
        message = _error_message(error)
        await self._ledger.mark_failed(event.id, message)

        translated = translate_error(error)
        if not is_retryable(translated):
            logger.error(
                "Webhook processing failed permanently",
                error=message,
                error_kind=translated.kind.value,
            )
            return

        record = await self._scheduler.schedule_retry(
            event.id,
            event.type,
            payload,
            signature,
            message,
            attempt_number=1,
        )
        logger.warning(
            "Webhook processing failed, retry scheduled",
            error=message,
            error_kind=translated.kind.value,
            attempt_number=record.attempt_number,
            next_retry_at=record.next_retry_at.isoformat(),
            retry_status=record.status.value,
        )

    async def process_retry(self, record: RetryRecord) -> bool:
        """Re-drive one due retry record.

        Args:
            record: Due record as returned by RetryScheduler.get_pending_retries().

        Returns:
            True if the attempt ran and succeeded, False if another sweeper
            holds the record.

        Raises:
            ConfigurationError: If no webhook secret is configured. The record
                is left untouched.
            VerificationError: If the stored payload no longer verifies. The
                record is abandoned.
            Exception: Whatever the processor raised, after the record has been
                rescheduled or abandoned.
        """
        secret = self._require_secret()

        bind_context(
            event_id=record.event_id,
            event_type=record.event_type,
            attempt_number=record.attempt_number,
        )
        try:
            if not await self._scheduler.acquire(record):
                logger.debug("Retry already leased elsewhere, skipping")
                return False

            try:
                event = self._verifier.verify(record.payload, record.signature, secret)
            except VerificationError as e:
                await self._scheduler.mark_abandoned(
                    record.event_id, f"Stored payload failed verification: {e.message}"
                )
                raise

            try:
                await self._processor.process(event)
            except (Exception, asyncio.CancelledError) as e:
                await self._record_retry_failure(record, e)
                raise

            await self._ledger.mark_successful(record.event_id)
            await self._scheduler.mark_succeeded(record.event_id)
            logger.info("Webhook retry processed")
            return True
        finally:
            unbind_context(*_CONTEXT_KEYS)

    async def _record_retry_failure(self, record: RetryRecord, error: BaseException) -> None:
        message = _error_message(error)
        await self._ledger.mark_failed(record.event_id, message)

        translated = translate_error(error)
        retryable = is_retryable(translated)

        if retryable and record.attempt_number < record.max_retries:
            rescheduled = await self._scheduler.schedule_retry(
                record.event_id,
                record.event_type,
                record.payload,
                record.signature,
                message,
                attempt_number=record.attempt_number + 1,
            )
            logger.warning(
                "Webhook retry failed, rescheduled",
                error=message,
                error_kind=translated.kind.value,
                next_attempt=rescheduled.attempt_number,
                next_retry_at=rescheduled.next_retry_at.isoformat(),
            )
            return

        await self._scheduler.mark_abandoned(record.event_id, message)
        logger.error(
            "Webhook retry failed, giving up",
            error=message,
            error_kind=translated.kind.value,
            retryable=retryable,
            max_retries=record.max_retries,
        )
