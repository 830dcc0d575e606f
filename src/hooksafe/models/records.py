"""Persisted record models: the idempotency ledger entry and the retry record."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .base import ensure_utc


class RetryStatus(str, Enum):
    """Lifecycle of a retry record.

    PENDING is the only non-terminal state. SUCCEEDED and FAILED are terminal;
    FAILED covers both non-retryable errors and exhausted attempts.
    """

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ProcessedEventRecord(BaseModel):
    """Idempotency ledger entry, one per event ID ever claimed.

    Attributes:
        event_id: Provider event ID (primary key).
        event_type: Event type at claim time.
        processed_at: When the event was claimed.
        is_successful: Outcome of the most recent processing attempt.
        error_message: Error from the most recent failed attempt.
    """

    model_config = ConfigDict(from_attributes=True)

    event_id: str
    event_type: str
    processed_at: datetime
    is_successful: bool = True
    error_message: str | None = None

    @field_validator("processed_at")
    @classmethod
    def _normalize_tz(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class RetryRecord(BaseModel):
    """A pending or terminal retry for one event.

    Carries everything needed to re-drive processing (payload and signature)
    plus the scheduling state.

    Attributes:
        id: Surrogate primary key.
        event_id: Provider event ID (unique across the retries table).
        event_type: Event type.
        payload: Raw body exactly as received.
        signature: Signature header exactly as received.
        attempt_number: The attempt this record is scheduled for (1-indexed).
        max_retries: Attempts allowed before the event is abandoned.
        status: Pending, Succeeded or Failed.
        next_retry_at: When the record becomes due.
        last_error_message: Error from the most recent failed attempt.
        created_at: When the first retry was scheduled.
        updated_at: When the record last changed.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    event_id: str
    event_type: str
    payload: str
    signature: str
    attempt_number: int = Field(default=1, ge=1)
    max_retries: int = Field(default=5, ge=0)
    status: RetryStatus = RetryStatus.PENDING
    next_retry_at: datetime
    last_error_message: str | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("next_retry_at", "created_at", "updated_at")
    @classmethod
    def _normalize_tz(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def is_exhausted(self) -> bool:
        """True once the scheduled attempt is beyond the allowed retries."""
        return self.attempt_number > self.max_retries

    def summary(self) -> dict[str, Any]:
        """Loggable view without the payload or signature."""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "attempt_number": self.attempt_number,
            "max_retries": self.max_retries,
            "status": self.status.value,
            "next_retry_at": self.next_retry_at.isoformat(),
        }
