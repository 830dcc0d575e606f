"""Models for Hooksafe.

Event Types:
    - WebhookEvent: Verified inbound event envelope

Persisted Records:
    - ProcessedEventRecord: Idempotency ledger entry
    - RetryRecord: Pending or terminal retry for one event
    - RetryStatus: Retry lifecycle states
"""

from .base import ensure_utc, utc_now
from .event import WebhookEvent
from .records import ProcessedEventRecord, RetryRecord, RetryStatus

__all__ = [
    "ProcessedEventRecord",
    "RetryRecord",
    "RetryStatus",
    "WebhookEvent",
    "ensure_utc",
    "utc_now",
]
