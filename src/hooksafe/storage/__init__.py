"""Storage layer for Hooksafe.

This module provides the database lifecycle and table definitions shared by
the idempotency ledger and the retry scheduler.

Example:
    ```python
    from hooksafe.storage import Database

    async with Database(settings.database_url) as db:
        ledger = IdempotencyLedger(db)
    ```
"""

from .base import Database
from .retry import db_read_retry
from .tables import Base, ProcessedWebhookEventRow, WebhookRetryRow

__all__ = [
    "Base",
    "Database",
    "ProcessedWebhookEventRow",
    "WebhookRetryRow",
    "db_read_retry",
]
