"""Hooksafe: idempotent webhook ingestion with durable retries.

Accepts at-least-once webhook deliveries and applies each event's effect at
most once. Events that fail for transient reasons are retried on an
exponential backoff schedule until they succeed or are abandoned.

Quick Start:
    from hooksafe.ledger import IdempotencyLedger
    from hooksafe.retry import RetryScheduler, RetrySweeper
    from hooksafe.storage import Database
    from hooksafe.webhooks import EventRouter, WebhookOrchestrator

    events = EventRouter()

    @events.on("invoice.paid")
    async def on_invoice_paid(event):
        ...

    async with Database("sqlite+aiosqlite:///./hooksafe.db") as db:
        scheduler = RetryScheduler(db)
        orchestrator = WebhookOrchestrator(
            IdempotencyLedger(db), scheduler, events, secret="whsec_..."
        )
        sweeper = RetrySweeper(orchestrator, scheduler)
        await sweeper.start()

        await orchestrator.handle_webhook(raw_body, signature_header)

Components:
    - IdempotencyLedger: Atomic claim per event ID
    - is_retryable: Transient vs permanent failure classification
    - RetryScheduler: Durable retry queue with jittered backoff
    - RetrySweeper: Background loop that re-drives due retries
    - WebhookOrchestrator: Verify, claim, process, retry
"""

__version__ = "0.1.0"

# Configuration
from .config import Settings, get_settings

# Exceptions
from .exceptions import (
    ConfigurationError,
    ErrorKind,
    HooksafeError,
    PermanentError,
    ProcessingError,
    RetryableError,
    StorageError,
    UpstreamError,
    VerificationError,
)

# Core components
from .ledger import IdempotencyLedger

# Logging
from .logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    unbind_context,
)
from .models import (
    ProcessedEventRecord,
    RetryRecord,
    RetryStatus,
    WebhookEvent,
)
from .retry import (
    RetryScheduler,
    RetrySweeper,
    SweepResult,
    compute_backoff,
    is_retryable,
    translate_error,
)
from .storage import Database
from .webhooks import (
    EventProcessor,
    EventRouter,
    HmacEventVerifier,
    WebhookOrchestrator,
    compute_signature,
)

__all__ = [
    # Version
    "__version__",
    # Configuration
    "Settings",
    "get_settings",
    # Exceptions
    "ConfigurationError",
    "ErrorKind",
    "HooksafeError",
    "PermanentError",
    "ProcessingError",
    "RetryableError",
    "StorageError",
    "UpstreamError",
    "VerificationError",
    # Logging
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "unbind_context",
    # Models
    "ProcessedEventRecord",
    "RetryRecord",
    "RetryStatus",
    "WebhookEvent",
    # Components
    "Database",
    "EventProcessor",
    "EventRouter",
    "HmacEventVerifier",
    "IdempotencyLedger",
    "RetryScheduler",
    "RetrySweeper",
    "SweepResult",
    "WebhookOrchestrator",
    "compute_backoff",
    "compute_signature",
    "is_retryable",
    "translate_error",
]
