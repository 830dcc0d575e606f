"""Webhook handling for Hooksafe.

Provides signature verification, event processors and the orchestrator that
ties the ledger, the processor and the retry scheduler together.

Example:
    ```python
    from hooksafe.webhooks import EventRouter, WebhookOrchestrator

    router = EventRouter()

    @router.on("invoice.paid")
    async def on_invoice_paid(event):
        ...

    orchestrator = WebhookOrchestrator(ledger, scheduler, router, secret=secret)
    await orchestrator.handle_webhook(body, signature)
    ```
"""

from .orchestrator import WebhookOrchestrator
from .processor import EventHandler, EventProcessor, EventRouter
from .verification import (
    EventVerifier,
    HmacEventVerifier,
    compute_signature,
    verify_signature,
)

__all__ = [
    "EventHandler",
    "EventProcessor",
    "EventRouter",
    "EventVerifier",
    "HmacEventVerifier",
    "WebhookOrchestrator",
    "compute_signature",
    "verify_signature",
]
