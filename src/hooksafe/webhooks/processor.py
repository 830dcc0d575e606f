"""Event processors: the business side of webhook handling.

The engine treats processing as opaque. It hands a verified, deduplicated
WebhookEvent to an EventProcessor and only cares whether it raises.

EventRouter is a ready-made processor that dispatches on event type:

    ```python
    router = EventRouter()

    @router.on("invoice.paid")
    async def handle_invoice_paid(event: WebhookEvent) -> None:
        await billing.mark_paid(event.data["object"]["id"])
    ```
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from hooksafe.models import WebhookEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[WebhookEvent], Awaitable[None]]


class EventProcessor(Protocol):
    """Applies the business effect of one event. Raises on failure."""

    async def process(self, event: WebhookEvent) -> None: ...


class EventRouter:
    """EventProcessor that routes each event to the handler for its type.

    Event types without a handler are acknowledged and ignored, so providers
    can send more event types than the application cares about.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, EventHandler] = {}

    @property
    def event_types(self) -> list[str]:
        return sorted(self._handlers)

    def register(self, event_type: str, handler: EventHandler) -> None:
        """Register the handler for an event type.

        Raises:
            ValueError: If the event type already has a handler.
        """
        if event_type in self._handlers:
            raise ValueError(f"Handler already registered for event type {event_type!r}")
        self._handlers[event_type] = handler

    def on(self, event_type: str) -> Callable[[EventHandler], EventHandler]:
        """Decorator form of register()."""

        def decorator(handler: EventHandler) -> EventHandler:
            self.register(event_type, handler)
            return handler

        return decorator

    async def process(self, event: WebhookEvent) -> None:
        handler = self._handlers.get(event.type)
        if handler is None:
            logger.info(
                "No handler for webhook event type, ignoring",
                extra={"event_id": event.id, "event_type": event.type},
            )
            return

        await handler(event)
