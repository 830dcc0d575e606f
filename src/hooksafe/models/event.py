"""Inbound webhook event envelope."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class WebhookEvent(BaseModel):
    """A verified event as delivered by the provider.

    Attributes:
        id: Provider-assigned event ID, globally unique per source.
        type: Event type, e.g. "customer.subscription.updated".
        data: Event-specific payload, opaque to the engine.
        created: When the provider created the event (if supplied).
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str = Field(min_length=1, description="Provider-assigned event ID")
    type: str = Field(min_length=1, description="Event type")
    data: dict[str, Any] = Field(default_factory=dict, description="Event-specific payload")
    created: datetime | None = Field(default=None, description="Provider creation time")
