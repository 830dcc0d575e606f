"""Pydantic schemas for API response models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict


class WebhookAck(BaseModel):
    """Response for an accepted webhook delivery.

    Duplicate deliveries get the same response as first deliveries.
    """

    model_config = ConfigDict(extra="forbid")

    status: Literal["accepted"] = "accepted"


class HealthResponse(BaseModel):
    """Response for health check endpoint.

    Attributes:
        status: Service status (healthy, degraded, unhealthy).
        version: API version.
        database_connected: Whether the database answers queries.
        sweeper_running: Whether the retry sweeper task is alive.
    """

    model_config = ConfigDict(extra="forbid")

    status: Literal["healthy", "degraded", "unhealthy"]
    version: str
    database_connected: bool
    sweeper_running: bool
