"""FastAPI router for Hooksafe endpoints."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from hooksafe import __version__
from hooksafe.exceptions import HooksafeError
from hooksafe.retry import RetrySweeper
from hooksafe.storage import Database
from hooksafe.webhooks import WebhookOrchestrator

from .schemas import HealthResponse, WebhookAck

logger = logging.getLogger(__name__)

router = APIRouter()

# Engine components (set by app lifespan)
_orchestrator: WebhookOrchestrator | None = None
_sweeper: RetrySweeper | None = None
_database: Database | None = None


def set_engine(
    orchestrator: WebhookOrchestrator | None,
    sweeper: RetrySweeper | None,
    database: Database | None,
) -> None:
    """Set the global engine components."""
    global _orchestrator, _sweeper, _database
    _orchestrator = orchestrator
    _sweeper = sweeper
    _database = database


async def get_orchestrator() -> WebhookOrchestrator:
    """Dependency to get the WebhookOrchestrator instance."""
    if _orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return _orchestrator


OrchestratorDep = Annotated[WebhookOrchestrator, Depends(get_orchestrator)]


@router.get("/health", response_model=HealthResponse, tags=["system"])
async def health_check() -> HealthResponse:
    """Check service health.

    Healthy when the database answers and the sweeper is running; degraded
    when only one of them is up.
    """
    database_connected = _database is not None and await _database.ping()
    sweeper_running = _sweeper is not None and _sweeper.is_running

    if database_connected and sweeper_running:
        health = "healthy"
    elif database_connected or sweeper_running:
        health = "degraded"
    else:
        health = "unhealthy"

    return HealthResponse(
        status=health,
        version=__version__,
        database_connected=database_connected,
        sweeper_running=sweeper_running,
    )


@router.post("/webhooks", response_model=WebhookAck, tags=["webhooks"])
async def receive_webhook(
    request: Request,
    orchestrator: OrchestratorDep,
    x_hooksafe_signature: Annotated[str | None, Header()] = None,
) -> WebhookAck:
    """Receive one webhook delivery.

    Responds 200 for processed and duplicate deliveries, 400 for a missing or
    invalid signature, and 500 when processing fails so the provider
    redelivers.
    """
    if not x_hooksafe_signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing X-Hooksafe-Signature header",
        )

    payload = await request.body()

    try:
        await orchestrator.handle_webhook(payload, x_hooksafe_signature)
    except HooksafeError:
        # Mapped to a status code by the app's exception handlers
        raise
    except Exception as e:
        logger.warning(
            "Webhook processing failed",
            extra={"error": str(e), "error_type": type(e).__name__},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook processing failed",
        ) from e

    return WebhookAck()
