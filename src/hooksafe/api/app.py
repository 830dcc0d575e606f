"""FastAPI application for Hooksafe."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from hooksafe import __version__
from hooksafe.config import Settings, get_settings
from hooksafe.exceptions import ConfigurationError, HooksafeError, VerificationError
from hooksafe.ledger import IdempotencyLedger
from hooksafe.logging import configure_from_settings, get_logger
from hooksafe.retry import RetryScheduler, RetrySweeper
from hooksafe.storage import Database
from hooksafe.webhooks import EventProcessor, EventVerifier, WebhookOrchestrator

from .router import router, set_engine

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan.

    Opens the database, wires the engine components and starts the retry
    sweeper on startup; stops the sweeper and closes the database on shutdown.
    """
    settings: Settings = app.state.settings

    # Configure structured logging
    configure_from_settings(settings)
    logger.info("Starting Hooksafe API", env=settings.env, log_level=settings.log_level)

    db = Database(settings.database_url, echo=settings.database_echo)
    await db.initialize()

    scheduler = RetryScheduler.from_settings(db, settings)
    orchestrator = WebhookOrchestrator(
        ledger=IdempotencyLedger(db),
        scheduler=scheduler,
        processor=app.state.processor,
        verifier=app.state.verifier,
        secret=settings.webhook_secret,
    )
    sweeper = RetrySweeper(
        orchestrator,
        scheduler,
        interval_seconds=settings.sweep_interval_seconds,
    )

    set_engine(orchestrator, sweeper, db)
    await sweeper.start()

    try:
        yield
    finally:
        await sweeper.stop()
        set_engine(None, None, None)
        await db.close()
        logger.info("Hooksafe API stopped")


def create_app(
    settings: Settings | None = None,
    processor: EventProcessor | None = None,
    verifier: EventVerifier | None = None,
) -> FastAPI:
    """Create a FastAPI application.

    Args:
        settings: Optional settings. Uses environment if None.
        processor: Business processor for verified events.
        verifier: Optional signature verifier. Defaults to HMAC-SHA256.

    Returns:
        Configured FastAPI application.

    Example:
        ```python
        from hooksafe.api import create_app
        from hooksafe.webhooks import EventRouter

        events = EventRouter()
        app = create_app(processor=events)
        # Run with: uvicorn myapp:app
        ```
    """
    if processor is None:
        raise ConfigurationError("create_app() requires an event processor")

    app = FastAPI(
        title="Hooksafe",
        description="Idempotent webhook ingestion with durable, backed-off retries.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings if settings is not None else get_settings()
    app.state.processor = processor
    app.state.verifier = verifier

    # Register exception handlers
    @app.exception_handler(VerificationError)
    async def verification_error_handler(
        request: Request, exc: VerificationError
    ) -> JSONResponse:
        """Handle verification errors with 400 status."""
        logger.warning("Webhook verification failed", error=exc.message, path=str(request.url))
        return JSONResponse(status_code=400, content=exc.to_dict())

    @app.exception_handler(HooksafeError)
    async def hooksafe_error_handler(request: Request, exc: HooksafeError) -> JSONResponse:
        """Handle all other Hooksafe errors with 500 status."""
        logger.error("Hooksafe error", error=exc.message, code=exc.code, path=str(request.url))
        return JSONResponse(status_code=500, content=exc.to_dict())

    app.include_router(router)

    return app
