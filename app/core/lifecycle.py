"""
Application lifecycle management using modern FastAPI lifespan pattern.

This module follows SRP by handling only application startup/shutdown logic:
wiring the adapters into an OrchestrationContext, starting the orchestrator
and shutting it down gracefully when the server receives SIGINT/SIGTERM.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from app.config.settings import Settings, get_settings
from app.domains.medical_appointments.application.services.context import build_context
from app.domains.medical_appointments.application.services.recovery_manager import FailureContext
from app.domains.medical_appointments.infrastructure.external import GoogleSheetsRegistry
from app.domains.medical_appointments.infrastructure.persistence import JsonStateStore
from app.domains.medical_appointments.infrastructure.scheduler import OutreachOrchestrator
from app.integrations.whatsapp.messenger import WhatsAppMessenger

logger = logging.getLogger(__name__)

OrchestratorFactory = Callable[[Settings], OutreachOrchestrator]


def build_orchestrator(settings: Settings) -> OutreachOrchestrator:
    """Wire the production adapters into a context and wrap it in an orchestrator."""
    ctx = build_context(
        settings,
        registry=GoogleSheetsRegistry.from_settings(settings),
        messenger=WhatsAppMessenger.from_settings(settings),
        store=JsonStateStore(settings.STATE_FILE),
    )
    return OutreachOrchestrator(ctx)


class LifecycleManager:
    """
    Manages application lifecycle events.

    Handles startup initialization and graceful shutdown.
    Separates concerns from the main application factory.
    """

    def __init__(self, settings: Settings | None = None, orchestrator_factory: OrchestratorFactory | None = None):
        self._settings = settings or get_settings()
        self._factory = orchestrator_factory or build_orchestrator
        self._orchestrator: OutreachOrchestrator | None = None

    @property
    def orchestrator(self) -> OutreachOrchestrator | None:
        return self._orchestrator

    async def startup(self) -> OutreachOrchestrator:
        """
        Execute startup tasks.

        A failure here is fatal: it is escalated and persisted before being
        re-raised so the server exits non-zero.
        """
        if self._orchestrator is not None:
            logger.warning("Lifecycle already initialized, skipping startup")
            return self._orchestrator

        logger.info("Starting application lifecycle...")
        self._verify_configurations()

        orchestrator = self._factory(self._settings)
        try:
            await orchestrator.start()
        except Exception as e:
            await orchestrator.ctx.recovery.handle_fatal(e, "startup")
            raise

        self._install_loop_exception_handler(orchestrator)
        self._orchestrator = orchestrator
        logger.info("Application lifecycle startup completed")
        return orchestrator

    async def shutdown(self, reason: str = "SIGTERM") -> None:
        if self._orchestrator is None:
            logger.warning("Lifecycle not initialized, skipping shutdown")
            return

        logger.info("Stopping application lifecycle...")
        orchestrator = self._orchestrator
        self._orchestrator = None
        await orchestrator.stop(reason)

        close = getattr(orchestrator.ctx.registry, "close", None)
        if close is not None:
            await close()
        logger.info("Application lifecycle shutdown completed")

    def _verify_configurations(self) -> None:
        """Verify critical application configurations."""
        settings = self._settings
        if not settings.SPREADSHEET_ID:
            logger.warning("SPREADSHEET_ID not configured - registry reads will fail")
        if not settings.WHATSAPP_ACCESS_TOKEN:
            logger.warning("WHATSAPP_ACCESS_TOKEN not configured - messages will not be delivered")
        if not settings.TCLE_URL:
            logger.warning("TCLE_URL not configured - consent prompts will carry no link")

    def _install_loop_exception_handler(self, orchestrator: OutreachOrchestrator) -> None:
        """Route exceptions from orphaned tasks to the RecoveryManager."""
        loop = asyncio.get_running_loop()
        recovery = orchestrator.ctx.recovery

        def handler(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
            exc = context.get("exception")
            logger.error(f"Unhandled event loop error: {context.get('message')}", exc_info=exc)
            if exc is not None and orchestrator.is_running:
                loop.create_task(recovery.handle(exc, FailureContext.UNHANDLED_EXCEPTION))

        loop.set_exception_handler(handler)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Modern FastAPI lifespan context manager.

    Uses the LifecycleManager placed on app.state by the factory and exposes
    the running orchestrator as app.state.orchestrator.
    """
    lifecycle: LifecycleManager = getattr(app.state, "lifecycle", None) or LifecycleManager()

    # Startup
    app.state.orchestrator = await lifecycle.startup()

    try:
        yield  # Application runs here
    finally:
        # Shutdown
        await lifecycle.shutdown()
        app.state.orchestrator = None
