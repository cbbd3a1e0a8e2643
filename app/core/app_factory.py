"""
Application factory for FastAPI.

This module follows SRP by handling only FastAPI application creation and configuration.
Uses modern FastAPI patterns and separates concerns into dedicated modules.
"""

import logging

from fastapi import FastAPI

from app.api.exception_handlers import register_exception_handlers
from app.api.router import api_router
from app.config.settings import Settings, get_settings
from app.core.lifecycle import LifecycleManager, OrchestratorFactory, lifespan

logger = logging.getLogger(__name__)


class AppFactory:
    """
    Factory for creating and configuring FastAPI applications.

    Each configuration step is handled by a dedicated method.
    """

    def __init__(self, settings: Settings | None = None, orchestrator_factory: OrchestratorFactory | None = None):
        """
        Initialize app factory.

        Args:
            settings: Application settings (uses default if not provided)
            orchestrator_factory: Builds the orchestrator at startup (tests inject fakes)
        """
        self._settings = settings or get_settings()
        self._orchestrator_factory = orchestrator_factory

    def create_app(self) -> FastAPI:
        app = self._create_base_app()
        app.state.settings = self._settings
        app.state.lifecycle = LifecycleManager(self._settings, self._orchestrator_factory)

        self._configure_exception_handlers(app)
        self._configure_routes(app)
        self._configure_health_endpoint(app)

        logger.info(f"Application created: {self._settings.PROJECT_NAME}")
        return app

    def _create_base_app(self) -> FastAPI:
        """Create the base FastAPI application with lifespan."""
        return FastAPI(
            title=self._settings.PROJECT_NAME,
            description=self._settings.PROJECT_DESCRIPTION,
            version=self._settings.VERSION,
            docs_url="/docs" if self._settings.DEBUG else None,
            redoc_url=None,
            lifespan=lifespan,
        )

    def _configure_exception_handlers(self, app: FastAPI) -> None:
        register_exception_handlers(app)

    def _configure_routes(self, app: FastAPI) -> None:
        app.include_router(api_router)
        logger.info("Routes configured")

    def _configure_health_endpoint(self, app: FastAPI) -> None:
        """Add health check endpoint."""

        @app.get("/health", tags=["health"])
        async def health_check() -> dict[str, str]:
            return {
                "status": "ok",
                "environment": self._settings.ENVIRONMENT,
            }


def create_app(settings: Settings | None = None, orchestrator_factory: OrchestratorFactory | None = None) -> FastAPI:
    """
    Create FastAPI application using the factory.

    Args:
        settings: Optional settings override
        orchestrator_factory: Optional orchestrator builder override

    Returns:
        Configured FastAPI application
    """
    factory = AppFactory(settings, orchestrator_factory)
    return factory.create_app()
