"""
Application entry point.

This module follows SRP by only serving as the application entry point.
All configuration, routes and lifecycle management is delegated
to specialized modules.
"""

import logging

import sentry_sdk

from app.config.settings import get_settings
from app.core.app_factory import create_app
from app.core.shared.logger import setup_logging

settings = get_settings()

# Configure logging
setup_logging(
    level=settings.LOG_LEVEL,
    production=settings.is_production,
    buffer_capacity=settings.RECENT_LOG_BUFFER_SIZE,
)

logger = logging.getLogger(__name__)

# Initialize Sentry for error tracking
if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        send_default_pii=False,
        environment=settings.ENVIRONMENT,
    )

# Create application using factory
app = create_app(settings)

if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting application in {settings.ENVIRONMENT} mode")
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.STATUS_PORT,
        log_config=None,
    )
