# ============================================================================
# SCOPE: GLOBAL
# Description: Dependencias FastAPI para inyección del orquestador.
# ============================================================================
import logging

from fastapi import HTTPException, Request, status

from app.config.settings import Settings, get_settings
from app.domains.medical_appointments.application.services.context import OrchestrationContext
from app.domains.medical_appointments.infrastructure.scheduler import OutreachOrchestrator

logger = logging.getLogger(__name__)


def get_orchestrator(request: Request) -> OutreachOrchestrator:
    """Orchestrator created by the application lifespan."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Orchestrator not ready")
    return orchestrator


def get_orchestration_context(request: Request) -> OrchestrationContext:
    return get_orchestrator(request).ctx


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with, falling back to the environment."""
    return getattr(request.app.state, "settings", None) or get_settings()
