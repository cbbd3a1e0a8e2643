"""
Status Probe.

GET /status exposes the RecoveryManager snapshot when enabled by
ENABLE_STATUS_ENDPOINT; otherwise it answers 404.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from app.api.dependencies import get_app_settings, get_orchestration_context
from app.config.settings import Settings
from app.domains.medical_appointments.application.services.context import OrchestrationContext

router = APIRouter(tags=["status"])


@router.get("/status")
async def get_status(
    settings: Settings = Depends(get_app_settings),  # noqa: B008
    ctx: OrchestrationContext = Depends(get_orchestration_context),  # noqa: B008
) -> dict[str, Any]:
    if not settings.ENABLE_STATUS_ENDPOINT:
        raise HTTPException(status_code=404, detail="Not Found")
    return ctx.recovery.get_status()
