# ============================================================================
# SCOPE: GLOBAL
# Description: WhatsApp Cloud API webhook (verification + inbound messages).
# ============================================================================
"""
WhatsApp Webhook Endpoints.

Inbound messages are only parsed and enqueued here; the orchestrator's single
consumer processes them, so the endpoint answers 200 immediately.

ENDPOINTS:
  - GET /webhook → Verification handshake (hub.challenge)
  - POST /webhook → Inbound messages
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from app.api.dependencies import get_app_settings, get_orchestrator
from app.config.settings import Settings
from app.domains.medical_appointments.infrastructure.scheduler import OutreachOrchestrator
from app.models.message import WhatsAppWebhookRequest

router = APIRouter(tags=["webhook"])
logger = logging.getLogger(__name__)


@router.get("/webhook", response_class=PlainTextResponse)
async def verify_webhook(
    mode: str | None = Query(None, alias="hub.mode"),
    token: str | None = Query(None, alias="hub.verify_token"),
    challenge: str | None = Query(None, alias="hub.challenge"),
    settings: Settings = Depends(get_app_settings),  # noqa: B008
):
    """Meta's subscription handshake: echo the challenge when the token matches."""
    if mode == "subscribe" and token and token == settings.WHATSAPP_VERIFY_TOKEN:
        logger.info("Webhook verified")
        return PlainTextResponse(challenge or "")
    logger.warning("Webhook verification failed")
    raise HTTPException(status_code=403, detail="Verification failed")


@router.post("/webhook")
async def process_webhook(
    payload: dict,
    orchestrator: OutreachOrchestrator = Depends(get_orchestrator),  # noqa: B008
):
    """Enqueue every text message in the payload."""
    try:
        request = WhatsAppWebhookRequest.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"Invalid webhook payload: {e.error_count()} error(s)")
        return {"status": "ignored"}

    messages = request.to_inbound()
    for message in messages:
        orchestrator.submit_inbound(message)
    if messages:
        logger.debug(f"Enqueued {len(messages)} inbound message(s)")
    return {"status": "ok", "queued": len(messages)}
