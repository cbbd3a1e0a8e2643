# ============================================================================
# SCOPE: APPLICATION LAYER (Medical Appointments)
# Description: Entry point for every inbound patient message.
# ============================================================================
"""Message Router.

Order of precedence for an inbound message:

1. group, broadcast and empty messages are ignored
2. an open TCLE session captures the reply
3. unknown senders get the rate-limited unregistered notice
4. registered patients with an empty consent column enter the TCLE flow
5. everything else goes to the menu
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from app.core.domain import MessengerError, PatientNotFoundError, RegistryError, StaleHandleError

from ...domain.value_objects.consent_status import ConsentStatus
from .recovery_manager import FailureContext

if TYPE_CHECKING:
    from .context import OrchestrationContext

logger = logging.getLogger(__name__)


class InboundMessage(BaseModel):
    """Mensaje entrante normalizado, independiente del transporte."""

    sender: str = Field(..., description="Sender phone as reported by the transport")
    body: str = Field(default="", description="Text content")
    is_group: bool = False
    is_broadcast: bool = False
    message_id: str | None = None


class RouteResult(str, Enum):
    IGNORED = "ignored"
    CONSENT = "consent"
    UNREGISTERED = "unregistered"
    MENU = "menu"
    FAILED = "failed"


class MessageRouter:
    def __init__(self, ctx: OrchestrationContext):
        self.ctx = ctx

    async def route(self, message: InboundMessage) -> RouteResult:
        """
        Dispatch one inbound message.

        Any failure is reported to the RecoveryManager and the patient gets a
        generic error reply when the transport allows it.
        """
        text = message.body.strip()
        if message.is_group or message.is_broadcast or not text:
            return RouteResult.IGNORED

        sender = message.sender
        try:
            return await self._route(sender, text)
        except (StaleHandleError, PatientNotFoundError) as e:
            # row moved or vanished mid-flight; the next refresh realigns the mirror
            logger.warning(f"Discarding message from {sender}: {e.message}")
        except RegistryError as e:
            # ensure_fresh already reported it as a store error
            logger.warning(f"Registry unavailable while handling message from {sender}: {e.message}")
        except Exception as e:
            logger.error(f"Error processing message from {sender}: {e}", exc_info=True)
            await self.ctx.recovery.handle(e, FailureContext.MESSAGE_PROCESSING)

        try:
            await self.ctx.send(sender, self.ctx.templates.generic_error())
        except MessengerError as send_error:
            logger.error(f"Failed to send error reply to {sender}: {send_error.message}")
        return RouteResult.FAILED

    async def _route(self, sender: str, text: str) -> RouteResult:
        cache = self.ctx.cache
        await cache.ensure_fresh()

        key = cache.key_for(sender)
        logger.info(f"Message from {key}: {text[:50]}")

        if self.ctx.consent.has_session(key):
            await self.ctx.consent.handle_reply(sender, text)
            return RouteResult.CONSENT

        record = cache.find(sender)
        if record is None:
            await self.ctx.menu.send_unregistered_notice(sender)
            return RouteResult.UNREGISTERED

        if record.consent_status is ConsentStatus.NONE:
            self.ctx.consent.open_session(key, record.display_name)
            await self.ctx.consent.handle_reply(sender, text)
            return RouteResult.CONSENT

        await self.ctx.menu.dispatch(sender, text, record)
        return RouteResult.MENU
