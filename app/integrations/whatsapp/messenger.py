"""
WhatsApp Messenger.

Single Responsibility: Send text messages through the Cloud API and track
whether the transport is usable.
"""

import logging

from app.config.settings import Settings
from app.core.domain import MessengerAuthError, MessengerError
from app.integrations.whatsapp.http_client import WhatsAppHttpClient

logger = logging.getLogger(__name__)


class WhatsAppMessenger:
    """
    Message sender for WhatsApp (implements IMessenger).

    The Cloud API is stateless HTTP, so "connected" means the last call
    (send or probe) succeeded with our credentials. Reconnecting is a fresh
    probe of the phone number resource.
    """

    def __init__(self, http_client: WhatsAppHttpClient):
        """
        Initialize messenger.

        Args:
            http_client: HTTP client for API calls
        """
        self._client = http_client
        self._connected = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "WhatsAppMessenger":
        return cls(
            WhatsAppHttpClient(
                base_url=settings.WHATSAPP_API_BASE,
                version=settings.WHATSAPP_API_VERSION,
                phone_number_id=settings.WHATSAPP_PHONE_NUMBER_ID,
                access_token=settings.WHATSAPP_ACCESS_TOKEN,
            )
        )

    def is_connected(self) -> bool:
        return self._connected

    async def send_text(self, phone: str, text: str) -> None:
        """Send text message."""
        if not phone or not text:
            raise MessengerError("Number and message required")

        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": phone,
            "type": "text",
            "text": {"body": text},
        }

        try:
            result = await self._client.post(payload)
        except MessengerAuthError:
            self._connected = False
            raise
        self._connected = True
        message_ids = [m.get("id") for m in result.get("messages", [])]
        logger.debug(f"Message sent to {phone}: {message_ids}")

    async def probe(self) -> bool:
        """Check the phone number resource is readable with our token."""
        try:
            await self._client.get(self._client.phone_number_id, params={"fields": "id"})
        except MessengerError as e:
            logger.warning(f"WhatsApp probe failed: {e.message}")
            self._connected = False
            return False
        self._connected = True
        return True

    async def reconnect(self) -> bool:
        logger.info("Re-establishing WhatsApp Cloud API session")
        return await self.probe()
