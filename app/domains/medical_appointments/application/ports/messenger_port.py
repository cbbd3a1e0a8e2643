# ============================================================================
# SCOPE: APPLICATION LAYER (Medical Appointments)
# Description: Messenger port (DIP compliant).
# ============================================================================
"""Messenger Port.

Defines the outbound side of the messaging transport used for patient and
operator communication.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class IMessenger(Protocol):
    """Interface for the messaging transport.

    Implementations: WhatsAppMessenger

    No delivery receipts are consumed; a send either returns or raises.
    """

    async def send_text(self, phone: str, text: str) -> None:
        """Send a text message.

        Args:
            phone: Destination phone (any supported format).
            text: Message body.

        Raises:
            MessengerError: When the transport rejects the message.
            MessengerAuthError: When the credentials are no longer valid.
        """
        ...

    async def probe(self) -> bool:
        """Check that the transport is usable."""
        ...

    async def reconnect(self) -> bool:
        """Try to re-establish the transport. Returns True when connected."""
        ...

    def is_connected(self) -> bool:
        """Last known connection state."""
        ...
