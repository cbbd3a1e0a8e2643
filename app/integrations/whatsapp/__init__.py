"""
WhatsApp Integration

Integration with the WhatsApp Cloud API:
- WhatsAppHttpClient: HTTP transport with auth-aware error mapping
- WhatsAppMessenger: IMessenger implementation (send, probe, reconnect)

Following Clean Architecture, these are infrastructure services
that integrate with external WhatsApp Business API.
"""

from app.integrations.whatsapp.http_client import WhatsAppHttpClient
from app.integrations.whatsapp.messenger import WhatsAppMessenger

__all__ = [
    "WhatsAppHttpClient",
    "WhatsAppMessenger",
]
