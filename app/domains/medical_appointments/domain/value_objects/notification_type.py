"""Notification Type Value Object.

Each outbound notification kind carries its own dedup window.
"""

from enum import Enum

HOUR_MS = 60 * 60 * 1000
DEFAULT_TTL_MS = 23 * HOUR_MS


class NotificationType(str, Enum):
    """Tipos de notificación registrados en el ledger."""

    CONSENT_SENT = "consent-sent"
    REMINDER_7D = "reminder-7d"
    REMINDER_2D = "reminder-2d"
    FEEDBACK_REQUEST = "feedback-request"
    UNREGISTERED_INFO = "unregistered-info"
    MENU_SHOWN = "menu-shown"

    @property
    def ttl_ms(self) -> int:
        """Ventana en la que un segundo envío del mismo tipo se suprime."""
        ttls = {
            "consent-sent": 12 * HOUR_MS,
            "reminder-7d": 20 * HOUR_MS,
            "reminder-2d": 20 * HOUR_MS,
            "feedback-request": 3 * 24 * HOUR_MS,
            "unregistered-info": 30 * 60 * 1000,
            "menu-shown": 1000,
        }
        return ttls.get(self.value, DEFAULT_TTL_MS)


def ttl_for(notification_type: str) -> int:
    """TTL for a ledger key, including keys written by older snapshots."""
    try:
        return NotificationType(notification_type).ttl_ms
    except ValueError:
        return DEFAULT_TTL_MS
