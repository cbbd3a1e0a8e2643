# Domain Value Objects
from .appointment_status import AppointmentStatus
from .consent_status import ACCEPT_REPLIES, REJECT_REPLIES, ConsentStatus, classify_reply
from .notification_type import NotificationType, ttl_for

__all__ = [
    "ACCEPT_REPLIES",
    "REJECT_REPLIES",
    "AppointmentStatus",
    "ConsentStatus",
    "NotificationType",
    "classify_reply",
    "ttl_for",
]
