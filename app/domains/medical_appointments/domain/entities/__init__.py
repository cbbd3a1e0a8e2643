# Domain Entities
from .consent_session import ConsentSession
from .notification_ledger import NotificationLedger
from .orchestration_state import ConsentSessionSnapshot, OrchestrationState, PersistedSnapshot
from .patient import COLUMN_LETTERS, FIRST_DATA_ROW, ROW_WIDTH, PatientRecord

__all__ = [
    "COLUMN_LETTERS",
    "FIRST_DATA_ROW",
    "ROW_WIDTH",
    "ConsentSession",
    "ConsentSessionSnapshot",
    "NotificationLedger",
    "OrchestrationState",
    "PatientRecord",
    "PersistedSnapshot",
]
