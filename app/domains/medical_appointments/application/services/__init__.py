# ============================================================================
# SCOPE: APPLICATION LAYER (Medical Appointments)
# Description: Patient outreach workflow services.
# ============================================================================
"""Application Services.

Workflow components of the patient outreach orchestrator. Every component is
constructed with the shared OrchestrationContext by build_context().
"""

from .change_detector import ChangeDetector
from .consent_workflow import ConsentOutcome, ConsentWorkflow
from .context import OrchestrationContext, build_context
from .menu_dispatcher import MenuCommand, MenuDispatcher, format_feedback
from .message_router import InboundMessage, MessageRouter, RouteResult
from .messages import FEEDBACK_LABELS, MessageTemplates
from .notification_scheduler import NotificationScheduler
from .patient_cache import PatientCache, PatientHandle
from .recovery_manager import FailureContext, RecoveryManager, SystemStatus

__all__ = [
    "ChangeDetector",
    "ConsentOutcome",
    "ConsentWorkflow",
    "FEEDBACK_LABELS",
    "FailureContext",
    "InboundMessage",
    "MenuCommand",
    "MenuDispatcher",
    "MessageRouter",
    "MessageTemplates",
    "NotificationScheduler",
    "OrchestrationContext",
    "PatientCache",
    "PatientHandle",
    "RecoveryManager",
    "RouteResult",
    "SystemStatus",
    "build_context",
    "format_feedback",
]
