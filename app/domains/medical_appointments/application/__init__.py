# ============================================================================
# SCOPE: APPLICATION LAYER (Medical Appointments)
# Description: Application layer exports.
# ============================================================================
"""Application Layer - Medical Appointments.

Contains the ports (interfaces) and the workflow services of the patient
outreach orchestrator.
"""

from .ports import IMessenger, IPatientRegistry, IStateStore
from .services import (
    InboundMessage,
    OrchestrationContext,
    build_context,
)

__all__ = [
    # Ports
    "IMessenger",
    "IPatientRegistry",
    "IStateStore",
    # Services
    "InboundMessage",
    "OrchestrationContext",
    "build_context",
]
