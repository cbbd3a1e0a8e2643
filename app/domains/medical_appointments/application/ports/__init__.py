# ============================================================================
# SCOPE: APPLICATION LAYER (Medical Appointments)
# Description: Ports (interfaces) for external systems.
# ============================================================================
"""Medical Appointments Application Ports.

Contains interface definitions (ports) following the hexagonal architecture.

- IPatientRegistry: authoritative patient rows (bulk read, single-cell write)
- IMessenger: outbound messaging transport
- IStateStore: durable orchestration state
"""

from .messenger_port import IMessenger
from .registry_port import IPatientRegistry
from .state_store_port import IStateStore

__all__ = [
    "IMessenger",
    "IPatientRegistry",
    "IStateStore",
]
