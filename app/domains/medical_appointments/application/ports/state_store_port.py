# ============================================================================
# SCOPE: APPLICATION LAYER (Medical Appointments)
# Description: State store port (DIP compliant).
# ============================================================================
"""State Store Port."""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ...domain.entities.orchestration_state import OrchestrationState


@runtime_checkable
class IStateStore(Protocol):
    """Interface for durable orchestration state.

    Implementations: JsonStateStore
    """

    def load(self) -> "OrchestrationState":
        """Load the last persisted state, or an empty one."""
        ...

    def save(self, state: "OrchestrationState") -> None:
        """Persist the full state.

        Raises:
            StateStoreError: If the snapshot cannot be written.
        """
        ...
