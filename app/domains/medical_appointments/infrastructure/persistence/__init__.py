# ============================================================================
# SCOPE: INFRASTRUCTURE LAYER (Medical Appointments)
# Description: Durable orchestration state.
# ============================================================================
"""Persistence module.

- JsonStateStore: atomic JSON snapshot of the orchestration state
"""

from .state_store import JsonStateStore

__all__ = [
    "JsonStateStore",
]
