# ============================================================================
# SCOPE: INFRASTRUCTURE LAYER (Medical Appointments)
# Description: Work queue and timers driving the outreach workflows.
# ============================================================================
"""Scheduler module for the patient outreach orchestrator.

OutreachOrchestrator owns the single-consumer work queue; APScheduler interval
jobs only enqueue work items.
"""

from .orchestrator import OutreachOrchestrator, WorkItem, WorkKind

__all__ = [
    "OutreachOrchestrator",
    "WorkItem",
    "WorkKind",
]
