# Infrastructure Layer - Medical Appointments
# Contains external clients, persistence and the work-queue scheduler

from .external import GoogleSheetsRegistry
from .persistence import JsonStateStore
from .scheduler import OutreachOrchestrator, WorkItem, WorkKind

__all__ = [
    "GoogleSheetsRegistry",
    "JsonStateStore",
    "OutreachOrchestrator",
    "WorkItem",
    "WorkKind",
]
