"""Orchestration State.

All mutable scheduling state owned by one orchestration process, plus its
durable snapshot model.
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field

from .consent_session import ConsentSession
from .notification_ledger import NotificationLedger


class ConsentSessionSnapshot(BaseModel):
    name: str = ""
    first_sent_at: int = 0
    last_sent_at: int = 0
    attempts: int = 0


class PersistedSnapshot(BaseModel):
    """Durable projection written to the state file."""

    notified_patients: list[str] = Field(default_factory=list)
    cache_refreshed_at: int = 0
    notifications_sent: dict[str, dict[str, int]] = Field(default_factory=dict)
    consent_sessions: dict[str, ConsentSessionSnapshot] = Field(default_factory=dict)
    last_appointment_dates: dict[str, str] = Field(default_factory=dict)
    last_statuses: dict[str, str] = Field(default_factory=dict)
    awaiting_feedback: list[str] = Field(default_factory=list)


@dataclass
class OrchestrationState:
    """Estado mutable de la orquestación (keyed by canonical phone)."""

    notified: set[str] = field(default_factory=set)
    ledger: NotificationLedger = field(default_factory=NotificationLedger)
    consent_sessions: dict[str, ConsentSession] = field(default_factory=dict)
    last_appointment_dates: dict[str, str] = field(default_factory=dict)
    last_statuses: dict[str, str] = field(default_factory=dict)
    awaiting_feedback: set[str] = field(default_factory=set)
    cache_refreshed_at: int = 0

    def to_snapshot(self) -> PersistedSnapshot:
        return PersistedSnapshot(
            notified_patients=sorted(self.notified),
            cache_refreshed_at=self.cache_refreshed_at,
            notifications_sent=self.ledger.to_dict(),
            consent_sessions={
                key: ConsentSessionSnapshot(**session.to_dict()) for key, session in self.consent_sessions.items()
            },
            last_appointment_dates=dict(self.last_appointment_dates),
            last_statuses=dict(self.last_statuses),
            awaiting_feedback=sorted(self.awaiting_feedback),
        )

    @classmethod
    def from_snapshot(cls, snapshot: PersistedSnapshot) -> "OrchestrationState":
        return cls(
            notified=set(snapshot.notified_patients),
            ledger=NotificationLedger(snapshot.notifications_sent),
            consent_sessions={
                key: ConsentSession(**session.model_dump()) for key, session in snapshot.consent_sessions.items()
            },
            last_appointment_dates=dict(snapshot.last_appointment_dates),
            last_statuses=dict(snapshot.last_statuses),
            awaiting_feedback=set(snapshot.awaiting_feedback),
            cache_refreshed_at=snapshot.cache_refreshed_at,
        )

    def replace_with(self, other: "OrchestrationState") -> None:
        """Load another state into this instance, keeping references held by components valid."""
        self.notified = other.notified
        self.ledger = other.ledger
        self.consent_sessions = other.consent_sessions
        self.last_appointment_dates = other.last_appointment_dates
        self.last_statuses = other.last_statuses
        self.awaiting_feedback = other.awaiting_feedback
        self.cache_refreshed_at = other.cache_refreshed_at

    def summary(self) -> dict[str, Any]:
        return {
            "notified": len(self.notified),
            "ledger_keys": len(self.ledger),
            "consent_sessions": len(self.consent_sessions),
            "awaiting_feedback": len(self.awaiting_feedback),
        }
