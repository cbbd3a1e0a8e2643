# ============================================================================
# SCOPE: APPLICATION LAYER (Medical Appointments)
# Description: Detects out-of-band registry edits that re-arm workflows.
# ============================================================================
"""Change Detector.

Compares each refreshed row against the last observed appointment date and
status. A moved date, or a status leaving "Remarcado", re-arms reminders and
feedback for that patient while keeping the consent-sent timestamp.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from ...domain.entities.patient import PatientRecord
from ...domain.value_objects.appointment_status import AppointmentStatus
from ...domain.value_objects.notification_type import NotificationType

if TYPE_CHECKING:
    from .context import OrchestrationContext

logger = logging.getLogger(__name__)


class ChangeDetector:
    def __init__(self, ctx: OrchestrationContext):
        self.ctx = ctx

    def detect(self, records: Iterable[PatientRecord]) -> list[str]:
        """
        Run change detection over refreshed rows.

        Watermarks are updated for every row regardless of trigger.

        Returns:
            Canonical keys whose workflow state was reset.
        """
        state = self.ctx.state
        reset_keys: list[str] = []

        for record in records:
            key = self.ctx.resolver.normalize(record.phone)
            if not key:
                continue

            current_date = record.appointment_date.strip()
            current_status = record.status.strip()
            previous_date = state.last_appointment_dates.get(key)
            previous_status = state.last_statuses.get(key)

            date_changed = bool(previous_date) and previous_date != current_date
            left_rescheduled = (
                previous_status == AppointmentStatus.RESCHEDULED.value
                and current_status != AppointmentStatus.RESCHEDULED.value
            )

            if date_changed or left_rescheduled:
                reason = "date changed" if date_changed else "left Remarcado"
                logger.info(f"Resetting workflow state for {record.display_name} ({key}): {reason}")
                self.reset(key)
                reset_keys.append(key)

            state.last_appointment_dates[key] = current_date
            state.last_statuses[key] = current_status

        return reset_keys

    def reset(self, key: str) -> None:
        state = self.ctx.state
        state.notified.discard(key)
        state.ledger.retain_only(key, NotificationType.CONSENT_SENT)
        state.awaiting_feedback.discard(key)
