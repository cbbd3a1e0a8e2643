# ============================================================================
# SCOPE: APPLICATION LAYER (Medical Appointments)
# Description: Reminder and feedback-request sweep with per-type dedup TTLs.
# ============================================================================
"""Notification Scheduler.

Once per cycle, decides for every patient whether a 7-day reminder, a 2-day
reminder or a post-visit feedback request is due, inside the clinic-local
notification window. Dedup is enforced by the notification ledger.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from app.core.domain import MessengerAuthError
from app.core.shared import DateFormatter

from ...domain.entities.patient import PatientRecord
from ...domain.value_objects.notification_type import NotificationType

if TYPE_CHECKING:
    from .context import OrchestrationContext

logger = logging.getLogger(__name__)

REMINDER_7D_DAYS = 7
REMINDER_2D_DAYS = 2
FEEDBACK_DAYS = -1


class NotificationScheduler:
    """Barrido de recordatorios y pedidos de feedback."""

    def __init__(self, ctx: OrchestrationContext):
        self.ctx = ctx

    def has_sent(self, phone: str, notification_type: NotificationType) -> bool:
        key = self.ctx.resolver.normalize(phone)
        return self.ctx.state.ledger.has_sent(key, notification_type, self.ctx.now_ms())

    def register(self, phone: str, notification_type: NotificationType) -> None:
        key = self.ctx.resolver.normalize(phone)
        self.ctx.state.ledger.register(key, notification_type, self.ctx.now_ms())

    def in_window(self, now: datetime) -> bool:
        settings = self.ctx.settings
        return settings.NOTIFICATION_START_HOUR <= now.hour < settings.NOTIFICATION_END_HOUR

    async def send_notification(self, record: PatientRecord, notification_type: NotificationType, text: str) -> bool:
        """
        TTL-gated send: a second call within the type's TTL sends nothing.

        Returns:
            True if the message went out and the ledger was updated.
        """
        if self.has_sent(record.phone, notification_type):
            return False
        await self.ctx.send(record.phone, text)
        self.register(record.phone, notification_type)
        logger.info(f"Sent {notification_type.value} to {record.display_name}")
        return True

    async def sweep(self) -> int:
        """
        Run one scheduling cycle.

        One patient's failure is logged and the batch continues. State is
        persisted once at the end when anything was sent.

        Returns:
            Number of notifications sent.
        """
        await self.ctx.cache.ensure_fresh()

        now = self.ctx.clock.now()
        if not self.in_window(now):
            logger.debug(f"Outside notification window at {now:%H:%M}, skipping sweep")
            return 0

        sent = 0
        processed: set[str] = set()
        for record in list(self.ctx.cache.records):
            try:
                if await self._process(record, now, processed):
                    sent += 1
            except MessengerAuthError:
                logger.error("Transport authentication failed, aborting notification sweep")
                break
            except Exception as e:
                logger.error(f"Error processing notifications for {record.display_name or 'unknown'}: {e}")

        if sent:
            self.ctx.persist()
            logger.info(f"Notification sweep sent {sent} message(s)")
        return sent

    async def _process(self, record: PatientRecord, now: datetime, processed: set[str]) -> bool:
        if not record.is_contactable() or not record.appointment_date.strip():
            return False

        key = self.ctx.resolver.normalize(record.phone)
        if not key or key in processed:
            return False

        if not record.has_accepted_consent:
            return False

        status = record.workflow_status
        if status is not None and status.blocks_feedback():
            return False

        appointment_date = DateFormatter.parse_strict_date(record.appointment_date)
        if appointment_date is None:
            logger.debug(f"Skipping {record.display_name}: unparseable date {record.appointment_date!r}")
            return False

        days = (appointment_date - now.date()).days
        reminders_blocked = status is not None and status.blocks_reminders()
        templates = self.ctx.templates

        sent = False
        if days == REMINDER_7D_DAYS and not reminders_blocked:
            sent = await self.send_notification(record, NotificationType.REMINDER_7D, templates.reminder_7d(record))
        elif days == REMINDER_2D_DAYS and not reminders_blocked:
            sent = await self.send_notification(record, NotificationType.REMINDER_2D, templates.reminder_2d(record))
        elif days == FEEDBACK_DAYS and self._feedback_due(record, appointment_date, now):
            sent = await self.send_notification(
                record, NotificationType.FEEDBACK_REQUEST, templates.feedback_request(record.display_name)
            )
            if sent:
                self.ctx.state.awaiting_feedback.add(key)

        if sent:
            processed.add(key)
        return sent

    def _feedback_due(self, record: PatientRecord, appointment_date: date, now: datetime) -> bool:
        """Feedback waits for an empty feedback column and the visit plus grace to be over."""
        if record.has_feedback:
            return False
        appointment_time = DateFormatter.parse_time(record.appointment_time.strip() or "00:00")
        if appointment_time is None:
            return True
        appointment_at = self.ctx.clock.tz.localize(datetime.combine(appointment_date, appointment_time))
        grace = timedelta(hours=self.ctx.settings.FEEDBACK_GRACE_HOURS)
        return now > appointment_at + grace
