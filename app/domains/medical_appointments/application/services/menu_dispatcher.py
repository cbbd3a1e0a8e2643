# ============================================================================
# SCOPE: APPLICATION LAYER (Medical Appointments)
# Description: Menu commands, feedback capture and unregistered notice.
# ============================================================================
"""Menu Dispatcher.

Handles messages from registered patients outside the consent flow:

- 1: confirm the appointment
- 2: request a reschedule
- 3: preparation instructions
- 4 / ajuda / atendente: human operator
- anything else: status-dependent initial menu (rate limited)

Patients with a pending feedback request have their next message captured as
feedback.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import TYPE_CHECKING

from app.core.domain import PatientNotFoundError

from ...domain.entities.patient import PatientRecord
from ...domain.value_objects.appointment_status import AppointmentStatus
from ...domain.value_objects.notification_type import NotificationType
from .messages import FEEDBACK_LABELS

if TYPE_CHECKING:
    from .context import OrchestrationContext
    from .patient_cache import PatientHandle

logger = logging.getLogger(__name__)

FEEDBACK_PATTERN = re.compile(r"^([1-5])(\s*-?\s*.*)?$", re.DOTALL)
CONFIRMED_MARKER = "Confirmado (Bot)"
RESCHEDULE_MARKER = "NÃO (Solicitou Remarcação)"
FEEDBACK_MARKER = "SIM"


class MenuCommand(str, Enum):
    CONFIRM = "confirm"
    RESCHEDULE = "reschedule"
    PREPARATION = "preparation"
    ATTENDANT = "attendant"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, text: str) -> "MenuCommand":
        commands = {
            "1": cls.CONFIRM,
            "2": cls.RESCHEDULE,
            "3": cls.PREPARATION,
            "4": cls.ATTENDANT,
            "ajuda": cls.ATTENDANT,
            "atendente": cls.ATTENDANT,
        }
        return commands.get(text.strip().lower(), cls.UNKNOWN)


def format_feedback(text: str) -> str:
    """`N` or `N - comment` becomes `Nota: N/5 (label). Comentário: comment`; anything else is kept verbatim."""
    match = FEEDBACK_PATTERN.match(text.strip())
    if not match:
        return text.strip()
    score = match.group(1)
    comment = re.sub(r"^[-\s]+", "", match.group(2) or "")
    formatted = f"Nota: {score}/5 ({FEEDBACK_LABELS[score]})"
    if comment:
        formatted += f". Comentário: {comment}"
    return formatted


class MenuDispatcher:
    """Despachante del menú de pacientes registrados."""

    def __init__(self, ctx: OrchestrationContext):
        self.ctx = ctx

    async def dispatch(self, sender: str, text: str, record: PatientRecord) -> MenuCommand | None:
        """
        Route a message from a registered patient.

        Returns:
            The command executed, or None when the message was captured as
            feedback or answered with the initial menu.
        """
        key = self.ctx.cache.key_for(sender)
        command = MenuCommand.parse(text)

        if not record.has_accepted_consent:
            if command is MenuCommand.ATTENDANT:
                await self.request_attendant(sender, record)
                return command
            await self.show_initial_menu(sender, record)
            return None

        if key in self.ctx.state.awaiting_feedback:
            await self.capture_feedback(sender, record, text)
            return None

        status = record.workflow_status
        if status is not None and status.is_final() and command is not MenuCommand.ATTENDANT:
            await self.show_initial_menu(sender, record)
            return None

        if command is MenuCommand.CONFIRM:
            await self.confirm(sender, record)
        elif command is MenuCommand.RESCHEDULE:
            await self.reschedule(sender, record)
        elif command is MenuCommand.PREPARATION:
            await self.ctx.send(sender, self.ctx.templates.preparation(record.display_name))
        elif command is MenuCommand.ATTENDANT:
            await self.request_attendant(sender, record)
        else:
            await self.show_initial_menu(sender, record)
            return None
        return command

    def _handle(self, sender: str, operation: str) -> PatientHandle:
        handle = self.ctx.cache.handle_for(sender)
        if handle is None:
            raise PatientNotFoundError(sender, operation)
        return handle

    async def confirm(self, sender: str, record: PatientRecord) -> bool:
        was_confirmed = record.workflow_status is AppointmentStatus.CONFIRMED
        handle = self._handle(sender, "confirm")
        ok = await self.ctx.cache.write_fields(
            handle, {"status": AppointmentStatus.CONFIRMED.value, "confirmation": CONFIRMED_MARKER}
        )
        if not ok:
            await self.ctx.send(sender, self.ctx.templates.action_failed())
            return False

        await self.ctx.send(sender, self.ctx.templates.confirmation(record))
        if not was_confirmed:
            await self.ctx.notify_operator(self.ctx.templates.operator_event("Consulta Confirmada pelo Paciente", record))
        return True

    async def reschedule(self, sender: str, record: PatientRecord) -> bool:
        handle = self._handle(sender, "reschedule")
        ok = await self.ctx.cache.write_fields(
            handle, {"status": AppointmentStatus.RESCHEDULED.value, "confirmation": RESCHEDULE_MARKER}
        )
        if not ok:
            logger.error(f"Failed to register reschedule for {record.display_name}")
            await self.ctx.send(sender, self.ctx.templates.action_failed())
            return False

        await self.ctx.send(sender, self.ctx.templates.reschedule())
        await self.ctx.notify_operator(self.ctx.templates.operator_event("Remarcação Solicitada por Paciente", record))
        return True

    async def request_attendant(self, sender: str, record: PatientRecord) -> None:
        await self.ctx.send(sender, self.ctx.templates.attendant(record.display_name))
        await self.ctx.notify_operator(self.ctx.templates.operator_event("Paciente Solicitou Atendente", record))

    async def show_initial_menu(self, sender: str, record: PatientRecord) -> bool:
        """Status-dependent menu, suppressed within MENU_SPAM_WINDOW_SECONDS of the last one."""
        key = self.ctx.cache.key_for(sender)
        ledger = self.ctx.state.ledger
        now = self.ctx.now_ms()
        window_ms = int(self.ctx.settings.MENU_SPAM_WINDOW_SECONDS * 1000)
        if ledger.has_sent(key, NotificationType.MENU_SHOWN, now, ttl_ms=window_ms):
            return False

        templates = self.ctx.templates
        if not record.has_accepted_consent:
            text = templates.consent_required(record.display_name)
        else:
            status = record.workflow_status
            label = f"{status.emoji} {status.value}" if status else (record.status or "Não definido")
            text = templates.menu(record, label)

        await self.ctx.send(sender, text)
        ledger.register(key, NotificationType.MENU_SHOWN, now)
        return True

    async def send_unregistered_notice(self, sender: str) -> bool:
        """Informational reply for senders not in the registry, at most once per TTL."""
        key = self.ctx.resolver.normalize(sender)
        if not key:
            return False
        ledger = self.ctx.state.ledger
        now = self.ctx.now_ms()
        if ledger.has_sent(key, NotificationType.UNREGISTERED_INFO, now):
            return False

        await self.ctx.send(sender, self.ctx.templates.unregistered())
        ledger.register(key, NotificationType.UNREGISTERED_INFO, now)
        self.ctx.persist()
        return True

    async def capture_feedback(self, sender: str, record: PatientRecord, text: str) -> bool:
        feedback = format_feedback(text)
        key = self.ctx.cache.key_for(sender)
        handle = self._handle(sender, "feedback")
        ok = await self.ctx.cache.write_fields(
            handle,
            {
                "feedback": feedback,
                "status": AppointmentStatus.COMPLETED.value,
                "confirmation": FEEDBACK_MARKER,
            },
        )
        if not ok:
            logger.error(f"Failed to register feedback from {record.display_name}")
            await self.ctx.send(sender, self.ctx.templates.feedback_failed())
            return False

        self.ctx.state.awaiting_feedback.discard(key)
        self.ctx.persist()
        await self.ctx.send(sender, self.ctx.templates.feedback_thanks(record.display_name))
        await self.ctx.notify_operator(
            self.ctx.templates.operator_event("Feedback Recebido de Paciente", record, extra=feedback)
        )
        return True
