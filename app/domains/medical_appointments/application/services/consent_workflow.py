# ============================================================================
# SCOPE: APPLICATION LAYER (Medical Appointments)
# Description: TCLE (informed consent) state machine.
# ============================================================================
"""Consent Workflow.

Per-patient TCLE state machine::

    NONE -> AWAITING -> ACCEPTED | REJECTED
                  \\-> EXPIRED (attempt ceiling or timeout)

AWAITING self-loops on an unrecognized reply. Every transition persists the
full state snapshot before returning.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from app.core.domain import MessengerError

from ...domain.entities.consent_session import ConsentSession
from ...domain.entities.patient import PatientRecord
from ...domain.value_objects.consent_status import ConsentStatus, classify_reply
from ...domain.value_objects.notification_type import HOUR_MS, NotificationType

if TYPE_CHECKING:
    from .context import OrchestrationContext

logger = logging.getLogger(__name__)


class ConsentOutcome(str, Enum):
    """Resultado de procesar una respuesta al TCLE."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"
    UNRECOGNIZED = "unrecognized"
    EXHAUSTED = "exhausted"
    NOT_FOUND = "not-found"
    WRITE_FAILED = "write-failed"


class ConsentWorkflow:
    """Flujo de consentimiento (TCLE)."""

    def __init__(self, ctx: OrchestrationContext):
        self.ctx = ctx

    @property
    def max_attempts(self) -> int:
        return self.ctx.settings.TCLE_MAX_ATTEMPTS

    @property
    def sessions(self) -> dict[str, ConsentSession]:
        return self.ctx.state.consent_sessions

    def has_session(self, key: str) -> bool:
        return key in self.sessions

    def open_session(self, key: str, name: str) -> ConsentSession:
        """Open (or return) a session for a registered patient who wrote in before any dispatch."""
        session = self.sessions.get(key)
        if session is None:
            now = self.ctx.now_ms()
            session = ConsentSession(name=name, first_sent_at=now, last_sent_at=now, attempts=0)
            self.sessions[key] = session
        return session

    async def dispatch(self, record: PatientRecord) -> bool:
        """
        Send the TCLE prompt to a patient.

        Gated by the consent-sent TTL and by the attempt ceiling; at the ceiling
        the session is dropped without sending.

        Returns:
            True if a prompt was sent.
        """
        if not record.is_contactable():
            return False
        key = self.ctx.resolver.normalize(record.phone)
        if not key:
            return False

        now = self.ctx.now_ms()
        if self.ctx.state.ledger.has_sent(key, NotificationType.CONSENT_SENT, now):
            return False

        previous = self.sessions.get(key)
        attempts = previous.attempts if previous else 0
        if attempts >= self.max_attempts:
            logger.info(f"TCLE attempt ceiling reached for {record.display_name}, dropping session")
            self.sessions.pop(key, None)
            # out of the consent flow until the registry row changes or the patient writes in
            self.ctx.state.notified.add(key)
            self.ctx.persist()
            return False

        session = ConsentSession(
            name=record.display_name,
            first_sent_at=previous.first_sent_at if previous else now,
            last_sent_at=now,
            attempts=attempts + 1,
        )
        self.sessions[key] = session

        try:
            await self.ctx.send(record.phone, self.ctx.templates.consent_prompt(session.name, session.attempts))
        except MessengerError as e:
            logger.error(f"Failed to send TCLE to {record.display_name}: {e.message}")
            if previous is None:
                self.sessions.pop(key, None)
            else:
                self.sessions[key] = previous
            return False

        self.ctx.state.ledger.register(key, NotificationType.CONSENT_SENT, now)
        self.ctx.persist()
        logger.info(f"TCLE sent to {record.display_name} (attempt {session.attempts}/{self.max_attempts})")

        await self.ctx.notify_operator(self.ctx.templates.consent_sent_operator(record, session.attempts))
        return True

    async def handle_reply(self, sender: str, text: str) -> ConsentOutcome:
        """Process a free-text reply from a patient with an open session."""
        templates = self.ctx.templates
        key = self.ctx.cache.key_for(sender)
        handle = self.ctx.cache.handle_for(sender)

        if handle is None:
            logger.warning(f"TCLE reply from {key} but the patient is no longer in the registry")
            self.sessions.pop(key, None)
            self.ctx.persist()
            await self.ctx.send(sender, templates.patient_not_found())
            return ConsentOutcome.NOT_FOUND

        record = self.ctx.cache.resolve(handle)
        session = self.open_session(key, record.display_name)
        name = session.name or record.display_name
        decision = classify_reply(text)

        if decision is not ConsentStatus.NONE:
            if not await self.ctx.cache.write_field(handle, "consent", decision.value):
                await self.ctx.send(sender, templates.registry_write_failed())
                return ConsentOutcome.WRITE_FAILED

            self.sessions.pop(key, None)
            self.ctx.persist()

            if decision is ConsentStatus.ACCEPTED:
                logger.info(f"TCLE accepted by {name}")
                await self.ctx.send(sender, templates.consent_accepted(record))
                await self.ctx.notify_operator(templates.consent_accepted_operator(record))
                return ConsentOutcome.ACCEPTED

            logger.info(f"TCLE rejected by {name}")
            await self.ctx.send(sender, templates.consent_rejected(name))
            await self.ctx.notify_operator(templates.consent_rejected_operator(record))
            return ConsentOutcome.REJECTED

        session.attempts += 1
        if session.attempts >= self.max_attempts:
            logger.info(f"TCLE attempts exhausted for {name}")
            self.sessions.pop(key, None)
            self.ctx.persist()
            await self.ctx.send(sender, templates.consent_exhausted(name, self.max_attempts))
            return ConsentOutcome.EXHAUSTED

        self.ctx.persist()
        await self.ctx.send(sender, templates.consent_unrecognized(name, session.attempts, self.max_attempts))
        return ConsentOutcome.UNRECOGNIZED

    async def sweep_expired(self) -> int:
        """Expire sessions past the timeout or at the attempt ceiling. Returns how many were removed."""
        now = self.ctx.now_ms()
        timeout_ms = self.ctx.settings.TCLE_TIMEOUT_HOURS * HOUR_MS

        expired = [
            (key, session)
            for key, session in self.sessions.items()
            if session.age_ms(now) > timeout_ms or session.is_exhausted(self.max_attempts)
        ]
        if not expired:
            return 0

        for key, session in expired:
            try:
                await self.ctx.send(key, self.ctx.templates.consent_expired(session.name))
            except MessengerError as e:
                logger.error(f"Failed to send TCLE expiry to {session.name}: {e.message}")
            self.sessions.pop(key, None)

        self.ctx.persist()
        logger.info(f"Expired {len(expired)} TCLE session(s)")
        await self.ctx.notify_operator(self.ctx.templates.consent_expired_operator(len(expired)))
        return len(expired)

    async def scan_new_registrations(self) -> int:
        """
        Dispatch the TCLE to every registry row not yet handled.

        Rows whose consent is already decided are only marked as notified.
        Returns the number of prompts sent.
        """
        state = self.ctx.state
        seen_this_cycle: set[str] = set()
        dispatched = 0

        for record in list(self.ctx.cache.records):
            if not record.is_contactable():
                continue
            key = self.ctx.resolver.normalize(record.phone)
            if not key or key in state.notified or key in seen_this_cycle:
                continue

            if record.consent_status.is_terminal():
                state.notified.add(key)
                seen_this_cycle.add(key)
                continue

            try:
                sent = await self.dispatch(record)
            except Exception as e:
                logger.error(f"Error dispatching TCLE to {record.display_name}: {e}", exc_info=True)
                continue

            if sent:
                dispatched += 1
                state.notified.add(key)
                seen_this_cycle.add(key)

        if dispatched:
            self.ctx.persist()
            logger.info(f"TCLE dispatched to {dispatched} new registration(s)")
        return dispatched
