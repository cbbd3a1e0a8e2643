# ============================================================================
# SCOPE: APPLICATION LAYER (Medical Appointments)
# Description: Orchestration context shared by every workflow component.
# ============================================================================
"""Orchestration Context.

One explicit object carries the collaborators, the mutable state and the
workflow components. Components receive the context instead of reaching for
module-level globals, so tests can wire an isolated context per case.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from app.config.settings import Settings
from app.core.domain import MessengerAuthError, MessengerError, StateStoreError
from app.core.shared import Clock, PhoneNumberNormalizer, RecentLogBuffer, get_recent_log_buffer

from ...domain.entities.orchestration_state import OrchestrationState
from ..ports import IMessenger, IPatientRegistry, IStateStore
from .change_detector import ChangeDetector
from .consent_workflow import ConsentWorkflow
from .menu_dispatcher import MenuDispatcher
from .message_router import MessageRouter
from .messages import MessageTemplates
from .notification_scheduler import NotificationScheduler
from .patient_cache import PatientCache
from .recovery_manager import FailureContext, RecoveryManager

logger = logging.getLogger(__name__)


@dataclass
class OrchestrationContext:
    """Contexto de orquestación."""

    settings: Settings
    registry: IPatientRegistry
    messenger: IMessenger
    store: IStateStore
    resolver: PhoneNumberNormalizer
    templates: MessageTemplates
    clock: Clock
    state: OrchestrationState = field(default_factory=OrchestrationState)
    log_buffer: RecentLogBuffer = field(default_factory=get_recent_log_buffer)

    # Wired by build_context()
    recovery: RecoveryManager = field(init=False)
    cache: PatientCache = field(init=False)
    change_detector: ChangeDetector = field(init=False)
    consent: ConsentWorkflow = field(init=False)
    scheduler: NotificationScheduler = field(init=False)
    menu: MenuDispatcher = field(init=False)
    router: MessageRouter = field(init=False)

    def now_ms(self) -> int:
        return self.clock.now_ms()

    def persist(self) -> bool:
        """Write the full state snapshot. Failures are logged, never raised."""
        try:
            self.store.save(self.state)
            return True
        except StateStoreError as e:
            logger.error(f"State persistence failed: {e.message}")
            return False

    async def send(self, phone: str, text: str) -> None:
        """
        Send a message to a patient.

        Authentication failures are handed to the RecoveryManager before being
        re-raised to the caller.
        """
        try:
            await self.messenger.send_text(self.resolver.format_for_whatsapp(phone), text)
        except MessengerAuthError as e:
            await self.recovery.handle(e, FailureContext.TRANSPORT_AUTH_FAILURE)
            raise

    async def notify_operator(self, text: str) -> bool:
        """Send an audit/escalation message to the operator channel."""
        try:
            await self.messenger.send_text(self.settings.admin_key, text)
            return True
        except MessengerError as e:
            logger.error(f"Failed to notify operator: {e.message}")
            return False


def build_context(
    settings: Settings,
    registry: IPatientRegistry,
    messenger: IMessenger,
    store: IStateStore,
    clock: Clock | None = None,
    log_buffer: RecentLogBuffer | None = None,
) -> OrchestrationContext:
    """Create a context and wire every workflow component into it."""
    ctx = OrchestrationContext(
        settings=settings,
        registry=registry,
        messenger=messenger,
        store=store,
        resolver=PhoneNumberNormalizer.from_settings(settings),
        templates=MessageTemplates.from_settings(settings),
        clock=clock or Clock(settings.TIMEZONE),
        log_buffer=log_buffer or get_recent_log_buffer(),
    )
    ctx.recovery = RecoveryManager(ctx)
    ctx.cache = PatientCache(ctx)
    ctx.change_detector = ChangeDetector(ctx)
    ctx.consent = ConsentWorkflow(ctx)
    ctx.scheduler = NotificationScheduler(ctx)
    ctx.menu = MenuDispatcher(ctx)
    ctx.router = MessageRouter(ctx)
    return ctx
