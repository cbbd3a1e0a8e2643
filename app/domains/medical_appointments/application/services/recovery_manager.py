# ============================================================================
# SCOPE: APPLICATION LAYER (Medical Appointments)
# Description: Failure classification, bounded recovery and escalation.
# ============================================================================
"""Recovery Manager.

Routes failures by context tag to a recovery strategy:

- transport-disconnected / transport-auth-failure: bounded reconnect loop
- store-error: single registry re-probe, logged only
- memory-pressure: ledger/session pruning and registry reconciliation
- unhandled-exception / message-processing-error: operator escalation

Unrecoverable situations are escalated to the operator channel together with
the uptime, the system status and the tail of the recent-log buffer.
"""

from __future__ import annotations

import gc
import logging
import resource
import sys
from enum import Enum
from typing import TYPE_CHECKING, Any

from app.core.domain import MessengerError, RegistryError
from app.core.shared import DateFormatter

from ...domain.value_objects.notification_type import HOUR_MS

if TYPE_CHECKING:
    from .context import OrchestrationContext

logger = logging.getLogger(__name__)

DAY_MS = 24 * HOUR_MS
# Operator is told about reconciliation only above this many purged keys
SYNC_REPORT_THRESHOLD = 10


class FailureContext(str, Enum):
    """Contexto en el que ocurrió la falla."""

    TRANSPORT_DISCONNECTED = "transport-disconnected"
    TRANSPORT_AUTH_FAILURE = "transport-auth-failure"
    STORE_ERROR = "store-error"
    MEMORY_PRESSURE = "memory-pressure"
    UNHANDLED_EXCEPTION = "unhandled-exception"
    MESSAGE_PROCESSING = "message-processing-error"


class SystemStatus(str, Enum):
    STARTING = "INICIANDO"
    ACTIVE = "ATIVO"
    RECONNECTING = "RECONECTANDO"
    DISCONNECTED = "DESCONECTADO"
    AUTH_FAILURE = "FALHA_AUTENTICACAO"
    SHUTTING_DOWN = "DESLIGANDO"


def current_memory_mb() -> float:
    """Approximate resident memory (peak RSS) in MB."""
    usage = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # macOS reports bytes, Linux kilobytes
    if sys.platform == "darwin":
        return usage / 1024 / 1024
    return usage / 1024


class RecoveryManager:
    """Gestor de recuperación ante fallas."""

    def __init__(self, ctx: OrchestrationContext):
        self.ctx = ctx
        self.status = SystemStatus.STARTING
        self.reconnect_attempts = 0
        self.cumulative_backoff = 0.0
        self.auto_reconnect_halted = False
        self.last_severe_error: dict[str, Any] | None = None
        self.started_at_ms = ctx.now_ms()
        self._reconnecting = False

    def mark_started(self) -> None:
        self.status = SystemStatus.ACTIVE
        self.reconnect_attempts = 0
        self.started_at_ms = self.ctx.now_ms()

    async def handle(self, error: BaseException, context: FailureContext) -> bool:
        """
        Classify a failure and run its recovery strategy.

        Returns:
            True if the strategy restored the affected dependency.
        """
        self.last_severe_error = {
            "error": str(error),
            "context": context.value,
            "timestamp": self.ctx.now_ms(),
        }
        logger.error(f"Failure in {context.value}: {error}")

        if context in (FailureContext.TRANSPORT_DISCONNECTED, FailureContext.TRANSPORT_AUTH_FAILURE):
            if context is FailureContext.TRANSPORT_AUTH_FAILURE:
                self.status = SystemStatus.AUTH_FAILURE
                await self.notify_severe(f"Falha crítica na autenticação do WhatsApp: {error}")
            return await self.reconnect_transport(context)
        if context is FailureContext.STORE_ERROR:
            return await self.reprobe_registry()
        if context is FailureContext.MEMORY_PRESSURE:
            return await self.reconcile_memory()

        await self.notify_severe(f"Erro crítico no sistema: {context.value} - {error}")
        return False

    async def reconnect_transport(self, context: FailureContext) -> bool:
        """
        Iterative bounded reconnection.

        Attempt n waits interval * n. Exhausting the ceiling escalates to the
        operator and halts auto-reconnect until reset_reconnect() is called.
        """
        if self._reconnecting:
            logger.debug("Reconnect already in progress")
            return False
        if self.auto_reconnect_halted:
            logger.warning("Auto-reconnect halted, waiting for operator")
            return False

        settings = self.ctx.settings
        max_attempts = settings.MAX_RECONNECT_ATTEMPTS
        self._reconnecting = True
        self.status = SystemStatus.RECONNECTING
        try:
            while self.reconnect_attempts < max_attempts:
                self.reconnect_attempts += 1
                delay = settings.RECONNECT_INTERVAL_SECONDS * self.reconnect_attempts
                self.cumulative_backoff += delay
                logger.info(f"Reconnect attempt {self.reconnect_attempts}/{max_attempts} in {delay:.0f}s")
                await self.ctx.clock.sleep(delay)

                try:
                    connected = await self.ctx.messenger.reconnect()
                except MessengerError as e:
                    logger.warning(f"Reconnect attempt {self.reconnect_attempts} failed: {e.message}")
                    connected = False

                if connected:
                    logger.info(f"Transport reconnected after {self.reconnect_attempts} attempt(s)")
                    self.reconnect_attempts = 0
                    self.cumulative_backoff = 0.0
                    self.status = SystemStatus.ACTIVE
                    return True

            self.auto_reconnect_halted = True
            self.status = SystemStatus.DISCONNECTED
        finally:
            self._reconnecting = False

        await self.notify_severe(
            f"WhatsApp não conseguiu reconectar ({context.value}) após {max_attempts} tentativas."
        )
        return False

    def reset_reconnect(self) -> None:
        self.auto_reconnect_halted = False
        self.reconnect_attempts = 0
        self.cumulative_backoff = 0.0

    async def reprobe_registry(self) -> bool:
        try:
            ok = await self.ctx.registry.probe()
        except RegistryError as e:
            logger.error(f"Registry re-probe failed: {e.message}")
            return False
        if ok:
            logger.info("Registry reachable again")
        else:
            logger.warning("Registry re-probe failed, next scheduled refresh will retry")
        return ok

    async def reconcile_memory(self) -> bool:
        """Prune aged ledger entries and consent sessions, purge keys gone from the registry, persist."""
        logger.info("Running memory reconciliation")
        state = self.ctx.state
        now = self.ctx.now_ms()

        pruned = state.ledger.prune_older_than(now - DAY_MS)

        week_ago = now - 7 * DAY_MS
        stale_sessions = [key for key, session in state.consent_sessions.items() if session.last_sent_at < week_ago]
        for key in stale_sessions:
            del state.consent_sessions[key]

        removed = await self.sync_with_registry()

        gc.collect()
        self.ctx.persist()
        logger.info(
            f"Memory reconciliation done: {pruned} aged ledger keys, "
            f"{len(stale_sessions)} stale sessions, {removed} keys gone from registry"
        )
        return True

    async def sync_with_registry(self) -> int:
        """Drop notified markers and ledger keys whose phone left the registry."""
        try:
            await self.ctx.cache.ensure_fresh()
        except RegistryError:
            logger.warning("Skipping registry reconciliation, registry unavailable")
            return 0

        state = self.ctx.state
        active = self.ctx.cache.active_keys()

        gone = state.notified - active
        state.notified -= gone
        removed = len(gone) + state.ledger.retain_keys(active)
        state.awaiting_feedback &= active

        if removed > SYNC_REPORT_THRESHOLD:
            await self.ctx.notify_operator(self.ctx.templates.state_sync_operator(removed, len(active)))
        return removed

    async def notify_severe(self, description: str) -> bool:
        uptime_minutes = (self.ctx.now_ms() - self.started_at_ms) // 60_000
        recent_logs = [
            f"{entry['timestamp']} [{entry['level']}]: {entry['message']}" for entry in self.ctx.log_buffer.recent(10)
        ]
        text = self.ctx.templates.severe_error(description, uptime_minutes, self.status.value, recent_logs)
        return await self.ctx.notify_operator(text)

    async def handle_fatal(self, error: BaseException, origin: str = "unhandled") -> int:
        """
        Last-resort path before the process exits.

        Escalates, persists and, in production, waits for outbound messages to
        flush. Returns the exit code to use.
        """
        logger.critical(f"Fatal error ({origin}): {error}", exc_info=error)
        self.last_severe_error = {"error": str(error), "context": origin, "timestamp": self.ctx.now_ms()}
        await self.notify_severe(f"Exceção crítica: {error}. Origem: {origin}")

        if self.ctx.persist():
            logger.info("State saved before shutdown")

        if self.ctx.settings.is_production:
            await self.ctx.clock.sleep(self.ctx.settings.FATAL_EXIT_DELAY_SECONDS)
        return 1

    def uptime_ms(self) -> int:
        return self.ctx.now_ms() - self.started_at_ms

    def get_status(self) -> dict[str, Any]:
        uptime = self.uptime_ms()
        return {
            "status": self.status.value,
            "reconnect_attempts": self.reconnect_attempts,
            "last_severe_error": self.last_severe_error,
            "uptime_ms": uptime,
            "uptime_human": DateFormatter.humanize_duration(uptime),
            "logs_count": self.ctx.log_buffer.total_count,
            "memory_mb": round(current_memory_mb(), 2),
        }
