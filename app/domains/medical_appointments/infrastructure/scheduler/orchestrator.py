"""Outreach Orchestrator.

Single-consumer work queue driving every state mutation. APScheduler interval
jobs and the webhook only enqueue work items; one consumer task runs them to
completion, one at a time, so no two steps ever interleave on the same patient.

Jobs:
- registry refresh + change detection + new-registration scan
- notification sweep
- registry/transport connectivity probe
- state persistence
- memory/ledger reconciliation
- TCLE timeout sweep
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-not-found]
from apscheduler.triggers.interval import IntervalTrigger  # type: ignore[import-not-found]

from app.core.domain import MessengerError, RegistryError
from app.core.shared import DateFormatter

from ...application.services.context import OrchestrationContext
from ...application.services.message_router import InboundMessage
from ...application.services.recovery_manager import FailureContext, SystemStatus, current_memory_mb

logger = logging.getLogger(__name__)

CONSUMER_STOP_TIMEOUT = 30.0


class WorkKind(str, Enum):
    """Tipo de trabajo encolado."""

    INBOUND = "inbound"
    REFRESH = "refresh"
    NOTIFICATIONS = "notifications"
    PROBE = "probe"
    PERSIST = "persist"
    MEMORY = "memory"
    CONSENT_SWEEP = "consent-sweep"
    STARTUP = "startup"


@dataclass
class WorkItem:
    kind: WorkKind
    message: InboundMessage | None = None


class OutreachOrchestrator:
    """Orquestador de la cola de trabajo.

    Timer-driven kinds are coalesced: a kind already waiting in the queue is
    not enqueued again. Inbound messages are never coalesced.
    """

    def __init__(self, ctx: OrchestrationContext, scheduler: AsyncIOScheduler | None = None):
        self.ctx = ctx
        self._scheduler = scheduler
        self._queue: asyncio.Queue[WorkItem | None] = asyncio.Queue()
        self._pending: set[WorkKind] = set()
        self._consumer: asyncio.Task | None = None
        self._is_running = False

    @property
    def is_running(self) -> bool:
        return self._is_running

    def submit(self, kind: WorkKind) -> bool:
        """Enqueue a timer-driven work item. Returns False when coalesced."""
        if kind in self._pending:
            logger.debug(f"Work item {kind.value} already queued, coalescing")
            return False
        self._pending.add(kind)
        self._queue.put_nowait(WorkItem(kind))
        return True

    def submit_inbound(self, message: InboundMessage) -> None:
        self._queue.put_nowait(WorkItem(WorkKind.INBOUND, message))

    async def _enqueue(self, kind: WorkKind) -> None:
        # APScheduler job target; runs on the event loop
        self.submit(kind)

    def _jobs(self) -> list[tuple[WorkKind, int, str]]:
        settings = self.ctx.settings
        return [
            (WorkKind.REFRESH, settings.REFRESH_INTERVAL_SECONDS, "Registry Refresh and TCLE Scan"),
            (WorkKind.NOTIFICATIONS, settings.notification_interval_seconds, "Notification Sweep"),
            (WorkKind.PROBE, settings.CONNECTIVITY_PROBE_INTERVAL_SECONDS, "Connectivity Probe"),
            (WorkKind.PERSIST, settings.PERSIST_INTERVAL_SECONDS, "State Persistence"),
            (WorkKind.MEMORY, settings.MEMORY_CLEANUP_INTERVAL_SECONDS, "Memory Reconciliation"),
            (WorkKind.CONSENT_SWEEP, settings.TCLE_SWEEP_INTERVAL_SECONDS, "Expired TCLE Sweep"),
        ]

    async def start(self) -> None:
        """Load persisted state, start the consumer, enqueue startup and schedule the timers."""
        if self._is_running:
            logger.warning("OutreachOrchestrator already running")
            return

        self.ctx.state.replace_with(self.ctx.store.load())
        logger.info(f"State loaded: {self.ctx.state.summary()}")

        self._consumer = asyncio.create_task(self._consume(), name="outreach-consumer")
        self.submit(WorkKind.STARTUP)

        scheduler = self._scheduler or AsyncIOScheduler(timezone=self.ctx.clock.tz)
        self._scheduler = scheduler
        for kind, seconds, name in self._jobs():
            scheduler.add_job(
                self._enqueue,
                IntervalTrigger(seconds=seconds, timezone=self.ctx.clock.tz),
                args=[kind],
                id=kind.value,
                replace_existing=True,
                name=name,
                max_instances=1,
                coalesce=True,
            )
        scheduler.start()
        self._is_running = True
        logger.info(f"OutreachOrchestrator started with {len(self._jobs())} jobs (tz={self.ctx.clock.tz})")

    async def stop(self, reason: str = "SIGTERM") -> None:
        """Graceful shutdown: stop timers, drain the consumer, persist and say goodbye."""
        if not self._is_running:
            return
        self._is_running = False
        recovery = self.ctx.recovery
        recovery.status = SystemStatus.SHUTTING_DOWN
        logger.info(f"Shutting down ({reason})")

        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)

        if self._consumer is not None:
            self._queue.put_nowait(None)
            try:
                await asyncio.wait_for(self._consumer, timeout=CONSUMER_STOP_TIMEOUT)
            except asyncio.TimeoutError:
                logger.warning("Consumer did not finish in time, cancelling")
                self._consumer.cancel()
            self._consumer = None

        if self.ctx.persist():
            logger.info("State saved")
        await self.ctx.notify_operator(
            self.ctx.templates.shutdown_digest(reason, DateFormatter.humanize_duration(recovery.uptime_ms()))
        )
        logger.info("OutreachOrchestrator stopped")

    async def drain(self) -> None:
        """Wait until every queued work item has been processed."""
        await self._queue.join()

    async def _consume(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                if item is None:
                    return
                self._pending.discard(item.kind)
                await self._execute(item)
            except RegistryError as e:
                # Already reported by the cache; the next cycle retries
                logger.warning(f"Work item {item.kind.value} skipped, registry unavailable: {e.message}")
            except Exception as e:
                logger.error(f"Work item {item.kind.value} failed: {e}", exc_info=True)
                await self.ctx.recovery.handle(e, FailureContext.UNHANDLED_EXCEPTION)
            finally:
                self._queue.task_done()

    async def _execute(self, item: WorkItem) -> None:
        kind = item.kind
        if kind is WorkKind.INBOUND and item.message is not None:
            await self.ctx.router.route(item.message)
        elif kind is WorkKind.REFRESH:
            await self.refresh_and_scan()
        elif kind is WorkKind.NOTIFICATIONS:
            await self.run_notifications()
        elif kind is WorkKind.PROBE:
            await self.probe_connectivity()
        elif kind is WorkKind.PERSIST:
            self.ctx.persist()
        elif kind is WorkKind.MEMORY:
            logger.info(f"Memory usage: {current_memory_mb():.2f} MB")
            await self.ctx.recovery.reconcile_memory()
        elif kind is WorkKind.CONSENT_SWEEP:
            await self.ctx.consent.sweep_expired()
        elif kind is WorkKind.STARTUP:
            await self.startup()

    async def refresh_and_scan(self) -> None:
        cache = self.ctx.cache
        await cache.ensure_fresh(force=True)
        if self.ctx.change_detector.detect(cache.records):
            self.ctx.persist()
        await self.ctx.consent.scan_new_registrations()

    async def run_notifications(self) -> int:
        if not self.ctx.messenger.is_connected():
            logger.warning("Transport disconnected, skipping notification sweep")
            return 0
        return await self.ctx.scheduler.sweep()

    async def probe_registry(self) -> bool:
        try:
            return await self.ctx.registry.probe()
        except RegistryError as e:
            logger.error(f"Registry probe failed: {e.message}")
            return False

    async def probe_connectivity(self) -> None:
        if not await self.probe_registry():
            await self.ctx.recovery.handle(RegistryError("Registry probe failed"), FailureContext.STORE_ERROR)

        try:
            transport_ok = await self.ctx.messenger.probe()
        except MessengerError as e:
            logger.error(f"Transport probe failed: {e.message}")
            transport_ok = False
        if not transport_ok:
            await self.ctx.recovery.handle(
                MessengerError("Transport probe failed"), FailureContext.TRANSPORT_DISCONNECTED
            )

    async def startup(self) -> None:
        recovery = self.ctx.recovery
        recovery.mark_started()

        registry_ok = await self.probe_registry()
        if not registry_ok:
            await recovery.notify_severe("Falha ao conectar com o Google Sheets na inicialização.")

        try:
            await self.refresh_and_scan()
        except RegistryError as e:
            logger.warning(f"Initial registry scan skipped: {e.message}")
        try:
            await self.run_notifications()
        except RegistryError as e:
            logger.warning(f"Initial notification sweep skipped: {e.message}")

        await self.ctx.notify_operator(
            self.ctx.templates.online_digest(
                registry_ok,
                self.ctx.settings.is_production,
                DateFormatter.humanize_duration(recovery.uptime_ms()),
                current_memory_mb(),
            )
        )
        logger.info("Patient outreach orchestrator online")
