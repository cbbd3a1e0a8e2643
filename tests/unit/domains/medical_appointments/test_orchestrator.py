# ============================================================================
# Tests for OutreachOrchestrator
# ============================================================================
"""Unit tests for the single-consumer work queue.

APScheduler is replaced by a MagicMock; timer firings are simulated with
submit().
"""

from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from app.domains.medical_appointments.application.services.message_router import InboundMessage
from app.domains.medical_appointments.infrastructure.scheduler import OutreachOrchestrator, WorkKind
from tests.fakes import ADMIN_NUMBER, PATIENT_KEY

STRANGER = "5511900001111"


@pytest.fixture
def apscheduler() -> MagicMock:
    return MagicMock()


@pytest_asyncio.fixture
async def orchestrator(ctx, apscheduler):
    orch = OutreachOrchestrator(ctx, scheduler=apscheduler)
    yield orch
    await orch.stop("test teardown")


class TestSubmit:
    def test_timer_kinds_are_coalesced(self, ctx, apscheduler) -> None:
        orch = OutreachOrchestrator(ctx, scheduler=apscheduler)

        assert orch.submit(WorkKind.REFRESH) is True
        assert orch.submit(WorkKind.REFRESH) is False
        assert orch.submit(WorkKind.NOTIFICATIONS) is True


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_schedules_jobs_and_announces(self, orchestrator, apscheduler, messenger) -> None:
        await orchestrator.start()
        await orchestrator.drain()

        assert orchestrator.is_running
        assert apscheduler.add_job.call_count == 6
        job_ids = {call.kwargs["id"] for call in apscheduler.add_job.call_args_list}
        assert job_ids == {"refresh", "notifications", "probe", "persist", "memory", "consent-sweep"}
        apscheduler.start.assert_called_once()
        assert any("Online" in text for text in messenger.to(ADMIN_NUMBER))

    @pytest.mark.asyncio
    async def test_startup_runs_initial_scan_and_sweep(self, orchestrator, ctx, messenger) -> None:
        await orchestrator.start()
        await orchestrator.drain()

        # default row: consent accepted, appointment seven days ahead
        assert PATIENT_KEY in ctx.state.notified
        assert len(messenger.to(PATIENT_KEY)) == 1

    @pytest.mark.asyncio
    async def test_start_loads_persisted_state(self, orchestrator, ctx, store) -> None:
        ctx.state.notified.add("5511933334444")
        store.save(ctx.state)
        ctx.state.notified.clear()

        await orchestrator.start()

        assert "5511933334444" in ctx.state.notified

    @pytest.mark.asyncio
    async def test_startup_survives_registry_outage(self, orchestrator, registry, messenger) -> None:
        registry.fail_reads = True

        await orchestrator.start()
        await orchestrator.drain()

        assert any("Online" in text for text in messenger.to(ADMIN_NUMBER))

    @pytest.mark.asyncio
    async def test_stop_persists_and_says_goodbye(self, orchestrator, apscheduler, ctx, messenger, store) -> None:
        await orchestrator.start()
        await orchestrator.drain()

        await orchestrator.stop("SIGINT")

        apscheduler.shutdown.assert_called_once_with(wait=False)
        assert not orchestrator.is_running
        assert ctx.recovery.status.value == "DESLIGANDO"
        assert any("Desligando" in text and "SIGINT" in text for text in messenger.to(ADMIN_NUMBER))
        assert store.load().notified == ctx.state.notified


class TestConsumer:
    @pytest.mark.asyncio
    async def test_inbound_messages_are_routed(self, orchestrator, messenger) -> None:
        await orchestrator.start()
        await orchestrator.drain()

        orchestrator.submit_inbound(InboundMessage(sender=STRANGER, body="oi"))
        await orchestrator.drain()

        assert len(messenger.to(STRANGER)) == 1

    @pytest.mark.asyncio
    async def test_failing_item_does_not_stop_the_consumer(self, orchestrator, ctx, messenger, monkeypatch) -> None:
        async def explode():
            raise RuntimeError("sweep exploded")

        await orchestrator.start()
        await orchestrator.drain()
        monkeypatch.setattr(ctx.consent, "sweep_expired", explode)

        orchestrator.submit(WorkKind.CONSENT_SWEEP)
        orchestrator.submit_inbound(InboundMessage(sender=STRANGER, body="oi"))
        await orchestrator.drain()

        assert any("unhandled-exception" in text for text in messenger.to(ADMIN_NUMBER))
        assert len(messenger.to(STRANGER)) == 1

    @pytest.mark.asyncio
    async def test_notifications_skipped_while_disconnected(self, orchestrator, messenger) -> None:
        messenger.connected = False

        assert await orchestrator.run_notifications() == 0
        assert messenger.sent == []

    @pytest.mark.asyncio
    async def test_failed_transport_probe_reconnects(self, orchestrator, messenger, clock) -> None:
        messenger.probe_result = False
        messenger.reconnect_results = [True]

        await orchestrator.probe_connectivity()

        assert messenger.reconnect_calls == 1
        assert clock.sleeps == [30.0]
