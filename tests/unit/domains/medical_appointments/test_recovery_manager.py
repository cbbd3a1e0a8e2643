# ============================================================================
# Tests for RecoveryManager
# ============================================================================
"""Unit tests for failure classification, reconnect backoff and escalation."""

import pytest

from app.core.domain import MessengerAuthError
from app.domains.medical_appointments.application.services.recovery_manager import FailureContext, SystemStatus
from app.domains.medical_appointments.domain.entities.consent_session import ConsentSession
from app.domains.medical_appointments.domain.value_objects.notification_type import HOUR_MS, NotificationType
from tests.fakes import ADMIN_NUMBER, PATIENT_KEY


class TestReconnect:
    """Tests for the bounded reconnect loop."""

    @pytest.mark.asyncio
    async def test_linear_backoff_until_success(self, ctx, messenger, clock) -> None:
        messenger.reconnect_results = [False, False, True]

        ok = await ctx.recovery.handle(ConnectionError("socket closed"), FailureContext.TRANSPORT_DISCONNECTED)

        assert ok is True
        assert clock.sleeps == [30.0, 60.0, 90.0]
        assert ctx.recovery.status is SystemStatus.ACTIVE
        assert ctx.recovery.reconnect_attempts == 0

    @pytest.mark.asyncio
    async def test_exhaustion_halts_and_escalates(self, ctx, messenger, clock) -> None:
        ctx.settings.MAX_RECONNECT_ATTEMPTS = 3

        ok = await ctx.recovery.handle(ConnectionError("down"), FailureContext.TRANSPORT_DISCONNECTED)

        assert ok is False
        assert messenger.reconnect_calls == 3
        assert ctx.recovery.auto_reconnect_halted is True
        assert ctx.recovery.status is SystemStatus.DISCONNECTED
        assert any("ERRO GRAVE" in text for text in messenger.to(ADMIN_NUMBER))

        # Halted: a new failure does not start another loop
        assert await ctx.recovery.handle(ConnectionError("down"), FailureContext.TRANSPORT_DISCONNECTED) is False
        assert messenger.reconnect_calls == 3

    @pytest.mark.asyncio
    async def test_reset_reenables_reconnect(self, ctx, messenger) -> None:
        ctx.settings.MAX_RECONNECT_ATTEMPTS = 1
        await ctx.recovery.handle(ConnectionError("down"), FailureContext.TRANSPORT_DISCONNECTED)

        ctx.recovery.reset_reconnect()
        messenger.reconnect_results = [True]

        assert await ctx.recovery.handle(ConnectionError("down"), FailureContext.TRANSPORT_DISCONNECTED) is True

    @pytest.mark.asyncio
    async def test_auth_failure_escalates_before_reconnecting(self, ctx, messenger) -> None:
        messenger.reconnect_results = [True]

        ok = await ctx.recovery.handle(MessengerAuthError("token expired"), FailureContext.TRANSPORT_AUTH_FAILURE)

        assert ok is True
        operator_messages = messenger.to(ADMIN_NUMBER)
        assert len(operator_messages) == 1
        assert "autenticação" in operator_messages[0]


class TestOtherStrategies:
    @pytest.mark.asyncio
    async def test_store_error_reprobes_registry(self, ctx, registry, messenger) -> None:
        registry.healthy = False

        assert await ctx.recovery.handle(RuntimeError("quota"), FailureContext.STORE_ERROR) is False
        assert messenger.sent == []
        assert ctx.recovery.last_severe_error["context"] == "store-error"

    @pytest.mark.asyncio
    async def test_unhandled_exception_is_escalated(self, ctx, messenger) -> None:
        await ctx.recovery.handle(ValueError("bad"), FailureContext.UNHANDLED_EXCEPTION)

        assert any("unhandled-exception" in text for text in messenger.to(ADMIN_NUMBER))

    @pytest.mark.asyncio
    async def test_memory_reconciliation_prunes_and_persists(self, ctx, registry, store) -> None:
        now = ctx.now_ms()
        state = ctx.state
        state.ledger.register("5511911112222", NotificationType.REMINDER_7D, now - 25 * HOUR_MS)
        state.ledger.register(PATIENT_KEY, NotificationType.REMINDER_7D, now)
        state.notified.update({PATIENT_KEY, "5511933334444"})
        state.consent_sessions["5511955556666"] = ConsentSession("Velho", 0, now - 8 * 24 * HOUR_MS, 1)

        assert await ctx.recovery.handle(MemoryError(), FailureContext.MEMORY_PRESSURE) is True

        assert list(state.ledger.to_dict()) == [PATIENT_KEY]
        assert state.notified == {PATIENT_KEY}
        assert state.consent_sessions == {}
        assert store.load().notified == {PATIENT_KEY}


class TestStatusAndFatal:
    def test_status_snapshot(self, ctx) -> None:
        status = ctx.recovery.get_status()

        assert set(status) == {
            "status",
            "reconnect_attempts",
            "last_severe_error",
            "uptime_ms",
            "uptime_human",
            "logs_count",
            "memory_mb",
        }
        assert status["status"] == "INICIANDO"

    def test_mark_started(self, ctx, clock) -> None:
        clock.advance(minutes=5)
        ctx.recovery.mark_started()

        assert ctx.recovery.status is SystemStatus.ACTIVE
        assert ctx.recovery.uptime_ms() == 0

    @pytest.mark.asyncio
    async def test_handle_fatal_persists_and_returns_exit_code(self, ctx, messenger, store, clock) -> None:
        ctx.state.notified.add(PATIENT_KEY)

        code = await ctx.recovery.handle_fatal(RuntimeError("kaboom"), "uncaughtException")

        assert code == 1
        assert store.load().notified == {PATIENT_KEY}
        assert any("kaboom" in text for text in messenger.to(ADMIN_NUMBER))
        assert clock.sleeps == []
