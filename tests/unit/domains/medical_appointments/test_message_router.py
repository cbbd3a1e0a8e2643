"""Unit tests for MessageRouter (inbound precedence rules)."""

import pytest

from app.domains.medical_appointments.application.services.message_router import InboundMessage, RouteResult
from tests.fakes import ADMIN_NUMBER, PATIENT_KEY, make_row

STRANGER = "5511900001111"


def _message(body: str, sender: str = f"{PATIENT_KEY}@c.us", **kwargs) -> InboundMessage:
    return InboundMessage(sender=sender, body=body, **kwargs)


class TestIgnored:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "message",
        [
            _message("oi", is_group=True),
            _message("oi", is_broadcast=True),
            _message("   "),
            _message(""),
        ],
    )
    async def test_ignored_messages_touch_nothing(self, ctx, registry, messenger, message) -> None:
        assert await ctx.router.route(message) is RouteResult.IGNORED

        assert registry.fetch_count == 0
        assert messenger.sent == []


class TestRouting:
    @pytest.mark.asyncio
    async def test_empty_consent_enters_tcle_flow(self, ctx, registry, messenger) -> None:
        registry.rows = [make_row(consent="")]

        assert await ctx.router.route(_message("ACEITO")) is RouteResult.CONSENT

        assert registry.updates == [(2, "K", "TCLE_ACEITO")]
        assert PATIENT_KEY not in ctx.consent.sessions

    @pytest.mark.asyncio
    async def test_open_session_captures_reply(self, ctx, registry) -> None:
        registry.rows = [make_row(consent="")]
        await ctx.cache.refresh()
        ctx.consent.open_session(PATIENT_KEY, "Maria Silva")

        assert await ctx.router.route(_message("talvez")) is RouteResult.CONSENT
        assert ctx.consent.sessions[PATIENT_KEY].attempts == 1

    @pytest.mark.asyncio
    async def test_decided_consent_is_not_overwritten(self, ctx, registry, messenger) -> None:
        """An ACEITO from someone who already rejected goes to the menu."""
        registry.rows = [make_row(consent="TCLE_REJEITADO")]

        assert await ctx.router.route(_message("ACEITO")) is RouteResult.MENU

        assert registry.updates == []
        assert registry.cell(2, "consent") == "TCLE_REJEITADO"

    @pytest.mark.asyncio
    async def test_registered_patient_goes_to_menu(self, ctx, registry) -> None:
        assert await ctx.router.route(_message("1")) is RouteResult.MENU
        assert registry.cell(2, "confirmation") == "Confirmado (Bot)"

    @pytest.mark.asyncio
    async def test_unregistered_sender_is_rate_limited(self, ctx, messenger) -> None:
        first = await ctx.router.route(_message("olá", sender=STRANGER))
        second = await ctx.router.route(_message("olá de novo", sender=STRANGER))

        assert first is second is RouteResult.UNREGISTERED
        assert len(messenger.to(STRANGER)) == 1


class TestFailures:
    @pytest.mark.asyncio
    async def test_registry_down_replies_generic_error(self, ctx, registry, messenger) -> None:
        registry.fail_reads = True

        assert await ctx.router.route(_message("1")) is RouteResult.FAILED

        assert messenger.to(PATIENT_KEY) == [ctx.templates.generic_error()]
        assert ctx.recovery.last_severe_error["context"] == "store-error"
        assert messenger.to(ADMIN_NUMBER) == []

    @pytest.mark.asyncio
    async def test_registry_outage_does_not_alert_operator_per_message(self, ctx, registry, messenger) -> None:
        registry.fail_reads = True

        for body in ("1", "2", "3"):
            assert await ctx.router.route(_message(body)) is RouteResult.FAILED

        assert len(messenger.to(PATIENT_KEY)) == 3
        assert not any("ERRO GRAVE" in text for text in messenger.to(ADMIN_NUMBER))

    @pytest.mark.asyncio
    async def test_unexpected_error_is_escalated(self, ctx, messenger, monkeypatch) -> None:
        async def boom(sender, text, record):
            raise RuntimeError("menu exploded")

        monkeypatch.setattr(ctx.menu, "dispatch", boom)

        assert await ctx.router.route(_message("1")) is RouteResult.FAILED

        assert ctx.recovery.last_severe_error["context"] == "message-processing-error"
        assert any("ERRO GRAVE" in text for text in messenger.to(ADMIN_NUMBER))

    @pytest.mark.asyncio
    async def test_vanished_patient_is_not_escalated(self, ctx, registry, messenger, monkeypatch) -> None:
        """A row that disappears between lookup and write-back is a per-patient failure."""
        await ctx.cache.refresh()
        monkeypatch.setattr(ctx.cache, "handle_for", lambda phone: None)

        assert await ctx.router.route(_message("1")) is RouteResult.FAILED

        assert messenger.to(PATIENT_KEY) == [ctx.templates.generic_error()]
        assert messenger.to(ADMIN_NUMBER) == []
        assert registry.updates == []
