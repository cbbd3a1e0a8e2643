# ============================================================================
# Tests for MenuDispatcher
# ============================================================================
"""Unit tests for menu commands, feedback capture and the unregistered notice."""

import pytest

from app.domains.medical_appointments.application.services.menu_dispatcher import (
    CONFIRMED_MARKER,
    RESCHEDULE_MARKER,
    MenuCommand,
    format_feedback,
)
from tests.fakes import ADMIN_NUMBER, PATIENT_KEY, make_row

STRANGER = "5511900001111"


async def _record(ctx):
    await ctx.cache.refresh()
    return ctx.cache.find(PATIENT_KEY)


class TestParsing:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("1", MenuCommand.CONFIRM),
            (" 2 ", MenuCommand.RESCHEDULE),
            ("3", MenuCommand.PREPARATION),
            ("4", MenuCommand.ATTENDANT),
            ("Ajuda", MenuCommand.ATTENDANT),
            ("ATENDENTE", MenuCommand.ATTENDANT),
            ("oi", MenuCommand.UNKNOWN),
        ],
    )
    def test_parse(self, text, expected) -> None:
        assert MenuCommand.parse(text) is expected

    def test_format_feedback_with_comment(self) -> None:
        assert format_feedback("5 - muito bom atendimento") == (
            "Nota: 5/5 (Excelente ✨). Comentário: muito bom atendimento"
        )

    def test_format_feedback_score_only(self) -> None:
        assert format_feedback("2") == "Nota: 2/5 (Ruim 👎)"

    def test_free_text_feedback_is_kept(self) -> None:
        assert format_feedback("  Gostei muito  ") == "Gostei muito"


class TestCommands:
    """Tests for menu options 1-4."""

    @pytest.mark.asyncio
    async def test_confirm_writes_status_and_notifies_operator(self, ctx, registry, messenger) -> None:
        registry.rows = [make_row(status="Pendente")]
        record = await _record(ctx)

        assert await ctx.menu.dispatch(PATIENT_KEY, "1", record) is MenuCommand.CONFIRM

        assert registry.updates == [(2, "G", "Confirmado"), (2, "L", CONFIRMED_MARKER)]
        assert "Consulta Confirmada" in messenger.to(PATIENT_KEY)[0]
        assert any("Consulta Confirmada pelo Paciente" in text for text in messenger.to(ADMIN_NUMBER))

    @pytest.mark.asyncio
    async def test_reconfirm_does_not_notify_operator(self, ctx, registry, messenger) -> None:
        record = await _record(ctx)

        await ctx.menu.dispatch(PATIENT_KEY, "1", record)

        assert messenger.to(ADMIN_NUMBER) == []
        assert len(messenger.to(PATIENT_KEY)) == 1

    @pytest.mark.asyncio
    async def test_confirm_write_failure(self, ctx, registry, messenger) -> None:
        record = await _record(ctx)
        registry.fail_writes = True

        assert await ctx.menu.confirm(PATIENT_KEY, record) is False
        assert messenger.to(PATIENT_KEY) == [ctx.templates.action_failed()]

    @pytest.mark.asyncio
    async def test_reschedule(self, ctx, registry, messenger) -> None:
        record = await _record(ctx)

        await ctx.menu.dispatch(PATIENT_KEY, "2", record)

        assert registry.cell(2, "status") == "Remarcado"
        assert registry.cell(2, "confirmation") == RESCHEDULE_MARKER
        assert any("Remarcação Solicitada" in text for text in messenger.to(ADMIN_NUMBER))

    @pytest.mark.asyncio
    async def test_preparation_has_no_side_effects(self, ctx, registry, messenger) -> None:
        record = await _record(ctx)

        await ctx.menu.dispatch(PATIENT_KEY, "3", record)

        assert registry.updates == []
        assert "Preparo" in messenger.to(PATIENT_KEY)[0]

    @pytest.mark.asyncio
    async def test_attendant(self, ctx, messenger) -> None:
        record = await _record(ctx)

        await ctx.menu.dispatch(PATIENT_KEY, "atendente", record)

        assert any("Paciente Solicitou Atendente" in text for text in messenger.to(ADMIN_NUMBER))


class TestStatusGating:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["Cancelado", "Remarcado", "Concluído"])
    async def test_final_status_only_shows_menu(self, ctx, registry, messenger, status) -> None:
        registry.rows = [make_row(status=status)]
        record = await _record(ctx)

        assert await ctx.menu.dispatch(PATIENT_KEY, "1", record) is None

        assert registry.updates == []
        assert "Escolha uma opção" not in messenger.to(PATIENT_KEY)[0]

    @pytest.mark.asyncio
    async def test_final_status_still_reaches_attendant(self, ctx, registry, messenger) -> None:
        registry.rows = [make_row(status="Cancelado")]
        record = await _record(ctx)

        assert await ctx.menu.dispatch(PATIENT_KEY, "4", record) is MenuCommand.ATTENDANT

    @pytest.mark.asyncio
    async def test_rejected_consent_gets_consent_reminder(self, ctx, registry, messenger) -> None:
        registry.rows = [make_row(consent="TCLE_REJEITADO")]
        record = await _record(ctx)

        assert await ctx.menu.dispatch(PATIENT_KEY, "1", record) is None

        assert registry.updates == []
        assert "Termo de Consentimento" in messenger.to(PATIENT_KEY)[0]

    @pytest.mark.asyncio
    async def test_rejected_consent_can_ask_for_attendant(self, ctx, registry, messenger) -> None:
        registry.rows = [make_row(consent="TCLE_REJEITADO")]
        record = await _record(ctx)

        assert await ctx.menu.dispatch(PATIENT_KEY, "ajuda", record) is MenuCommand.ATTENDANT


class TestInitialMenu:
    @pytest.mark.asyncio
    async def test_menu_lists_options_for_active_appointment(self, ctx, messenger) -> None:
        record = await _record(ctx)

        assert await ctx.menu.show_initial_menu(PATIENT_KEY, record) is True

        text = messenger.to(PATIENT_KEY)[0]
        assert "17/03/2025" in text
        assert "Escolha uma opção" in text

    @pytest.mark.asyncio
    async def test_menu_is_rate_limited(self, ctx, messenger, clock) -> None:
        record = await _record(ctx)

        await ctx.menu.show_initial_menu(PATIENT_KEY, record)
        assert await ctx.menu.show_initial_menu(PATIENT_KEY, record) is False

        clock.advance(seconds=2)

        assert await ctx.menu.show_initial_menu(PATIENT_KEY, record) is True
        assert len(messenger.to(PATIENT_KEY)) == 2

    @pytest.mark.asyncio
    async def test_menu_window_comes_from_settings(self, ctx, messenger, clock) -> None:
        ctx.settings.MENU_SPAM_WINDOW_SECONDS = 60
        record = await _record(ctx)

        await ctx.menu.show_initial_menu(PATIENT_KEY, record)
        clock.advance(seconds=30)
        assert await ctx.menu.show_initial_menu(PATIENT_KEY, record) is False

        clock.advance(seconds=31)

        assert await ctx.menu.show_initial_menu(PATIENT_KEY, record) is True
        assert len(messenger.to(PATIENT_KEY)) == 2


class TestFeedbackCapture:
    @pytest.mark.asyncio
    async def test_next_message_is_captured_as_feedback(self, ctx, registry, messenger, store) -> None:
        record = await _record(ctx)
        ctx.state.awaiting_feedback.add(PATIENT_KEY)

        assert await ctx.menu.dispatch(PATIENT_KEY, "4 - tudo certo", record) is None

        assert registry.cell(2, "feedback") == "Nota: 4/5 (Muito Bom 👍). Comentário: tudo certo"
        assert registry.cell(2, "status") == "Concluído"
        assert registry.cell(2, "confirmation") == "SIM"
        assert PATIENT_KEY not in ctx.state.awaiting_feedback
        assert store.load().awaiting_feedback == set()
        assert any("Feedback Recebido" in text for text in messenger.to(ADMIN_NUMBER))

    @pytest.mark.asyncio
    async def test_failed_write_keeps_patient_awaiting(self, ctx, registry, messenger) -> None:
        record = await _record(ctx)
        ctx.state.awaiting_feedback.add(PATIENT_KEY)
        registry.fail_writes = True

        assert await ctx.menu.capture_feedback(PATIENT_KEY, record, "5") is False

        assert PATIENT_KEY in ctx.state.awaiting_feedback
        assert messenger.to(PATIENT_KEY) == [ctx.templates.feedback_failed()]


class TestUnregisteredNotice:
    @pytest.mark.asyncio
    async def test_notice_is_sent_once_per_window(self, ctx, messenger, clock, store) -> None:
        assert await ctx.menu.send_unregistered_notice(STRANGER) is True
        assert await ctx.menu.send_unregistered_notice(f"{STRANGER}@c.us") is False

        clock.advance(minutes=31)

        assert await ctx.menu.send_unregistered_notice(STRANGER) is True
        assert len(messenger.to(STRANGER)) == 2
        assert store.load().ledger.last_sent(STRANGER, "unregistered-info") == ctx.now_ms()

    @pytest.mark.asyncio
    async def test_unresolvable_sender(self, ctx, messenger) -> None:
        assert await ctx.menu.send_unregistered_notice("@c.us") is False
        assert messenger.sent == []
