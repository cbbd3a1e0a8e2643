"""
Shared pytest fixtures for all tests.

This module provides in-memory fakes for the external ports (registry,
messenger), a frozen clock, a temp-dir state store and a fully wired
orchestration context.
"""

import os
from pathlib import Path

import pytest

from app.config.settings import Settings
from app.core.shared import RecentLogBuffer
from app.domains.medical_appointments.application.services.context import OrchestrationContext, build_context
from app.domains.medical_appointments.infrastructure.persistence import JsonStateStore
from tests.fakes import ADMIN_NUMBER, FakeRegistry, FrozenClock, RecordingMessenger, make_row

# Ensure test environment
os.environ["ENVIRONMENT"] = "test"


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    return tmp_path / "estado_notificacoes.json"


@pytest.fixture
def settings(state_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        ADMIN_NUMBER=ADMIN_NUMBER,
        TCLE_URL="https://example.org/tcle",
        FORM_URL="https://example.org/cadastro",
        STATE_FILE=str(state_path),
        WHATSAPP_VERIFY_TOKEN="verify-secret",
    )


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry([make_row()])


@pytest.fixture
def messenger() -> RecordingMessenger:
    return RecordingMessenger()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def store(state_path: Path) -> JsonStateStore:
    return JsonStateStore(state_path)


@pytest.fixture
def ctx(
    settings: Settings,
    registry: FakeRegistry,
    messenger: RecordingMessenger,
    store: JsonStateStore,
    clock: FrozenClock,
) -> OrchestrationContext:
    return build_context(settings, registry, messenger, store, clock=clock, log_buffer=RecentLogBuffer())
