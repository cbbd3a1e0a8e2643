# ============================================================================
# Tests for GoogleSheetsRegistry
# ============================================================================
"""
Tests for GoogleSheetsRegistry over httpx.MockTransport.

Verifies:
- values.get / values.update request shapes
- Retry with backoff on 5xx and 429
- Immediate failure on other 4xx
- Probe never raises
"""

import json
from unittest.mock import AsyncMock

import httpx
import pytest
from tenacity import wait_none

from app.core.domain import RegistryError, RegistryUnavailableError
from app.domains.medical_appointments.infrastructure.external import GoogleSheetsRegistry


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    """Retries happen immediately in tests."""
    monkeypatch.setattr(GoogleSheetsRegistry._request.retry, "wait", wait_none())


def _registry(handler) -> GoogleSheetsRegistry:
    return GoogleSheetsRegistry(
        spreadsheet_id="sheet-123",
        sheet_name="Cadastros",
        sheet_range="Cadastros!A2:L",
        token_provider=AsyncMock(return_value="test_token_123"),
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestReadWrite:
    @pytest.mark.asyncio
    async def test_fetch_rows_stringifies_cells(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"values": [["Maria", 11987654321, "", "17/03/2025"], []]})

        registry = _registry(handler)

        rows = await registry.fetch_rows()

        assert rows == [["Maria", "11987654321", "", "17/03/2025"], []]
        request = seen[0]
        assert request.method == "GET"
        assert "/spreadsheets/sheet-123/values/" in str(request.url)
        assert request.url.params["valueRenderOption"] == "FORMATTED_VALUE"
        assert request.headers["Authorization"] == "Bearer test_token_123"
        await registry.close()

    @pytest.mark.asyncio
    async def test_empty_range(self):
        registry = _registry(lambda request: httpx.Response(200, json={"range": "Cadastros!A2:L"}))

        assert await registry.fetch_rows() == []

    @pytest.mark.asyncio
    async def test_update_cell_request_shape(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"updatedCells": 1})

        registry = _registry(handler)

        await registry.update_cell(7, "K", "TCLE_ACEITO")

        request = seen[0]
        assert request.method == "PUT"
        assert request.url.params["valueInputOption"] == "USER_ENTERED"
        assert json.loads(request.content) == {"range": "Cadastros!K7", "values": [["TCLE_ACEITO"]]}


class TestRetry:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [429, 500, 503])
    async def test_transient_errors_are_retried(self, status_code):
        calls = {"count": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["count"] += 1
            if calls["count"] < 3:
                return httpx.Response(status_code, text="busy")
            return httpx.Response(200, json={"values": [["Ana"]]})

        registry = _registry(handler)

        assert await registry.fetch_rows() == [["Ana"]]
        assert calls["count"] == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_three_attempts(self):
        calls = {"count": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["count"] += 1
            return httpx.Response(503, text="unavailable")

        registry = _registry(handler)

        with pytest.raises(RegistryUnavailableError) as exc_info:
            await registry.fetch_rows()

        assert exc_info.value.status_code == 503
        assert calls["count"] == 3

    @pytest.mark.asyncio
    async def test_network_error_is_retryable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        registry = _registry(handler)

        with pytest.raises(RegistryUnavailableError):
            await registry.fetch_rows()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [400, 403, 404])
    async def test_client_errors_fail_immediately(self, status_code):
        calls = {"count": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["count"] += 1
            return httpx.Response(status_code, json={"error": {"message": "nope"}})

        registry = _registry(handler)

        with pytest.raises(RegistryError) as exc_info:
            await registry.update_cell(2, "G", "Confirmado")

        assert not isinstance(exc_info.value, RegistryUnavailableError)
        assert exc_info.value.status_code == status_code
        assert calls["count"] == 1


class TestProbe:
    @pytest.mark.asyncio
    async def test_probe_ok(self):
        registry = _registry(lambda request: httpx.Response(200, json={"spreadsheetId": "sheet-123"}))

        assert await registry.probe() is True

    @pytest.mark.asyncio
    async def test_probe_failure_returns_false(self):
        registry = _registry(lambda request: httpx.Response(403, text="forbidden"))

        assert await registry.probe() is False

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        registry = GoogleSheetsRegistry("sheet-123", "Cadastros", "Cadastros!A2:L", credentials_file=None)

        with pytest.raises(RegistryError):
            await registry.fetch_rows()
        await registry.close()
