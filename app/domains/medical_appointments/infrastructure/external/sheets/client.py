# ============================================================================
# SCOPE: INFRASTRUCTURE LAYER (Medical Appointments)
# Description: Google Sheets patient registry with automatic retry.
# ============================================================================
"""
Google Sheets Registry.

Implements IPatientRegistry over the Sheets REST API v4:

- fetch_rows: values.get on the configured range
- update_cell: values.update on a single `Sheet!<col><row>` cell
- probe: spreadsheets.get (metadata only)

Retry Strategy:
- 5xx / 429 / network errors: exponential backoff + jitter (via tenacity)
- 401 / 403 / other 4xx: fail immediately

Credentials come from a service account file (google-auth); the access token
is refreshed in a worker thread since google-auth is synchronous.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from google.auth.transport.requests import Request
from google.oauth2 import service_account
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from app.config.settings import Settings
from app.core.domain import RegistryError, RegistryUnavailableError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

# HTTP status codes that warrant retry with exponential backoff
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class GoogleSheetsRegistry:
    """
    Patient registry backed by a Google Sheets spreadsheet.

    Uses a persistent AsyncClient (connection reuse). Tests inject their own
    client (e.g. with httpx.MockTransport) and a static token provider.
    """

    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        spreadsheet_id: str,
        sheet_name: str,
        sheet_range: str,
        api_base: str = "https://sheets.googleapis.com/v4",
        credentials_file: str | None = None,
        token_provider: Callable[[], Awaitable[str]] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name
        self.sheet_range = sheet_range
        self.api_base = api_base.rstrip("/")
        self._credentials_file = credentials_file
        self._credentials: service_account.Credentials | None = None
        self._get_token = token_provider or self._service_account_token
        self._timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "GoogleSheetsRegistry":
        return cls(
            spreadsheet_id=settings.SPREADSHEET_ID,
            sheet_name=settings.SHEET_NAME,
            sheet_range=settings.SHEET_RANGE,
            api_base=settings.SHEETS_API_BASE,
            credentials_file=settings.GOOGLE_CREDENTIALS_FILE,
            timeout=settings.SHEETS_TIMEOUT,
        )

    @property
    def spreadsheet_url(self) -> str:
        return f"{self.api_base}/spreadsheets/{self.spreadsheet_id}"

    async def _service_account_token(self) -> str:
        if self._credentials is None:
            if not self._credentials_file:
                raise RegistryError("No Google credentials configured")
            try:
                self._credentials = service_account.Credentials.from_service_account_file(
                    self._credentials_file, scopes=SCOPES
                )
            except (OSError, ValueError) as e:
                raise RegistryError(f"Invalid service account file {self._credentials_file}: {e}") from e

        if not self._credentials.valid:
            try:
                await asyncio.to_thread(self._credentials.refresh, Request())
            except Exception as e:
                raise RegistryUnavailableError(f"Failed to refresh Google access token: {e}") from e
        return self._credentials.token

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._client

    async def close(self) -> None:
        """Close HTTP client and release resources."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    @retry(
        retry=retry_if_exception_type(RegistryUnavailableError),
        stop=stop_after_attempt(3),
        wait=wait_exponential_jitter(initial=1.0, max=10.0, jitter=2),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Execute one Sheets API call.

        Raises:
            RegistryUnavailableError: On 5xx/429/transport errors (triggers retry)
            RegistryError: On any other non-2xx response
        """
        client = await self._ensure_client()
        token = await self._get_token()
        try:
            response = await client.request(
                method,
                url,
                params=params,
                json=payload,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.TransportError as e:
            raise RegistryUnavailableError(f"Sheets API unreachable: {e}") from e

        if response.status_code in RETRYABLE_STATUS_CODES:
            preview = response.text[:200] if response.text else "No body"
            raise RegistryUnavailableError(
                f"Sheets API error {response.status_code}: {preview}", status_code=response.status_code
            )
        if response.status_code >= 400:
            preview = response.text[:200] if response.text else "No body"
            if response.status_code in (401, 403):
                # token may have been revoked, force a refresh next time
                self._credentials = None
            raise RegistryError(f"Sheets API error {response.status_code}: {preview}", status_code=response.status_code)

        return response.json() if response.text.strip() else {}

    async def fetch_rows(self) -> list[list[str]]:
        data = await self._request(
            "GET",
            f"{self.spreadsheet_url}/values/{self.sheet_range}",
            params={"valueRenderOption": "FORMATTED_VALUE"},
        )
        rows = data.get("values", [])
        logger.debug(f"Fetched {len(rows)} rows from {self.sheet_range}")
        return [[str(cell) for cell in row] for row in rows]

    async def update_cell(self, row_number: int, column: str, value: str) -> None:
        cell = f"{self.sheet_name}!{column}{row_number}"
        await self._request(
            "PUT",
            f"{self.spreadsheet_url}/values/{cell}",
            params={"valueInputOption": "USER_ENTERED"},
            payload={"range": cell, "values": [[value]]},
        )
        logger.debug(f"Updated {cell}")

    async def probe(self) -> bool:
        try:
            await self._request("GET", self.spreadsheet_url, params={"fields": "spreadsheetId"})
        except RegistryError as e:
            logger.warning(f"Sheets probe failed: {e.message}")
            return False
        return True
