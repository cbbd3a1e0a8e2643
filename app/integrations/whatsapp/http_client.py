"""
WhatsApp HTTP Client.

Single Responsibility: Handle HTTP communication with the WhatsApp Cloud API.
"""

import logging
from typing import Any

import httpx

from app.core.domain import MessengerAuthError, MessengerError

logger = logging.getLogger(__name__)

AUTH_STATUS_CODES = frozenset({401, 403})


class WhatsAppHttpClient:
    """
    HTTP client for the WhatsApp Cloud API.

    Raises MessengerAuthError on 401/403 and MessengerError on any other
    failure, so callers can tell expired credentials from transient errors.
    """

    def __init__(
        self,
        base_url: str,
        version: str,
        phone_number_id: str,
        access_token: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize HTTP client.

        Args:
            base_url: WhatsApp API base URL
            version: API version
            phone_number_id: Phone number ID for sending messages
            access_token: Bearer token for authentication
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self._base_url = base_url.rstrip("/")
        self._version = version
        self._phone_number_id = phone_number_id
        self._access_token = access_token
        self._timeout = timeout
        self._transport = transport

    @property
    def phone_number_id(self) -> str:
        return self._phone_number_id

    @property
    def message_url(self) -> str:
        """Get URL for sending messages."""
        return f"{self._base_url}/{self._version}/{self._phone_number_id}/messages"

    def get_url(self, endpoint: str) -> str:
        """Build URL for an endpoint."""
        return f"{self._base_url}/{self._version}/{endpoint}"

    @property
    def headers(self) -> dict[str, str]:
        """Get standard headers for requests."""
        return {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def post(self, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Execute POST request to the messages endpoint.

        Returns:
            Parsed JSON response

        Raises:
            MessengerAuthError: On 401/403
            MessengerError: On timeout, connection failure or any other error status
        """
        url = self.message_url
        logger.debug(f"POST {url}")
        try:
            async with self._client() as client:
                response = await client.post(url, json=payload, headers=self.headers)
        except httpx.TimeoutException as e:
            raise MessengerError("Timeout connecting to WhatsApp API") from e
        except httpx.HTTPError as e:
            raise MessengerError(f"Connection error with WhatsApp API: {e}") from e

        if response.status_code == 200:
            return response.json()
        self._raise_for_error(response)
        return {}

    async def get(self, endpoint: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Execute GET request to the WhatsApp API."""
        url = self.get_url(endpoint)
        try:
            async with self._client() as client:
                response = await client.get(url, headers=self.headers, params=params)
        except httpx.HTTPError as e:
            raise MessengerError(f"GET {endpoint} failed: {e}") from e

        if response.status_code == 200:
            return response.json()
        self._raise_for_error(response)
        return {}

    def _raise_for_error(self, response: httpx.Response) -> None:
        error_detail = response.text
        logger.error(f"Error {response.status_code}: {error_detail}")

        try:
            error_message = response.json().get("error", {}).get("message", error_detail)
        except ValueError:
            error_message = error_detail

        message = f"HTTP {response.status_code}: {error_message}"
        if response.status_code in AUTH_STATUS_CODES:
            raise MessengerAuthError(message, status_code=response.status_code)
        raise MessengerError(message, status_code=response.status_code)
