"""ElevenLabs Conversational AI API client.

Implements :class:`IVoiceApiClient` over an injected or owned
``httpx.AsyncClient``.  Requests authenticate with the organization's own
key in the ``xi-api-key`` header.

Retry policy per request:

* 2xx        -- parsed JSON returned as a successful :class:`ApiResult`
* 4xx        -- returned immediately as a failed result, never retried
* 5xx / I/O  -- retried up to ``max_retries`` attempts with exponential
                backoff (``retry_delay * 2 ** attempt`` seconds)

No HTTP or network failure is raised to the caller.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from voxpipe.interfaces.voice_api_client import IVoiceApiClient
from voxpipe.models.conversation import ApiResult
from voxpipe.utils.errors import RemoteFetchError
from voxpipe.utils.logging import get_logger

_DEFAULT_BASE_URL = "https://api.elevenlabs.io"
_MAX_RETRIES = 3
_RETRY_DELAY = 1.0  # seconds, doubled per attempt
_TIMEOUT = 30.0


class ElevenLabsClient(IVoiceApiClient):
    """Client for the ElevenLabs conversation endpoints.

    Parameters
    ----------
    api_key:
        The organization's ElevenLabs key.
    http_client:
        Optional injected ``httpx.AsyncClient`` (tests pass one with a
        ``MockTransport``).  When omitted the client creates and owns one.
    base_url:
        API root, default ``https://api.elevenlabs.io``.
    max_retries:
        Total attempts for retryable failures.
    retry_delay:
        Base backoff in seconds.
    """

    def __init__(
        self,
        api_key: str,
        http_client: httpx.AsyncClient | None = None,
        base_url: str = _DEFAULT_BASE_URL,
        max_retries: int = _MAX_RETRIES,
        retry_delay: float = _RETRY_DELAY,
        timeout: float = _TIMEOUT,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._max_retries = max(1, max_retries)
        self._retry_delay = retry_delay
        self._timeout = timeout
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # IVoiceApiClient implementation
    # ------------------------------------------------------------------

    async def get_conversations(
        self,
        agent_id: str,
        page_size: int = 100,
        cursor: str | None = None,
    ) -> ApiResult:
        params: dict[str, Any] = {"agent_id": agent_id, "page_size": page_size}
        if cursor:
            params["cursor"] = cursor
        return await self._request("GET", "/v1/convai/conversations", params=params)

    async def get_conversation(self, conversation_id: str) -> ApiResult:
        return await self._request("GET", f"/v1/convai/conversations/{conversation_id}")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    def get_provider_name(self) -> str:
        return "elevenlabs"

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> ApiResult:
        """Send one request with the retry policy described in the module docstring."""
        url = f"{self._base_url}{endpoint}"
        headers = {"xi-api-key": self._api_key, "Content-Type": "application/json"}
        last_error: Exception | None = None

        for attempt in range(self._max_retries):
            try:
                response = await self._http.request(
                    method,
                    url,
                    params=params,
                    headers=headers,
                    timeout=self._timeout,
                )
                if response.is_success:
                    return ApiResult(
                        success=True,
                        data=self._parse_body(response),
                        status_code=response.status_code,
                    )
                if 400 <= response.status_code < 500:
                    error = self._client_error_message(response)
                    self._logger.warning(
                        "elevenlabs_client_error",
                        endpoint=endpoint,
                        status=response.status_code,
                        error=error,
                    )
                    return ApiResult(success=False, error=error, status_code=response.status_code)
                raise RemoteFetchError(
                    message=f"Server error: {response.status_code}",
                    provider_name=self.get_provider_name(),
                    status_code=response.status_code,
                )
            except (httpx.HTTPError, RemoteFetchError) as exc:
                last_error = exc
                if attempt < self._max_retries - 1:
                    delay = self._retry_delay * (2**attempt)
                    self._logger.warning(
                        "elevenlabs_retrying",
                        endpoint=endpoint,
                        attempt=attempt + 1,
                        max_retries=self._max_retries,
                        delay_s=delay,
                        error=str(exc),
                    )
                    await asyncio.sleep(delay)

        status_code = last_error.status_code if isinstance(last_error, RemoteFetchError) else None
        message = last_error.message if isinstance(last_error, RemoteFetchError) else str(last_error)
        self._logger.error(
            "elevenlabs_request_failed",
            endpoint=endpoint,
            attempts=self._max_retries,
            error=message,
        )
        return ApiResult(
            success=False,
            error=message or "Failed after maximum retries",
            status_code=status_code,
        )

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    @staticmethod
    def _client_error_message(response: httpx.Response) -> str:
        fallback = f"API Error: {response.status_code} {response.reason_phrase}".strip()
        try:
            body = response.json()
        except ValueError:
            return response.text or fallback
        if isinstance(body, dict):
            detail = body.get("detail")
            if body.get("message"):
                return str(body["message"])
            if isinstance(detail, dict) and detail.get("message"):
                return str(detail["message"])
        return fallback
