"""Async client for the optional decision-log webhook."""

from __future__ import annotations

from types import TracebackType
from typing import Any

import httpx


class WebhookClient:
    """POSTs JSON payloads to a single configured endpoint.

    Designed to be used as an async context manager::

        async with WebhookClient(url, timeout=2.0) as client:
            await client.post(payload)

    Args:
        url:       Webhook endpoint.
        timeout:   Request timeout in seconds.
        transport: Optional transport override (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        url: str,
        timeout: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "WebhookClient":
        self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._client:
            await self._client.aclose()

    @property
    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("WebhookClient must be used as an async context manager.")
        return self._client

    async def post(self, payload: dict[str, Any]) -> None:
        """Send *payload* once.

        Raises:
            httpx.HTTPError: On network errors or a non-2xx response.
        """
        resp = await self._http.post(self._url, json=payload)
        resp.raise_for_status()
