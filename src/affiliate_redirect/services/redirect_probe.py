"""Async HTTP client that reads one redirect hop at a time."""

from __future__ import annotations

from types import TracebackType
from urllib.parse import urljoin

import httpx
import structlog

logger = structlog.get_logger(__name__)

_USER_AGENT = "2list-redirect/0.1 (+https://2list.app)"


class RedirectProbe:
    """Issues single non-following GETs and reports the ``Location`` header.

    Designed to be used as an async context manager::

        async with RedirectProbe(timeout=2.5) as probe:
            next_url = await probe.next_location(url)

    Args:
        timeout:   Default per-request timeout in seconds.
        transport: Optional transport override (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        timeout: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "RedirectProbe":
        self._client = httpx.AsyncClient(
            follow_redirects=False,
            timeout=self._timeout,
            transport=self._transport,
            headers={"User-Agent": _USER_AGENT},
        )
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
            raise RuntimeError("RedirectProbe must be used as an async context manager.")
        return self._client

    async def next_location(self, url: str, timeout: float | None = None) -> str | None:
        """Fetch *url* without following redirects.

        Only the response headers are read; the body is never downloaded.

        Args:
            url:     Absolute URL to request.
            timeout: Per-call timeout override in seconds.

        Returns:
            The absolute ``Location`` target, or ``None`` if the response
            carries no ``Location`` header.

        Raises:
            httpx.HTTPError: On network errors and timeouts.
        """
        request = self._http.build_request(
            "GET", url, timeout=timeout if timeout is not None else self._timeout
        )
        response = await self._http.send(request, stream=True)
        try:
            location = response.headers.get("location")
        finally:
            await response.aclose()

        logger.debug("probe.hop", url=url, status=response.status_code, location=location)
        if not location:
            return None
        return urljoin(url, location)
