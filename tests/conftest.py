"""Shared pytest fixtures and configuration."""

from __future__ import annotations

from typing import Callable

import httpx
import pytest

from affiliate_redirect.config import settings
from affiliate_redirect.models import (
    AwinParams,
    CjParams,
    Credentials,
    PartnerEntry,
    PartnerRegistry,
    RedirectRequest,
    ShortlinkRule,
)


# ---------------------------------------------------------------------------
# Pytest configuration
# ---------------------------------------------------------------------------

pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Pin the settings the pipeline reads, whatever the local environment says."""
    monkeypatch.setattr(settings, "attribution_source", "2list")
    monkeypatch.setattr(settings, "attribution_medium", "app")
    monkeypatch.setattr(settings, "enforce_allowlist", False)
    monkeypatch.setattr(settings, "log_enabled", True)
    monkeypatch.setattr(settings, "log_webhook_url", None)
    monkeypatch.setattr(settings, "registry_path", None)
    monkeypatch.setattr(settings, "awin_affiliate_id", "")
    monkeypatch.setattr(settings, "cj_pid", "")
    monkeypatch.setattr(settings, "amazon_tag", "")


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def registry() -> PartnerRegistry:
    """Small registry covering every network plus one brand shortlink."""
    return PartnerRegistry(
        entries=(
            PartnerEntry(domain="zalando.de", params=AwinParams(mid="12345")),
            PartnerEntry(domain="hm.com", params=AwinParams(mid="XXXX")),
            PartnerEntry(domain="ikea.com", params=CjParams()),
            PartnerEntry(domain="example.com", params=CjParams()),
            PartnerEntry(domain="shop.example.com", params=AwinParams(mid="777")),
        ),
        shortlinks=(ShortlinkRule(host="amzn.to", root="amazon.de"),),
    )


@pytest.fixture
def credentials() -> Credentials:
    """All three network credentials present."""
    return Credentials(
        awin_affiliate_id="999",
        cj_publisher_id="4242",
        amazon_partner_tag="tag123",
    )


@pytest.fixture
def no_credentials() -> Credentials:
    """Nothing configured: every network must pass through."""
    return Credentials()


@pytest.fixture
def make_request() -> Callable[..., RedirectRequest]:
    """Factory for :class:`RedirectRequest` objects."""

    def _make(target: str | None, **kwargs: object) -> RedirectRequest:
        return RedirectRequest(target=target, user_agent="pytest", **kwargs)

    return _make


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def redirect_chain() -> Callable[[dict[str, str]], tuple[httpx.MockTransport, list[str]]]:
    """Build a mock transport answering 301s from a ``url -> Location`` map.

    URLs missing from the map answer 200 without a ``Location`` header. The
    returned list records every URL that was requested.
    """

    def _make(hops: dict[str, str]) -> tuple[httpx.MockTransport, list[str]]:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            url = str(request.url)
            seen.append(url)
            if url in hops:
                return httpx.Response(301, headers={"Location": hops[url]})
            return httpx.Response(200, text="ok")

        return httpx.MockTransport(handler), seen

    return _make
