"""Stage 3: Brand shortlink expansion (bounded redirect walk)."""

from __future__ import annotations

import asyncio

import httpx
import structlog

from affiliate_redirect.models import ExpansionResult, ShortlinkRule
from affiliate_redirect.services.redirect_probe import RedirectProbe
from affiliate_redirect.utils.url_utils import extract_domain, host_matches, parse_absolute

logger = structlog.get_logger(__name__)

MAX_HOPS = 5


def find_rule(host: str, rules: tuple[ShortlinkRule, ...]) -> ShortlinkRule | None:
    """Return the shortlink rule covering *host*, if any."""
    for rule in rules:
        if host_matches(host, rule.host):
            return rule
    return None


async def expand_shortlink(
    url: str,
    rules: tuple[ShortlinkRule, ...],
    hop_timeout: float,
    budget: float,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ExpansionResult:
    """Resolve a brand short link to its canonical product URL.

    Hosts without a shortlink rule are returned untouched without any network
    traffic. Otherwise up to :data:`MAX_HOPS` manual fetches are made, reading
    only the ``Location`` header, stopping as soon as the brand's root domain
    is reached. A hop without ``Location``, a network error or running out of
    *budget* ends the walk early; the last URL that did resolve is returned
    and the result is flagged ``degraded``.

    Args:
        url:         Sanitized target URL.
        rules:       Shortlink rules from the registry.
        hop_timeout: Timeout for a single hop in seconds.
        budget:      Total time allowed for the whole walk in seconds.
        transport:   Optional httpx transport override.

    Returns:
        :class:`ExpansionResult`; never raises for network problems.
    """
    rule = find_rule(extract_domain(url), rules)
    if rule is None:
        return ExpansionResult(url=url)

    loop = asyncio.get_running_loop()
    deadline = loop.time() + budget
    current = url
    hops = 0
    error: str | None = None

    async with RedirectProbe(timeout=hop_timeout, transport=transport) as probe:
        while hops < MAX_HOPS:
            remaining = deadline - loop.time()
            if remaining <= 0:
                error = "budget_exhausted"
                break

            hops += 1
            try:
                location = await probe.next_location(current, timeout=min(hop_timeout, remaining))
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                error = f"{type(exc).__name__}: {exc}"
                break

            if location is None:
                error = "no_location"
                break

            parsed = parse_absolute(location)
            if parsed is None or parsed[0] not in ("http", "https"):
                error = "bad_location"
                break

            current = location
            if host_matches(parsed[1], rule.root):
                break

    reached_root = host_matches(extract_domain(current), rule.root)
    result = ExpansionResult(
        url=current,
        hops=hops,
        expanded=current != url,
        degraded=not reached_root,
        error=error,
    )

    if result.degraded:
        logger.warning(
            "expand.degraded",
            short_host=rule.host,
            hops=hops,
            error=error or "hop_limit",
            resolved=extract_domain(current),
        )
    else:
        logger.info("expand.resolved", short_host=rule.host, hops=hops, host=extract_domain(current))
    return result
