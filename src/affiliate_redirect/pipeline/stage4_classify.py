"""Stage 4: Domain classification against the partner registry."""

from __future__ import annotations

import re

import structlog

from affiliate_redirect.models import AmazonParams, Classification, Matched, PartnerRegistry, Unmatched
from affiliate_redirect.utils.url_utils import host_matches

logger = structlog.get_logger(__name__)

# Amazon marketplaces: one vendor spread over many country roots.
AMAZON_MARKETPLACE_TLDS: tuple[str, ...] = (
    "com",
    "de",
    "co.uk",
    "fr",
    "it",
    "es",
    "nl",
    "se",
    "pl",
    "com.be",
    "com.tr",
    "ca",
    "com.mx",
    "com.br",
    "co.jp",
    "in",
    "com.au",
    "sg",
    "ae",
    "sa",
    "eg",
)

_AMAZON_GROUP_RE = re.compile(
    r"(?:^|\.)amazon\.(?:" + "|".join(re.escape(t) for t in AMAZON_MARKETPLACE_TLDS) + r")$"
)


def is_amazon_marketplace(host: str) -> bool:
    """Return True if *host* is an Amazon marketplace root or a subdomain of one."""
    return bool(_AMAZON_GROUP_RE.search(host.lower().rstrip(".")))


def classify(host: str, registry: PartnerRegistry) -> Classification:
    """Match *host* against the registry.

    Entries are tried longest domain first, so ``shop.example.com`` beats
    ``example.com`` when both are registered. Amazon marketplaces classify
    even without a row of their own.

    Args:
        host:     Lowercase hostname of the target.
        registry: Static partner registry.

    Returns:
        :class:`Matched` or :class:`Unmatched`.
    """
    for entry in registry.entries:
        if host_matches(host, entry.domain):
            logger.debug("classify.matched", host=host, domain=entry.domain, network=entry.network.value)
            return Matched(domain=entry.domain, params=entry.params)

    if is_amazon_marketplace(host):
        logger.debug("classify.vendor_group", host=host, network="amazon")
        return Matched(domain=host, params=AmazonParams())

    logger.debug("classify.unmatched", host=host)
    return Unmatched()
