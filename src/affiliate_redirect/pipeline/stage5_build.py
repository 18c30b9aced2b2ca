"""Stage 5: Network-specific affiliate URL construction."""

from __future__ import annotations

import re
from typing import assert_never

from affiliate_redirect.models import (
    AffiliateLink,
    AmazonParams,
    AwinParams,
    Classification,
    CjParams,
    Credentials,
    NetworkKind,
    Unmatched,
)
from affiliate_redirect.utils.url_utils import encode_component, set_query_param

AWIN_GATEWAY = "https://www.awin1.com/cread.php"
CJ_GATEWAY = "https://www.anrdoezrs.net/links"

_NUMERIC_ID_RE = re.compile(r"^[0-9]+$")


def _passthrough(url: str, network: NetworkKind | None = None) -> AffiliateLink:
    return AffiliateLink(url=url, network=network, is_affiliate=False)


def _build_awin(url: str, params: AwinParams, credentials: Credentials) -> AffiliateLink:
    affid = credentials.awin_affiliate_id
    mid = params.mid
    if not affid or not mid or not _NUMERIC_ID_RE.fullmatch(mid):
        return _passthrough(url, NetworkKind.AWIN)
    query = f"awinmid={mid}&awinaffid={encode_component(affid)}&ued={encode_component(url)}"
    return AffiliateLink(url=f"{AWIN_GATEWAY}?{query}", network=NetworkKind.AWIN, is_affiliate=True)


def _build_cj(url: str, credentials: Credentials) -> AffiliateLink:
    pid = credentials.cj_publisher_id
    if not pid:
        return _passthrough(url, NetworkKind.CJ)
    deep_link = f"{CJ_GATEWAY}/{encode_component(pid)}/type/dlg/{encode_component(url)}"
    return AffiliateLink(url=deep_link, network=NetworkKind.CJ, is_affiliate=True)


def _build_amazon(url: str, credentials: Credentials) -> AffiliateLink:
    tag = credentials.amazon_partner_tag
    if not tag:
        return _passthrough(url, NetworkKind.AMAZON)
    return AffiliateLink(
        url=set_query_param(url, "tag", tag), network=NetworkKind.AMAZON, is_affiliate=True
    )


def build_affiliate_url(
    url: str,
    classification: Classification,
    credentials: Credentials,
) -> AffiliateLink:
    """Turn a sanitized target into the final outbound link.

    * AWIN: ``cread.php`` gateway with merchant id, affiliate id and the
      encoded target in ``ued``.
    * CJ: deep-link gateway with publisher id and encoded target in the path.
    * Amazon: ``tag`` set directly on the target, no gateway.

    A missing credential (or a non-numeric AWIN merchant id) yields the
    sanitized target unchanged instead of a half-filled tracking link.

    Args:
        url:            Sanitized absolute target URL.
        classification: Stage 4 result.
        credentials:    Process-wide network credentials.

    Returns:
        :class:`AffiliateLink` with ``is_affiliate`` telling whether tracking
        was applied.
    """
    if isinstance(classification, Unmatched):
        return _passthrough(url)

    params = classification.params
    if isinstance(params, AwinParams):
        return _build_awin(url, params, credentials)
    if isinstance(params, CjParams):
        return _build_cj(url, credentials)
    if isinstance(params, AmazonParams):
        return _build_amazon(url, credentials)
    assert_never(params)

