"""Stage 2: Tracking-parameter removal and own attribution tags."""

from __future__ import annotations

from affiliate_redirect.utils.url_utils import (
    query_segment,
    query_segments,
    segment_name,
    with_query_segments,
)

ATTRIBUTION_SOURCE_PARAM = "utm_source"
ATTRIBUTION_MEDIUM_PARAM = "utm_medium"

# Click ids and analytics noise added by ad networks and mail tools.
# Every ``utm_*`` parameter is stripped in addition to these.
_STRIP_PARAMS: frozenset[str] = frozenset(
    {
        "fbclid",
        "gclid",
        "dclid",
        "gbraid",
        "wbraid",
        "msclkid",
        "yclid",
        "ttclid",
        "twclid",
        "igshid",
        "li_fat_id",
        "mc_cid",
        "mc_eid",
        "_ga",
        "_gl",
        "srsltid",
    }
)


def is_tracking_param(name: str) -> bool:
    """Return True if query parameter *name* is on the denylist (case-insensitive)."""
    lowered = name.lower()
    return lowered.startswith("utm_") or lowered in _STRIP_PARAMS


def sanitize_query(url: str, source: str, medium: str) -> str:
    """Strip foreign tracking parameters and add our attribution tags.

    Parameters are judged by their decoded name only; every surviving
    ``name=value`` segment is kept byte-for-byte, in its original order.
    ``source`` and ``medium`` are only set when no parameter of that name
    survives the denylist, so calling this twice yields the same URL as
    calling it once.

    Args:
        url:    Absolute http(s) URL from Stage 1.
        source: Value for ``utm_source``.
        medium: Value for ``utm_medium``.

    Returns:
        New URL string; *url* itself is never modified.
    """
    segments = [s for s in query_segments(url) if not is_tracking_param(segment_name(s))]

    present = {segment_name(s).lower() for s in segments}
    if ATTRIBUTION_SOURCE_PARAM not in present:
        segments.append(query_segment(ATTRIBUTION_SOURCE_PARAM, source))
    if ATTRIBUTION_MEDIUM_PARAM not in present:
        segments.append(query_segment(ATTRIBUTION_MEDIUM_PARAM, medium))

    return with_query_segments(url, segments)
