"""Stage 1: Target normalisation and scheme validation."""

from __future__ import annotations

import re
from urllib.parse import quote, urlsplit, urlunsplit

import structlog

from affiliate_redirect.models import Normalized, RejectReason, TargetRejected
from affiliate_redirect.utils.url_utils import parse_absolute

logger = structlog.get_logger(__name__)

_ALLOWED_SCHEMES = frozenset({"http", "https"})
# Everything a browser leaves alone in a path or query; "%" keeps existing escapes.
_SAFE_CHARS = "/?:@!$&'()*+,;=-._~%[]"
_SCHEME_PREFIX_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")


def _to_ascii_host(host: str) -> str | None:
    if host.isascii():
        return host
    try:
        return host.encode("idna").decode("ascii")
    except UnicodeError:
        return None


def _canonicalise(url: str) -> str | None:
    """Re-serialise an http(s) URL so it is safe to put in a Location header."""
    parts = urlsplit(url)
    host = _to_ascii_host(parts.hostname or "")
    if host is None:
        return None

    netloc = f"[{host}]" if ":" in host else host
    if parts.port is not None:
        netloc = f"{netloc}:{parts.port}"
    if parts.username is not None:
        userinfo = quote(parts.username, safe="%")
        if parts.password is not None:
            userinfo = f"{userinfo}:{quote(parts.password, safe='%')}"
        netloc = f"{userinfo}@{netloc}"

    return urlunsplit(
        (
            parts.scheme.lower(),
            netloc,
            quote(parts.path, safe=_SAFE_CHARS) or "/",
            quote(parts.query, safe=_SAFE_CHARS),
            quote(parts.fragment, safe=_SAFE_CHARS),
        )
    )


def normalize_target(raw: str) -> Normalized | TargetRejected:
    """Turn a raw target string into a well-formed absolute http(s) URL.

    The string is first parsed as-is; if that does not yield an absolute URL
    and does not start with a ``scheme://`` of its own, it is retried with an
    ``https://`` prefix, so bare ``shop.example/item`` links work even when
    their query carries an embedded URL.

    Args:
        raw: Target string exactly as received from the client.

    Returns:
        :class:`Normalized` on success, otherwise :class:`TargetRejected`
        with reason ``invalid_url`` or ``bad_protocol``.
    """
    candidate = raw.strip()
    parsed = parse_absolute(candidate) if candidate else None
    if parsed is None and candidate and not _SCHEME_PREFIX_RE.match(candidate):
        candidate = f"https://{candidate}"
        parsed = parse_absolute(candidate)

    if parsed is None:
        logger.info("normalize.invalid_url", raw=raw[:200])
        return TargetRejected(reason=RejectReason.INVALID_URL)

    scheme, _ = parsed
    if scheme not in _ALLOWED_SCHEMES:
        logger.info("normalize.bad_protocol", scheme=scheme)
        return TargetRejected(reason=RejectReason.BAD_PROTOCOL)

    url = _canonicalise(candidate)
    if url is None:
        logger.info("normalize.invalid_host", raw=raw[:200])
        return TargetRejected(reason=RejectReason.INVALID_URL)

    host = urlsplit(url).hostname or ""
    return Normalized(url=url, host=host)
