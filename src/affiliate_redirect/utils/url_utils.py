"""URL parsing and query helpers shared by the pipeline stages."""

from __future__ import annotations

import re
from urllib.parse import quote, unquote_plus, urlsplit, urlunsplit

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*$")
_HOST_LABEL_RE = re.compile(r"^(?!-)[a-z0-9_\-]{1,63}(?<!-)$")
_IPV6_RE = re.compile(r"^[0-9a-f:.]+$")


def extract_domain(url: str) -> str:
    """Return the bare hostname (no port) for *url*.

    Args:
        url: Any URL string.

    Returns:
        Lowercase hostname, e.g. ``"www.zalando.de"``.
    """
    try:
        return urlsplit(url).hostname or ""
    except ValueError:
        return ""


def is_valid_host(host: str) -> bool:
    """Return True if *host* is a syntactically valid DNS name or IP literal."""
    if not host.isascii():
        try:
            host = host.encode("idna").decode("ascii")
        except UnicodeError:
            return False
    if not host or len(host) > 253:
        return False
    if ":" in host:
        return bool(_IPV6_RE.match(host))
    labels = host.rstrip(".").split(".")
    return all(_HOST_LABEL_RE.match(label) for label in labels)


def parse_absolute(raw: str) -> tuple[str, str] | None:
    """Parse *raw* as an absolute URL.

    Returns ``(scheme, host)`` with both lower-cased, or ``None`` if *raw*
    is not absolute. Non-web schemes (``mailto:``, ``javascript:``) count as
    parseable and come back with an empty host; http(s) URLs additionally
    need a valid host and port.
    """
    try:
        parts = urlsplit(raw)
    except ValueError:
        return None

    scheme = parts.scheme.lower()
    if not scheme or not _SCHEME_RE.match(scheme):
        return None
    if scheme not in ("http", "https"):
        return scheme, ""

    try:
        host = parts.hostname or ""
        parts.port  # noqa: B018 - raises ValueError on a malformed port
    except ValueError:
        return None
    if not is_valid_host(host):
        return None
    return scheme, host


def host_matches(host: str, domain: str) -> bool:
    """Return True if *host* equals *domain* or is a subdomain of it.

    The comparison is case-insensitive and only matches on a dot boundary, so
    ``notexample.com`` does not match ``example.com``.
    """
    host = host.lower().rstrip(".")
    domain = domain.lower().strip(".")
    if not host or not domain:
        return False
    return host == domain or host.endswith(f".{domain}")


def query_segments(url: str) -> list[str]:
    """Return the raw ``name=value`` segments of *url*'s query, in order.

    Segments are not decoded, so values that are not valid UTF-8 or use
    ``;`` inside them survive untouched. Empty segments are dropped.
    """
    query = urlsplit(url).query
    return [segment for segment in query.split("&") if segment]


def segment_name(segment: str) -> str:
    """Return the decoded parameter name of a raw query *segment*."""
    return unquote_plus(segment.partition("=")[0])


def with_query_segments(url: str, segments: list[str]) -> str:
    """Return a copy of *url* whose query string is *segments* joined by ``&``."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "&".join(segments), parts.fragment))


def query_segment(name: str, value: str) -> str:
    """Encode one ``name=value`` segment."""
    return f"{encode_component(name)}={encode_component(value)}"


def set_query_param(url: str, name: str, value: str) -> str:
    """Return a copy of *url* with *name* set to *value*.

    An existing parameter keeps its position and any duplicates are dropped;
    a new one is appended at the end. Other segments are kept verbatim.
    """
    segments: list[str] = []
    replaced = False
    for segment in query_segments(url):
        if segment_name(segment) == name:
            if not replaced:
                segments.append(query_segment(name, value))
                replaced = True
            continue
        segments.append(segment)
    if not replaced:
        segments.append(query_segment(name, value))
    return with_query_segments(url, segments)


def encode_component(value: str) -> str:
    """Percent-encode *value* for embedding in a query value or path segment."""
    return quote(value, safe="")
