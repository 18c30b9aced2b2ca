"""Tests for target normalisation, query sanitisation and URL utilities."""

from __future__ import annotations

import pytest

from affiliate_redirect.models import Normalized, RejectReason, TargetRejected
from affiliate_redirect.pipeline.stage1_normalize import normalize_target
from affiliate_redirect.pipeline.stage2_sanitize import is_tracking_param, sanitize_query
from affiliate_redirect.utils.url_utils import (
    extract_domain,
    host_matches,
    parse_absolute,
    set_query_param,
)


def _sanitize(url: str) -> str:
    return sanitize_query(url, "2list", "app")


# ---------------------------------------------------------------------------
# Stage 1: Normalize
# ---------------------------------------------------------------------------


class TestNormalizeTarget:
    """Tests for raw target parsing."""

    def test_absolute_https_url(self) -> None:
        result = normalize_target("https://www.zalando.de/foo?utm_source=x")
        assert isinstance(result, Normalized)
        assert result.url == "https://www.zalando.de/foo?utm_source=x"
        assert result.host == "www.zalando.de"

    def test_bare_domain_gets_https_prefix(self) -> None:
        """A link without scheme is retried as https."""
        result = normalize_target("www.zalando.de/foo")
        assert isinstance(result, Normalized)
        assert result.url == "https://www.zalando.de/foo"

    def test_bare_domain_with_embedded_url_in_query(self) -> None:
        result = normalize_target("www.zalando.de/foo?ref=https://2list.app")
        assert isinstance(result, Normalized)
        assert result.url == "https://www.zalando.de/foo?ref=https://2list.app"
        assert result.host == "www.zalando.de"

    def test_bare_domain_with_embedded_http_url_in_path(self) -> None:
        result = normalize_target("shop.test/go/http://other.test/x")
        assert isinstance(result, Normalized)
        assert result.host == "shop.test"

    def test_surrounding_whitespace_ignored(self) -> None:
        result = normalize_target("  https://ikea.com/p/1  ")
        assert isinstance(result, Normalized)
        assert result.url == "https://ikea.com/p/1"

    def test_scheme_and_host_lowercased(self) -> None:
        result = normalize_target("HTTPS://WWW.Zalando.DE/Foo")
        assert isinstance(result, Normalized)
        assert result.url == "https://www.zalando.de/Foo"
        assert result.host == "www.zalando.de"

    def test_empty_path_becomes_slash(self) -> None:
        result = normalize_target("http://ikea.com")
        assert isinstance(result, Normalized)
        assert result.url == "http://ikea.com/"

    def test_port_kept(self) -> None:
        result = normalize_target("http://localhost:8080/x")
        assert isinstance(result, Normalized)
        assert result.url == "http://localhost:8080/x"
        assert result.host == "localhost"

    def test_non_ascii_path_percent_encoded(self) -> None:
        result = normalize_target("https://www.zalando.de/schuhe-größe")
        assert isinstance(result, Normalized)
        assert result.url.isascii()
        assert "%C3%B6" in result.url

    def test_idn_host_converted_to_punycode(self) -> None:
        result = normalize_target("https://münchen.de/")
        assert isinstance(result, Normalized)
        assert result.host.startswith("xn--")

    @pytest.mark.parametrize(
        "raw",
        ["not a url at all", "https://exa mple.com/", "http://example.com:99999/", "http://"],
    )
    def test_unparseable_is_invalid_url(self, raw: str) -> None:
        result = normalize_target(raw)
        assert isinstance(result, TargetRejected)
        assert result.reason is RejectReason.INVALID_URL
        assert result.status_code == 400

    @pytest.mark.parametrize(
        "raw",
        ["ftp://files.example.com/a", "javascript:alert(1)", "mailto:someone@example.com"],
    )
    def test_other_schemes_are_bad_protocol(self, raw: str) -> None:
        result = normalize_target(raw)
        assert isinstance(result, TargetRejected)
        assert result.reason is RejectReason.BAD_PROTOCOL


# ---------------------------------------------------------------------------
# Stage 2: Sanitize
# ---------------------------------------------------------------------------


class TestSanitizeQuery:
    """Tests for tracking-parameter removal and attribution tags."""

    def test_foreign_utm_replaced_by_own(self) -> None:
        result = _sanitize("https://www.zalando.de/foo?utm_source=x")
        assert result == "https://www.zalando.de/foo?utm_source=2list&utm_medium=app"

    def test_click_ids_removed_case_insensitive(self) -> None:
        result = _sanitize("https://shop.test/p?UTM_Campaign=s&FBCLID=abc&gclid=1&Keep=1")
        assert result == "https://shop.test/p?Keep=1&utm_source=2list&utm_medium=app"

    def test_order_and_blank_values_preserved(self) -> None:
        result = _sanitize("https://shop.test/p?b=2&a=&c=3")
        assert result == "https://shop.test/p?b=2&a=&c=3&utm_source=2list&utm_medium=app"

    def test_fragment_preserved(self) -> None:
        result = _sanitize("https://shop.test/p?x=1#reviews")
        assert result.endswith("#reviews")
        assert "x=1&utm_source=2list&utm_medium=app" in result

    def test_tags_added_without_existing_query(self) -> None:
        assert _sanitize("https://ikea.com/") == "https://ikea.com/?utm_source=2list&utm_medium=app"

    def test_non_utf8_value_kept_verbatim(self) -> None:
        result = _sanitize("https://shop.test/s?q=m%FCller")
        assert result == "https://shop.test/s?q=m%FCller&utm_source=2list&utm_medium=app"

    def test_semicolon_query_kept_verbatim(self) -> None:
        result = _sanitize("https://shop.test/s?a=1;b=2")
        assert result == "https://shop.test/s?a=1;b=2&utm_source=2list&utm_medium=app"

    def test_encoded_tracking_name_stripped(self) -> None:
        result = _sanitize("https://shop.test/s?%67clid=1&q=a+b%20c")
        assert result == "https://shop.test/s?q=a+b%20c&utm_source=2list&utm_medium=app"

    def test_original_string_untouched(self) -> None:
        original = "https://shop.test/p?gclid=1"
        _sanitize(original)
        assert original == "https://shop.test/p?gclid=1"

    @pytest.mark.parametrize(
        "url",
        [
            "https://www.zalando.de/foo?utm_source=x",
            "https://shop.test/p?q=a+b&utm_medium=mail&ref=&fbclid=z",
            "https://shop.test/p?q=%C3%BC%20x#frag",
            "https://shop.test/",
            "https://shop.test/p?tag=mine&tag=theirs",
            "https://shop.test/s?q=m%FCller",
            "https://shop.test/s?a=1;b=2",
        ],
    )
    def test_idempotent(self, url: str) -> None:
        once = _sanitize(url)
        assert _sanitize(once) == once


class TestIsTrackingParam:
    """Tests for the denylist predicate."""

    def test_any_utm_prefix(self) -> None:
        assert is_tracking_param("utm_whatever") is True

    def test_known_click_id(self) -> None:
        assert is_tracking_param("MsClkId") is True

    def test_regular_param(self) -> None:
        assert is_tracking_param("color") is False


# ---------------------------------------------------------------------------
# URL utilities
# ---------------------------------------------------------------------------


class TestHostMatches:
    """Tests for dot-boundary suffix matching."""

    def test_exact(self) -> None:
        assert host_matches("example.com", "example.com") is True

    def test_subdomain(self) -> None:
        assert host_matches("sub.example.com", "example.com") is True

    def test_lookalike_not_matched(self) -> None:
        assert host_matches("notexample.com", "example.com") is False

    def test_case_insensitive(self) -> None:
        assert host_matches("WWW.Example.COM", "example.com") is True

    def test_empty_host(self) -> None:
        assert host_matches("", "example.com") is False


class TestParseAbsolute:
    """Tests for the absolute-URL parser."""

    def test_http(self) -> None:
        assert parse_absolute("http://Example.com/x") == ("http", "example.com")

    def test_relative_is_none(self) -> None:
        assert parse_absolute("/just/a/path") is None

    def test_non_web_scheme_has_no_host(self) -> None:
        assert parse_absolute("mailto:a@b.c") == ("mailto", "")


class TestSetQueryParam:
    """Tests for single-parameter replacement."""

    def test_appends_new(self) -> None:
        assert set_query_param("https://a.test/?x=1", "tag", "t") == "https://a.test/?x=1&tag=t"

    def test_overwrites_in_place_and_drops_duplicates(self) -> None:
        result = set_query_param("https://a.test/?tag=old&x=1&tag=older", "tag", "t")
        assert result == "https://a.test/?tag=t&x=1"

    def test_other_segments_untouched(self) -> None:
        result = set_query_param("https://a.test/?q=m%FCller&x=a;b", "tag", "t")
        assert result == "https://a.test/?q=m%FCller&x=a;b&tag=t"


class TestExtractDomain:
    """Tests for domain extraction."""

    def test_simple_domain(self) -> None:
        assert extract_domain("https://www.zalando.de/foo") == "www.zalando.de"

    def test_empty(self) -> None:
        assert extract_domain("") == ""
