"""Unit tests for URL normalization and the resolver's URL helpers.

Tests:
- normalize_url() canonicalization rules and totality
- Idempotence over a range of inputs
- URLNormalizer options
- url_variants, extract_hostname, extract_path
- path_similarity, url_fragments, escape_like
"""

import pytest

from competitive_analysis.utils.url import (
    MAX_URL_LENGTH,
    URLNormalizationOptions,
    URLNormalizer,
    escape_like,
    extract_hostname,
    extract_path,
    normalize_url,
    path_similarity,
    url_fragments,
    url_variants,
)

# =============================================================================
# normalize_url Tests
# =============================================================================


class TestNormalizeUrl:
    """Tests for the default normalization rules."""

    def test_explicit_http_preserved(self) -> None:
        """Explicit http is kept, default port dropped, host lowercased, path case kept."""
        assert normalize_url("HTTP://Example.com:80/Path/") == "http://example.com/Path"

    def test_missing_scheme_defaults_to_https(self) -> None:
        assert normalize_url("example.com/blog") == "https://example.com/blog"

    def test_other_schemes_become_https(self) -> None:
        assert normalize_url("ftp://files.example.com/a") == "https://files.example.com/a"

    def test_empty_path_becomes_root(self) -> None:
        assert normalize_url("https://example.com") == "https://example.com/"

    def test_root_path_kept(self) -> None:
        assert normalize_url("http://example.com/") == "http://example.com/"

    def test_trailing_slashes_removed(self) -> None:
        assert normalize_url("https://example.com/a/b//") == "https://example.com/a/b"

    def test_https_default_port_removed(self) -> None:
        assert normalize_url("https://example.com:443/x") == "https://example.com/x"

    def test_non_default_port_kept(self) -> None:
        assert normalize_url("https://example.com:8080/x") == "https://example.com:8080/x"

    def test_port_default_is_per_scheme(self) -> None:
        """Port 80 is not the default for https."""
        assert normalize_url("https://example.com:80/x") == "https://example.com:80/x"

    def test_tracking_params_removed_and_sorted(self) -> None:
        assert (
            normalize_url("example.com/a?utm_source=x&b=2&a=1&gclid=abc")
            == "https://example.com/a?a=1&b=2"
        )

    def test_only_tracking_params_drops_query(self) -> None:
        assert normalize_url("https://a.com/p?utm_medium=email&fbclid=1") == "https://a.com/p"

    def test_repeated_keys_keep_order(self) -> None:
        assert normalize_url("https://a.com/p?tag=b&x=1&tag=a") == "https://a.com/p?tag=b&tag=a&x=1"

    def test_blank_query_values_kept(self) -> None:
        assert normalize_url("https://a.com/p?b=&a=1") == "https://a.com/p?a=1&b="

    def test_fragment_preserved(self) -> None:
        assert normalize_url("https://a.com/p#section") == "https://a.com/p#section"

    def test_whitespace_trimmed(self) -> None:
        assert normalize_url("  https://a.com/x/  ") == "https://a.com/x"

    def test_credentials_preserved(self) -> None:
        assert normalize_url("https://user:pw@A.com/x") == "https://user:pw@a.com/x"

    def test_ipv6_host(self) -> None:
        assert normalize_url("http://[::1]:8000/x/") == "http://[::1]:8000/x"

    def test_truncated_to_max_length(self) -> None:
        result = normalize_url("https://a.com/" + "x" * 3000)
        assert len(result) == MAX_URL_LENGTH
        assert result.startswith("https://a.com/xxx")


class TestNormalizeUrlTotality:
    """normalize_url never raises."""

    def test_empty_string(self) -> None:
        assert normalize_url("") == ""

    def test_whitespace_only(self) -> None:
        assert normalize_url("   ") == ""

    def test_no_host_returns_trimmed_input(self) -> None:
        assert normalize_url(" https:// ") == "https://"

    def test_invalid_ipv6_returns_trimmed_input(self) -> None:
        assert normalize_url("http://[invalid/path ") == "http://[invalid/path"

    def test_invalid_port_returns_trimmed_input(self) -> None:
        assert normalize_url("https://a.com:99999/x") == "https://a.com:99999/x"


class TestNormalizeUrlIdempotence:
    """normalize_url(normalize_url(x)) == normalize_url(x)."""

    @pytest.mark.parametrize(
        "url",
        [
            "HTTP://Example.com:80/Path/",
            "example.com",
            "www.Example.com/Blog/?utm_campaign=x&z=1&a=2",
            "https://a.com/p?q=hello+world&x=%2F",
            "https://a.com/p#frag/",
            "http://[::1]/",
            "https://user@a.com:8443//",
            "https://",
            "not a url at all",
            "",
            "https://a.com/" + "y" * 2500,
            "https://a.com/" + "a" * 1985 + "/bbbb",
            "https://a.com/?a=" + "b" * 1982 + "&c=%2Fd",
        ],
    )
    def test_idempotent(self, url: str) -> None:
        once = normalize_url(url)
        assert normalize_url(once) == once

    def test_cut_after_slash_is_stripped(self) -> None:
        result = normalize_url("https://a.com/" + "a" * 1985 + "/bbbb")

        assert result == "https://a.com/" + "a" * 1985
        assert len(result) < MAX_URL_LENGTH

    def test_cut_before_query_pair(self) -> None:
        result = normalize_url("https://a.com/?a=" + "b" * 1982 + "&c=%2Fd")

        assert result == "https://a.com/?a=" + "b" * 1982


class TestURLNormalizerOptions:
    """Tests for URLNormalizer with custom options."""

    def test_strip_www(self) -> None:
        normalizer = URLNormalizer(URLNormalizationOptions(strip_www=True))
        assert normalizer.normalize("https://www.example.com/a") == "https://example.com/a"

    def test_keep_trailing_slash(self) -> None:
        normalizer = URLNormalizer(URLNormalizationOptions(remove_trailing_slash=False))
        assert normalizer.normalize("https://example.com/a/") == "https://example.com/a/"

    def test_unsorted_query(self) -> None:
        normalizer = URLNormalizer(URLNormalizationOptions(sort_query_params=False))
        assert normalizer.normalize("https://a.com/?b=2&a=1") == "https://a.com/?b=2&a=1"

    def test_custom_blocked_params(self) -> None:
        normalizer = URLNormalizer(URLNormalizationOptions(blocked_query_params={"ref"}))
        assert (
            normalizer.normalize("https://a.com/?ref=x&utm_source=y")
            == "https://a.com/?utm_source=y"
        )

    def test_is_same_page(self) -> None:
        normalizer = URLNormalizer()
        assert normalizer.is_same_page("Example.com/a/", "https://example.com/a?utm_term=x")
        assert not normalizer.is_same_page("example.com/a", "example.com/b")


# =============================================================================
# Resolver Helper Tests
# =============================================================================


class TestUrlVariants:
    """Tests for exact-match variants."""

    def test_order_and_dedup(self) -> None:
        assert url_variants("https://A.com/x/") == [
            "https://A.com/x/",
            "https://a.com/x",
            "https://a.com/x/",
        ]

    def test_already_normalized_input(self) -> None:
        assert url_variants("https://a.com/x") == ["https://a.com/x", "https://a.com/x/"]

    def test_root_url(self) -> None:
        assert url_variants("a.com") == ["a.com", "https://a.com/", "https://a.com"]

    def test_empty(self) -> None:
        assert url_variants("  ") == []


class TestExtractors:
    """Tests for hostname and path extraction."""

    def test_hostname_lowercased(self) -> None:
        assert extract_hostname("https://Blog.Example.com/a") == "blog.example.com"

    def test_hostname_without_scheme(self) -> None:
        assert extract_hostname("example.com/a") == "example.com"

    def test_hostname_missing(self) -> None:
        assert extract_hostname("") is None
        assert extract_hostname("https://") is None

    def test_hostname_unparseable(self) -> None:
        assert extract_hostname("http://[bad") is None

    def test_path(self) -> None:
        assert extract_path("https://a.com/Blog/Post?x=1") == "/Blog/Post"
        assert extract_path("a.com") == ""


class TestPathSimilarity:
    """Tests for segment-wise path similarity."""

    def test_identical(self) -> None:
        assert path_similarity("/blog/post", "/blog/post") == 1.0

    def test_case_insensitive(self) -> None:
        assert path_similarity("/Blog/Post", "/blog/post/") == 1.0

    def test_partial(self) -> None:
        assert path_similarity("/blog/post", "/blog/other") == 0.5
        assert path_similarity("/a/b/c", "/a/b") == pytest.approx(2 / 3)

    def test_position_matters(self) -> None:
        assert path_similarity("/a/b", "/b/a") == 0.0

    def test_both_empty(self) -> None:
        assert path_similarity("/", "") == 1.0

    def test_one_empty(self) -> None:
        assert path_similarity("/", "/blog") == 0.0


class TestUrlFragments:
    """Tests for fragment extraction."""

    def test_strips_scheme_and_www(self) -> None:
        assert url_fragments("https://www.example.com/blog/best-shoes?ref=home#top") == [
            "example.com",
            "blog",
            "best-shoes",
            "ref=home",
        ]

    def test_short_fragments_dropped(self) -> None:
        assert url_fragments("a.io/x/abc/abcd") == ["a.io", "abcd"]

    def test_empty(self) -> None:
        assert url_fragments("") == []


class TestEscapeLike:
    """Tests for LIKE metacharacter escaping."""

    def test_escapes_wildcards(self) -> None:
        assert escape_like("50%_off") == "50\\%\\_off"

    def test_escapes_escape_char_first(self) -> None:
        assert escape_like("a\\b%") == "a\\\\b\\%"

    def test_plain_text_unchanged(self) -> None:
        assert escape_like("https://a.com/x") == "https://a.com/x"
