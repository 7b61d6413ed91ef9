"""URL normalization utility for canonicalizing URLs.

Provides consistent URL normalization for competitor and content URLs:
- Defaults to https, keeping http only when the caller wrote it explicitly
- Lowercases the hostname (path case is preserved)
- Removes trailing slashes from non-root paths
- Removes default ports (80 for http, 443 for https)
- Removes tracking query parameters and sorts the rest by key
- Truncates to the storage column length

normalize_url() is total: it never raises. A string that cannot be parsed
as a URL comes back trimmed but otherwise unchanged.

Also provides the matching helpers used by the content resolver
(URL variants, hostname and path extraction, path similarity, fragments).

ERROR LOGGING REQUIREMENTS:
- Log method entry/exit at DEBUG level with parameters (sanitized)
- Log parse failures with the rejected value
"""

import re
from dataclasses import dataclass, field
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from competitive_analysis.core.logging import get_logger

logger = get_logger("url_normalizer")

MAX_URL_LENGTH = 2000
MAX_TRUNCATION_PASSES = 5

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")
_FRAGMENT_SPLIT_RE = re.compile(r"[/?&#]")
_DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass
class URLNormalizationOptions:
    """Options for URL normalization behavior.

    Attributes:
        remove_trailing_slash: Remove trailing slashes from non-root paths. Default True.
        sort_query_params: Sort query parameters by key. Default True.
        remove_default_port: Remove default ports (80/443). Default True.
        strip_www: Remove 'www.' prefix from hostname. Default False.
        max_length: Truncate the result to this many characters.
        blocked_query_params: Set of query params to remove (tracking params).
    """

    remove_trailing_slash: bool = True
    sort_query_params: bool = True
    remove_default_port: bool = True
    strip_www: bool = False
    max_length: int = MAX_URL_LENGTH
    blocked_query_params: set[str] = field(
        default_factory=lambda: {
            "utm_source",
            "utm_medium",
            "utm_campaign",
            "utm_term",
            "utm_content",
            "fbclid",
            "gclid",
        }
    )


# Default options instance for convenience
DEFAULT_OPTIONS = URLNormalizationOptions()


class URLNormalizer:
    """URL normalizer with configurable options and logging.

    Provides consistent URL normalization for deduplication and comparison.
    All operations are logged at DEBUG level for debugging.
    """

    def __init__(self, options: URLNormalizationOptions | None = None) -> None:
        self.options = options or DEFAULT_OPTIONS

    def normalize(self, url: str) -> str:
        """Normalize a URL according to configured options.

        Args:
            url: The URL to normalize. May omit the scheme.

        Returns:
            The normalized URL, or the trimmed input if it does not parse.
        """
        trimmed = (url or "").strip()
        if not trimmed:
            return ""

        logger.debug("normalize() called", extra={"input_url": trimmed[:200]})

        normalized = self._normalize_once(trimmed)
        if normalized is None:
            return trimmed
        if len(normalized) > self.options.max_length:
            normalized = self._truncate(normalized)

        logger.debug(
            "normalize() completed",
            extra={"input_url": trimmed[:200], "output_url": normalized[:200]},
        )
        return normalized

    def _normalize_once(self, trimmed: str) -> str | None:
        """Single untruncated pass. Returns None when the URL does not parse."""
        explicit_http = trimmed.lower().startswith("http://")
        candidate = trimmed if _SCHEME_RE.match(trimmed) else f"https://{trimmed}"

        try:
            parsed = urlsplit(candidate)
            host = parsed.hostname
            port = parsed.port
        except ValueError as e:
            logger.debug(
                "URL parsing failed, keeping original",
                extra={"input_url": trimmed[:200], "error_message": str(e)},
            )
            return None

        if not host:
            logger.debug(
                "URL has no host, keeping original",
                extra={"field": "netloc", "rejected_value": trimmed[:200]},
            )
            return None

        scheme = "http" if explicit_http else "https"
        netloc = self._normalize_netloc(parsed.username, parsed.password, host, port, scheme)
        path = self._normalize_path(parsed.path)
        query = self._normalize_query(parsed.query)

        return urlunsplit((scheme, netloc, path, query, parsed.fragment))

    def _truncate(self, normalized: str) -> str:
        """Cut to max_length, re-normalizing until the cut value is a fixed point.

        A cut can expose a trailing slash or a partial query pair that a
        second pass would rewrite.
        """
        cut = normalized[: self.options.max_length]
        for _ in range(MAX_TRUNCATION_PASSES):
            again = self._normalize_once(cut)
            if again is None or again == cut:
                return cut
            cut = again[: self.options.max_length]
        logger.warning(
            "Truncated URL did not settle",
            extra={"output_url": cut[:200], "passes": MAX_TRUNCATION_PASSES},
        )
        return cut

    def _normalize_netloc(
        self,
        username: str | None,
        password: str | None,
        host: str,
        port: int | None,
        scheme: str,
    ) -> str:
        """Rebuild host[:port] with credentials preserved.

        urlsplit() already lowercases the hostname and strips IPv6 brackets.
        """
        if self.options.strip_www and host.startswith("www."):
            host = host[4:]

        if ":" in host:
            host = f"[{host}]"

        if self.options.remove_default_port and _DEFAULT_PORTS.get(scheme) == port:
            port = None

        netloc = host if port is None else f"{host}:{port}"

        if username is not None:
            userinfo = username if password is None else f"{username}:{password}"
            netloc = f"{userinfo}@{netloc}"
        return netloc

    def _normalize_path(self, path: str) -> str:
        if self.options.remove_trailing_slash:
            path = path.rstrip("/")
        return path or "/"

    def _normalize_query(self, query: str) -> str:
        if not query:
            return ""

        params = [
            (key, value)
            for key, value in parse_qsl(query, keep_blank_values=True)
            if key not in self.options.blocked_query_params
        ]
        if not params:
            return ""

        # sorted() is stable, so repeated keys keep their relative order
        if self.options.sort_query_params:
            params = sorted(params, key=lambda pair: pair[0])

        return urlencode(params)

    def is_same_page(self, url1: str, url2: str) -> bool:
        """Check if two URLs refer to the same page after normalization."""
        return self.normalize(url1) == self.normalize(url2)


def normalize_url(
    url: str,
    options: URLNormalizationOptions | None = None,
) -> str:
    """Normalize a URL with default or custom options.

    Example:
        >>> normalize_url("HTTP://Example.com:80/Path/")
        'http://example.com/Path'

        >>> normalize_url("example.com/a?utm_source=x&b=2&a=1")
        'https://example.com/a?a=1&b=2'
    """
    normalizer = URLNormalizer(options)
    return normalizer.normalize(url)


def url_variants(url: str) -> list[str]:
    """Exact-match candidates for a URL, in lookup order.

    The trimmed input comes first, then its normalized form, then the
    normalized form without and with a trailing slash. Duplicates and
    empty strings are dropped.
    """
    trimmed = (url or "").strip()
    if not trimmed:
        return []
    normalized = normalize_url(trimmed)
    without_slash = normalized[:-1] if normalized.endswith("/") else normalized
    with_slash = normalized if normalized.endswith("/") else f"{normalized}/"

    variants: list[str] = []
    for candidate in (trimmed, normalized, without_slash, with_slash):
        if candidate and candidate not in variants:
            variants.append(candidate)
    return variants


def extract_hostname(url: str) -> str | None:
    """Return the lowercased hostname of a URL, or None if it has none."""
    trimmed = (url or "").strip()
    if not trimmed:
        return None
    candidate = trimmed if _SCHEME_RE.match(trimmed) else f"https://{trimmed}"
    try:
        return urlsplit(candidate).hostname or None
    except ValueError:
        return None


def extract_path(url: str) -> str:
    """Return the path component of a URL ('' if it cannot be parsed)."""
    trimmed = (url or "").strip()
    candidate = trimmed if _SCHEME_RE.match(trimmed) else f"https://{trimmed}"
    try:
        return urlsplit(candidate).path
    except ValueError:
        return ""


def path_similarity(path_a: str, path_b: str) -> float:
    """Score how closely two URL paths match, from 0.0 to 1.0.

    Segments are compared position by position, case-insensitively. The
    score is the number of equal segments over the longer segment count.
    Two empty paths score 1.0; one empty path scores 0.0.
    """
    segments_a = [s.lower() for s in path_a.split("/") if s]
    segments_b = [s.lower() for s in path_b.split("/") if s]

    if not segments_a and not segments_b:
        return 1.0
    if not segments_a or not segments_b:
        return 0.0

    matches = sum(1 for a, b in zip(segments_a, segments_b, strict=False) if a == b)
    return matches / max(len(segments_a), len(segments_b))


def url_fragments(url: str, min_length: int = 4) -> list[str]:
    """Split a URL into searchable fragments.

    Strips the scheme and a leading 'www.', splits on '/', '?', '&' and '#',
    and keeps fragments of at least min_length characters, in order.
    """
    stripped = _SCHEME_RE.sub("", (url or "").strip(), count=1)
    if stripped.lower().startswith("www."):
        stripped = stripped[4:]
    return [part for part in _FRAGMENT_SPLIT_RE.split(stripped) if len(part) >= min_length]


def escape_like(value: str, escape_char: str = "\\") -> str:
    """Escape LIKE/ILIKE wildcard characters so value matches literally."""
    return (
        value.replace(escape_char, escape_char * 2)
        .replace("%", f"{escape_char}%")
        .replace("_", f"{escape_char}_")
    )
