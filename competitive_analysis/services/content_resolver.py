"""ContentResolver for locating stored content by an ambiguous URL.

Users paste URLs in many shapes (with or without scheme, trailing slash,
tracking parameters, different host case). The resolver runs a cascade
of increasingly loose lookups and returns the first hit:

1. exact      - stored URL equals one of the URL's exact-match variants
2. ignore_case - stored URL equals the normalized URL, case-insensitively
3. domain     - stored URL contains the hostname; best path match wins
4. fragment   - stored URL contains a distinctive piece of the input

A failing strategy (or candidate) is logged and skipped. resolve() never
raises; a lookup that cannot be completed reports not-found.

ERROR LOGGING REQUIREMENTS:
- Log method entry/exit at DEBUG level with parameters (sanitized)
- Log all exceptions with full stack trace and context
- Add timing logs for operations >1 second
"""

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from competitive_analysis.core.logging import get_logger
from competitive_analysis.models.content_page import ContentPage
from competitive_analysis.repositories.content import ContentRepository
from competitive_analysis.schemas.content_analysis import ContentMetrics, ContentRecord
from competitive_analysis.utils.url import (
    extract_hostname,
    extract_path,
    normalize_url,
    path_similarity,
    url_fragments,
    url_variants,
)

logger = get_logger(__name__)

# Threshold for logging slow operations
SLOW_OPERATION_THRESHOLD_MS = 1000  # 1 second

# Minimum path similarity for a domain candidate to beat "newest"
PATH_SIMILARITY_THRESHOLD = 0.5
DOMAIN_CANDIDATE_LIMIT = 20


@dataclass
class ResolvedContent:
    """A resolver hit.

    Attributes:
        record: The matched content
        exact: True only when the stored URL equals the caller's trimmed input
        strategy: Name of the strategy that matched
    """

    record: ContentRecord
    exact: bool
    strategy: str


def to_content_record(page: ContentPage) -> ContentRecord:
    """Convert a ContentPage row to its value type."""
    return ContentRecord(
        id=page.id,
        url=page.url,
        title=page.title or "",
        text=page.text or "",
        keywords=list(page.keywords or []),
        metrics=(
            ContentMetrics.model_validate(page.metrics)
            if page.metrics is not None
            else None
        ),
    )


class ContentResolver:
    """Multi-strategy URL lookup over stored content pages."""

    def __init__(
        self,
        repository: ContentRepository,
        project_id: str | None = None,
    ) -> None:
        """Initialize resolver.

        Args:
            repository: Content page repository
            project_id: Restrict every lookup to this project (None = all)
        """
        self._repository = repository
        self._project_id = project_id

    async def resolve(self, url: str) -> ResolvedContent | None:
        """Find the stored content a URL most plausibly refers to.

        Args:
            url: Raw URL as entered by a user

        Returns:
            ResolvedContent, or None if nothing matched
        """
        start_time = time.monotonic()
        trimmed = (url or "").strip()
        if not trimmed:
            return None

        normalized = normalize_url(trimmed)
        logger.debug(
            "Resolving content URL",
            extra={
                "url": trimmed[:200],
                "normalized_url": normalized[:200],
                "project_id": self._project_id,
            },
        )

        strategies: list[tuple[str, Callable[[], Awaitable[ResolvedContent | None]]]] = [
            ("exact", lambda: self._match_exact(trimmed)),
            ("ignore_case", lambda: self._match_ignoring_case(normalized)),
            ("domain", lambda: self._match_domain(normalized)),
            ("fragment", lambda: self._match_fragment(normalized)),
        ]

        resolved: ResolvedContent | None = None
        for name, strategy in strategies:
            try:
                resolved = await strategy()
            except Exception as e:
                logger.error(
                    "Content resolution strategy failed",
                    extra={
                        "strategy": name,
                        "url": trimmed[:200],
                        "error_type": type(e).__name__,
                        "error_message": str(e),
                    },
                    exc_info=True,
                )
                continue
            if resolved is not None:
                break

        duration_ms = (time.monotonic() - start_time) * 1000
        log_extra = {
            "url": trimmed[:200],
            "project_id": self._project_id,
            "strategy": resolved.strategy if resolved else None,
            "exact": resolved.exact if resolved else None,
            "content_id": resolved.record.id if resolved else None,
            "duration_ms": round(duration_ms, 2),
        }
        if duration_ms > SLOW_OPERATION_THRESHOLD_MS:
            logger.warning("Slow content resolution", extra=log_extra)
        elif resolved is None:
            logger.info("No content matched URL", extra=log_extra)
        else:
            logger.debug("Content resolved", extra=log_extra)
        return resolved

    async def _match_exact(self, trimmed: str) -> ResolvedContent | None:
        for variant in url_variants(trimmed):
            try:
                page = await self._repository.find_by_exact_url(variant, self._project_id)
            except Exception as e:
                logger.warning(
                    "Exact URL lookup failed",
                    extra={
                        "variant": variant[:200],
                        "error_type": type(e).__name__,
                        "error_message": str(e),
                    },
                )
                continue
            if page is not None:
                return ResolvedContent(
                    record=to_content_record(page),
                    exact=page.url == trimmed,
                    strategy="exact",
                )
        return None

    async def _match_ignoring_case(self, normalized: str) -> ResolvedContent | None:
        page = await self._repository.find_by_url_ignoring_case(normalized, self._project_id)
        if page is None:
            return None
        return ResolvedContent(
            record=to_content_record(page), exact=False, strategy="ignore_case"
        )

    async def _match_domain(self, normalized: str) -> ResolvedContent | None:
        hostname = extract_hostname(normalized)
        if not hostname:
            return None

        candidates = await self._repository.find_containing(
            hostname, self._project_id, limit=DOMAIN_CANDIDATE_LIMIT
        )
        if not candidates:
            return None

        target_path = extract_path(normalized)
        best: ContentPage | None = None
        best_score = 0.0
        for candidate in candidates:
            try:
                score = path_similarity(target_path, extract_path(candidate.url))
            except Exception as e:
                logger.warning(
                    "Skipping domain candidate",
                    extra={
                        "candidate_url": str(candidate.url)[:200],
                        "error_type": type(e).__name__,
                        "error_message": str(e),
                    },
                )
                continue
            if score > best_score:
                best, best_score = candidate, score

        if best is None or best_score <= PATH_SIMILARITY_THRESHOLD:
            # Candidates are newest first
            best = candidates[0]

        return ResolvedContent(record=to_content_record(best), exact=False, strategy="domain")

    async def _match_fragment(self, normalized: str) -> ResolvedContent | None:
        for fragment in url_fragments(normalized):
            try:
                pages = await self._repository.find_containing(
                    fragment, self._project_id, limit=1
                )
            except Exception as e:
                logger.warning(
                    "Fragment lookup failed",
                    extra={
                        "fragment": fragment[:200],
                        "error_type": type(e).__name__,
                        "error_message": str(e),
                    },
                )
                continue
            if pages:
                return ResolvedContent(
                    record=to_content_record(pages[0]), exact=False, strategy="fragment"
                )
        return None
