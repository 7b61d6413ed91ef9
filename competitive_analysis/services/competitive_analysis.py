"""CompetitiveAnalysisService for running a full competitive analysis.

Ties the pieces together for one request:
1. Load the project's competitors and refresh the ones missing metrics
   (or all of them on request)
2. Resolve the target content by URL within the project
3. Run the gap analyzer (Claude first, deterministic fallback otherwise)
4. Store a snapshot of the report

A target that cannot be found is analyzed as a text-less placeholder,
which yields the single-gap result. Snapshot storage is best-effort.

ERROR LOGGING REQUIREMENTS:
- Log method entry/exit at DEBUG level with parameters (sanitized)
- Log all exceptions with full stack trace and context
- Include entity IDs (project_id, content_id) in all service logs
- Log validation failures with field names and rejected values
- Add timing logs for operations >1 second
"""

import sys
import time
from dataclasses import replace
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from competitive_analysis.core.logging import get_logger
from competitive_analysis.integrations.claude import ClaudeClient
from competitive_analysis.integrations.scraper import WebScraperClient
from competitive_analysis.repositories.analysis import CompetitiveAnalysisRepository
from competitive_analysis.repositories.content import ContentRepository
from competitive_analysis.schemas.content_analysis import (
    CompetitiveAnalysisRecord,
    CompetitiveAnalysisResponse,
    CompetitorRecord,
    ContentRecord,
    GapAnalysisResult,
    UrlValidationResult,
)
from competitive_analysis.services.competitor import CompetitorService, needs_refresh
from competitive_analysis.services.content_resolver import ContentResolver
from competitive_analysis.services.gap_analysis import GapAnalyzer
from competitive_analysis.utils.text_metrics import KeywordEstimator
from competitive_analysis.utils.url import (
    DEFAULT_OPTIONS,
    MAX_URL_LENGTH,
    URLNormalizer,
    extract_hostname,
    normalize_url,
    url_variants,
)

logger = get_logger(__name__)

# Threshold for logging slow operations
SLOW_OPERATION_THRESHOLD_MS = 1000  # 1 second

_UNTRUNCATED = URLNormalizer(replace(DEFAULT_OPTIONS, max_length=sys.maxsize))


class AnalysisServiceError(Exception):
    """Base exception for CompetitiveAnalysisService errors."""

    pass


class AnalysisValidationError(AnalysisServiceError):
    """Raised when analysis input validation fails."""

    def __init__(self, field: str, value: Any, message: str):
        self.field = field
        self.value = value
        self.message = message
        super().__init__(f"Validation failed for '{field}': {message}")


def validate_url_storage(url: str) -> UrlValidationResult:
    """Report how a URL would be normalized, stored and matched."""
    original = (url or "").strip()
    full = _UNTRUNCATED.normalize(original)
    normalized = normalize_url(original)
    hostname = extract_hostname(normalized) if normalized else None

    return UrlValidationResult(
        original_url=original,
        normalized_url=normalized,
        original_length=len(original),
        normalized_length=len(normalized),
        truncated=len(full) > MAX_URL_LENGTH,
        hostname=hostname,
        is_valid=bool(hostname) and normalized.startswith(("http://", "https://")),
        exact_match_variants=url_variants(original),
    )


class CompetitiveAnalysisService:
    """Service for competitive analysis runs."""

    def __init__(
        self,
        session: AsyncSession,
        scraper: WebScraperClient,
        llm: ClaudeClient | None = None,
        estimator: KeywordEstimator | None = None,
    ) -> None:
        """Initialize service.

        Args:
            session: Async SQLAlchemy session for database operations
            scraper: Page fetcher used to refresh competitors
            llm: Claude client for the primary analysis path (optional)
            estimator: Optional keyword volume/difficulty estimator
        """
        self._session = session
        self._competitor_service = CompetitorService(session, scraper, estimator)
        self._content_repository = ContentRepository(session)
        self._analysis_repository = CompetitiveAnalysisRepository(session)
        self._analyzer = GapAnalyzer(llm=llm)

    async def _load_competitors(
        self, project_id: str, refresh: bool
    ) -> list[CompetitorRecord]:
        """Project competitors with metrics refreshed where needed."""
        try:
            competitors = await self._competitor_service.list_competitors(project_id)
        except SQLAlchemyError:
            logger.warning(
                "Could not load competitors, analyzing without them",
                extra={"project_id": project_id},
            )
            return []

        stale_ids = {c.id for c in competitors if c.id and (refresh or needs_refresh(c))}
        if not stale_ids:
            return competitors

        logger.info(
            "Refreshing competitors before analysis",
            extra={
                "project_id": project_id,
                "stale_count": len(stale_ids),
                "forced": refresh,
            },
        )
        refreshed = await self._competitor_service.refresh_competitors(
            project_id, competitor_ids=stale_ids
        )
        by_id = {r.id: r for r in refreshed}
        return [by_id.get(c.id, c) for c in competitors]

    async def _store_snapshot(
        self,
        project_id: str,
        content_url: str,
        content_id: str | None,
        result: GapAnalysisResult,
    ) -> str | None:
        """Persist the report. Failures are logged and swallowed."""
        try:
            snapshot = await self._analysis_repository.create(
                project_id=project_id,
                content_url=content_url,
                result=result.model_dump(mode="json", by_alias=True),
                source=result.source,
                content_id=content_id,
            )
            await self._session.commit()
            return snapshot.id
        except SQLAlchemyError:
            await self._session.rollback()
            logger.warning(
                "Analysis snapshot not stored",
                extra={"project_id": project_id, "content_id": content_id},
            )
            return None

    async def run_competitive_analysis(
        self,
        project_id: str,
        content_url: str,
        refresh: bool = False,
    ) -> CompetitiveAnalysisResponse:
        """Analyze a project's content against its competitors.

        Args:
            project_id: Project UUID
            content_url: URL of the content to analyze (any common shape)
            refresh: Re-scrape every competitor, not just those missing metrics

        Returns:
            CompetitiveAnalysisResponse wrapping the GapAnalysisResult

        Raises:
            AnalysisValidationError: If project_id or content_url is empty
        """
        start_time = time.monotonic()

        if not project_id or not str(project_id).strip():
            logger.warning(
                "Analysis validation failed",
                extra={"field": "project_id", "rejected_value": repr(project_id)},
            )
            raise AnalysisValidationError("project_id", project_id, "Project ID cannot be empty")
        if not content_url or not content_url.strip():
            logger.warning(
                "Analysis validation failed",
                extra={"field": "content_url", "rejected_value": repr(content_url)},
            )
            raise AnalysisValidationError("content_url", content_url, "URL cannot be empty")

        logger.debug(
            "Running competitive analysis",
            extra={
                "project_id": project_id,
                "content_url": content_url[:200],
                "refresh": refresh,
            },
        )

        competitors = await self._load_competitors(project_id, refresh)

        resolver = ContentResolver(self._content_repository, project_id=project_id)
        resolved = await resolver.resolve(content_url)
        normalized = normalize_url(content_url)
        target = resolved.record if resolved else ContentRecord(url=normalized, text="")

        result = await self._analyzer.analyze(target, competitors)

        content_id = resolved.record.id if resolved else None
        analysis_id = await self._store_snapshot(project_id, normalized, content_id, result)

        duration_ms = (time.monotonic() - start_time) * 1000
        log_extra = {
            "project_id": project_id,
            "content_id": content_id,
            "analysis_id": analysis_id,
            "source": result.source,
            "competitor_count": len(competitors),
            "duration_ms": round(duration_ms, 2),
        }
        if duration_ms > SLOW_OPERATION_THRESHOLD_MS:
            logger.warning("Slow competitive analysis", extra=log_extra)
        else:
            logger.info("Competitive analysis finished", extra=log_extra)

        return CompetitiveAnalysisResponse(
            analysis_id=analysis_id,
            content_id=content_id,
            content_url=normalized,
            exact_match=resolved.exact if resolved else False,
            match_strategy=resolved.strategy if resolved else None,
            result=result,
        )

    async def list_analyses(
        self, project_id: str, limit: int = 20
    ) -> list[CompetitiveAnalysisRecord]:
        """Stored analysis snapshots for a project, newest first."""
        snapshots = await self._analysis_repository.list_by_project(project_id, limit=limit)
        return [
            CompetitiveAnalysisRecord(
                id=s.id,
                project_id=s.project_id,
                content_id=s.content_id,
                content_url=s.content_url,
                source=s.source,
                result=GapAnalysisResult.model_validate(s.result),
                created_at=s.created_at,
            )
            for s in snapshots
        ]

    def validate_url_storage(self, url: str) -> UrlValidationResult:
        """Report how a URL would be normalized, stored and matched."""
        return validate_url_storage(url)
