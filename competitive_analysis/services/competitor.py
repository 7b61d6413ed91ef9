"""CompetitorService for competitor page tracking and metric computation.

Orchestrates fetching a competitor page, scoring it with the text metrics
engine and upserting the result. Competitors are deduplicated by
(project_id, normalized URL): adding a known URL recomputes the existing
record instead of inserting a new one.

Scrape failures never surface as exceptions. A page that cannot be
fetched (or is nearly empty) is stored as a fallback record with zero
metrics so it still shows up in the project.

ERROR LOGGING REQUIREMENTS:
- Log method entry/exit at DEBUG level with parameters (sanitized)
- Log all exceptions with full stack trace and context
- Include entity IDs (project_id, competitor_id) in all service logs
- Log validation failures with field names and rejected values
- Add timing logs for operations >1 second
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from competitive_analysis.core.config import get_settings
from competitive_analysis.core.logging import db_logger, get_logger
from competitive_analysis.integrations.scraper import ScrapedPage, WebScraperClient
from competitive_analysis.models.competitor import Competitor
from competitive_analysis.repositories.competitor import CompetitorRepository
from competitive_analysis.schemas.content_analysis import (
    CompetitorRecord,
    ContentMetrics,
    Keyword,
    MetricsResult,
)
from competitive_analysis.utils.text_metrics import KeywordEstimator, compute_metrics
from competitive_analysis.utils.url import extract_hostname, normalize_url

logger = get_logger(__name__)

# Threshold for logging slow operations
SLOW_OPERATION_THRESHOLD_MS = 1000  # 1 second

MAX_TITLE_LENGTH = 50
FALLBACK_STRENGTH = "Could not analyze content"


class CompetitorServiceError(Exception):
    """Base exception for CompetitorService errors."""

    pass


class CompetitorValidationError(CompetitorServiceError):
    """Raised when competitor validation fails."""

    def __init__(self, field: str, value: Any, message: str):
        self.field = field
        self.value = value
        self.message = message
        super().__init__(f"Validation failed for '{field}': {message}")


class CompetitorNotFoundError(CompetitorServiceError):
    """Raised when a competitor is not found."""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


@dataclass
class PageAnalysis:
    """Computed fields for one competitor page, ready to persist."""

    title: str
    result: MetricsResult
    text: str | None = None
    html: str | None = None
    scraped: bool = False

    def columns(self) -> dict[str, Any]:
        """Column values for the competitors table."""
        return {
            "title": self.title,
            "metrics": self.result.metrics.model_dump(by_alias=True),
            "keywords": [k.model_dump(by_alias=True) for k in self.result.keywords],
            "strengths": list(self.result.strengths),
            "text": self.text,
            "html": self.html,
        }


@dataclass
class _StoredPage:
    """Plain copy of the stored fields a recomputation needs."""

    competitor_id: str
    url: str
    title: str
    text: str | None = None
    html: str | None = None
    record: CompetitorRecord | None = None


def display_title(title: str | None, url: str) -> str:
    """Scraped title, else hostname, truncated to 50 chars plus an ellipsis."""
    chosen = (title or "").strip() or extract_hostname(url) or url
    if len(chosen) > MAX_TITLE_LENGTH:
        return chosen[:MAX_TITLE_LENGTH] + "..."
    return chosen


def fallback_result() -> MetricsResult:
    """Zero metrics for a page that could not be analyzed."""
    return MetricsResult(
        metrics=ContentMetrics(),
        keywords=[],
        strengths=[FALLBACK_STRENGTH],
    )


def to_competitor_record(competitor: Competitor) -> CompetitorRecord:
    """Convert a Competitor row to its value type."""
    metrics = (
        ContentMetrics.model_validate(competitor.metrics)
        if competitor.metrics is not None
        else None
    )
    return CompetitorRecord(
        id=competitor.id,
        project_id=competitor.project_id,
        url=competitor.url,
        title=competitor.title or "",
        metrics=metrics,
        keywords=[Keyword.model_validate(k) for k in competitor.keywords or []],
        strengths=list(competitor.strengths or []),
        text=competitor.text,
        html=competitor.html,
        created_at=competitor.created_at,
        updated_at=competitor.updated_at,
    )


def needs_refresh(record: CompetitorRecord) -> bool:
    """True when a competitor has no usable metrics yet."""
    return record.metrics is None or record.metrics.word_count == 0


class CompetitorService:
    """Service for competitor page tracking.

    Provides business logic for:
    - Adding competitor URLs (or refreshing known ones)
    - Recomputing metrics for an existing competitor
    - Bulk refresh with bounded concurrency
    - Listing and deleting competitors
    """

    def __init__(
        self,
        session: AsyncSession,
        scraper: WebScraperClient,
        estimator: KeywordEstimator | None = None,
    ) -> None:
        """Initialize service.

        Args:
            session: Async SQLAlchemy session for database operations
            scraper: Page fetcher
            estimator: Optional keyword volume/difficulty estimator
        """
        settings = get_settings()
        self._session = session
        self._repository = CompetitorRepository(session)
        self._scraper = scraper
        self._estimator = estimator
        self._scrape_timeout = settings.scraper_timeout
        self._min_content_length = settings.scraper_min_content_length
        self._max_stored_text = settings.scraper_max_stored_text
        self._max_stored_html = settings.scraper_max_stored_html

    # ------------------------------------------------------------------
    # Page analysis (no database access)
    # ------------------------------------------------------------------

    async def _scrape(self, url: str) -> ScrapedPage | None:
        """Fetch a page, returning None on any failure or near-empty content."""
        try:
            page = await asyncio.wait_for(
                self._scraper.fetch(url), timeout=self._scrape_timeout
            )
        except TimeoutError:
            logger.warning(
                "Competitor scrape timed out",
                extra={"url": url[:200], "timeout_seconds": self._scrape_timeout},
            )
            return None
        except Exception as e:
            logger.error(
                "Competitor scrape failed unexpectedly",
                extra={
                    "url": url[:200],
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )
            return None

        if page is None:
            return None

        if len(page.text.strip()) < self._min_content_length:
            logger.info(
                "Competitor page has too little content",
                extra={
                    "url": url[:200],
                    "text_length": len(page.text.strip()),
                    "min_length": self._min_content_length,
                },
            )
            return None

        return page

    async def analyze_page(
        self, url: str, stored: _StoredPage | None = None
    ) -> PageAnalysis:
        """Scrape and score a page.

        When the scrape fails, stored text (if any) is rescored instead;
        otherwise fallback values are returned.
        """
        start_time = time.monotonic()
        page = await self._scrape(url)

        if page is not None:
            text = page.text[: self._max_stored_text]
            html = page.html[: self._max_stored_html] if page.html else None
            analysis = PageAnalysis(
                title=display_title(page.title, url),
                result=compute_metrics(text, html, estimator=self._estimator),
                text=text,
                html=html,
                scraped=True,
            )
        elif stored is not None and stored.text and stored.text.strip():
            logger.info(
                "Scrape failed, rescoring stored content",
                extra={"competitor_id": stored.competitor_id, "url": url[:200]},
            )
            analysis = PageAnalysis(
                title=stored.title or display_title(None, url),
                result=compute_metrics(stored.text, stored.html, estimator=self._estimator),
            )
        else:
            analysis = PageAnalysis(
                title=display_title(None, url),
                result=fallback_result(),
            )

        duration_ms = (time.monotonic() - start_time) * 1000
        if duration_ms > SLOW_OPERATION_THRESHOLD_MS:
            logger.warning(
                "Slow competitor page analysis",
                extra={
                    "url": url[:200],
                    "scraped": analysis.scraped,
                    "duration_ms": round(duration_ms, 2),
                },
            )
        return analysis

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def _apply(
        self, competitor_id: str, analysis: PageAnalysis
    ) -> CompetitorRecord | None:
        """Write an analysis onto an existing competitor and commit."""
        try:
            competitor = await self._repository.get_by_id(competitor_id)
            if competitor is None:
                logger.warning(
                    "Competitor disappeared before update",
                    extra={"competitor_id": competitor_id},
                )
                return None
            await self._repository.update_analysis(competitor, **analysis.columns())
            await self._session.commit()
            return to_competitor_record(competitor)

        except SQLAlchemyError as e:
            await self._session.rollback()
            db_logger.transaction_failure(
                e,
                table=CompetitorRepository.TABLE_NAME,
                context=f"Updating competitor_id={competitor_id}",
            )
            return None

    async def _create(
        self, project_id: str, url: str, analysis: PageAnalysis
    ) -> CompetitorRecord | None:
        """Insert a competitor, resolving a concurrent insert of the same URL."""
        try:
            competitor = await self._repository.create(
                project_id=project_id, url=url, **analysis.columns()
            )
            await self._session.commit()
            return to_competitor_record(competitor)

        except IntegrityError:
            await self._session.rollback()
            logger.info(
                "Competitor inserted concurrently, updating existing row",
                extra={"project_id": project_id, "url": url[:200]},
            )
            try:
                winner = await self._repository.get_by_url(project_id, url)
            except SQLAlchemyError:
                return None
            if winner is None:
                return None
            return await self._apply(winner.id, analysis)

        except SQLAlchemyError as e:
            await self._session.rollback()
            db_logger.transaction_failure(
                e,
                table=CompetitorRepository.TABLE_NAME,
                context=f"Creating competitor for project_id={project_id}",
            )
            return None

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def add_or_refresh(self, project_id: str, url: str) -> CompetitorRecord | None:
        """Add a competitor URL to a project, or recompute it if already tracked.

        Args:
            project_id: Project UUID
            url: Competitor page URL (normalized before lookup)

        Returns:
            The stored CompetitorRecord, or None on a persistence failure

        Raises:
            CompetitorValidationError: If project_id or url is empty
        """
        start_time = time.monotonic()

        if not project_id or not str(project_id).strip():
            logger.warning(
                "Competitor validation failed",
                extra={"field": "project_id", "rejected_value": repr(project_id)},
            )
            raise CompetitorValidationError("project_id", project_id, "Project ID cannot be empty")
        if not url or not url.strip():
            logger.warning(
                "Competitor validation failed",
                extra={"field": "url", "rejected_value": repr(url)},
            )
            raise CompetitorValidationError("url", url, "URL cannot be empty")

        normalized = normalize_url(url)
        logger.debug(
            "Adding competitor",
            extra={"project_id": project_id, "url": normalized[:200]},
        )

        try:
            existing = await self._repository.get_by_url(project_id, normalized)
        except SQLAlchemyError:
            return None

        if existing is not None:
            logger.info(
                "Competitor already tracked, recalculating",
                extra={"project_id": project_id, "competitor_id": existing.id},
            )
            return await self.recalculate(existing.id)

        analysis = await self.analyze_page(normalized)
        record = await self._create(project_id, normalized, analysis)

        duration_ms = (time.monotonic() - start_time) * 1000
        logger.info(
            "Competitor added" if record else "Competitor could not be stored",
            extra={
                "project_id": project_id,
                "competitor_id": record.id if record else None,
                "url": normalized[:200],
                "scraped": analysis.scraped,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return record

    async def recalculate(self, competitor_id: str) -> CompetitorRecord | None:
        """Re-scrape and rescore an existing competitor, keeping its identity.

        Returns:
            Updated CompetitorRecord, or None if it does not exist or
            could not be saved
        """
        start_time = time.monotonic()

        try:
            competitor = await self._repository.get_by_id(competitor_id)
        except SQLAlchemyError:
            return None

        if competitor is None:
            logger.warning(
                "Competitor not found for recalculation",
                extra={"competitor_id": competitor_id},
            )
            return None

        stored = _StoredPage(
            competitor_id=competitor.id,
            url=competitor.url,
            title=competitor.title,
            text=competitor.text,
            html=competitor.html,
        )
        analysis = await self.analyze_page(stored.url, stored=stored)
        record = await self._apply(competitor_id, analysis)

        duration_ms = (time.monotonic() - start_time) * 1000
        logger.info(
            "Competitor recalculated" if record else "Competitor recalculation not saved",
            extra={
                "competitor_id": competitor_id,
                "scraped": analysis.scraped,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return record

    async def refresh_competitors(
        self,
        project_id: str,
        competitor_ids: set[str] | None = None,
        max_concurrent: int | None = None,
    ) -> list[CompetitorRecord]:
        """Recompute several competitors of a project.

        Scrapes and scoring run concurrently (bounded by max_concurrent);
        database writes are applied one at a time on this session.

        Args:
            project_id: Project UUID
            competitor_ids: Restrict to these competitors (all if None)
            max_concurrent: Concurrent scrape limit. Defaults to settings.

        Returns:
            Refreshed records; a competitor whose write failed is returned
            with its previous values
        """
        start_time = time.monotonic()
        limit = max_concurrent or get_settings().analysis_refresh_concurrency

        try:
            competitors = await self._repository.get_by_project(project_id)
        except SQLAlchemyError:
            return []

        targets = [
            _StoredPage(
                competitor_id=c.id,
                url=c.url,
                title=c.title,
                text=c.text,
                html=c.html,
                record=to_competitor_record(c),
            )
            for c in competitors
            if competitor_ids is None or c.id in competitor_ids
        ]
        if not targets:
            return []

        semaphore = asyncio.Semaphore(max(1, limit))

        async def analyze_with_limit(stored: _StoredPage) -> PageAnalysis:
            async with semaphore:
                return await self.analyze_page(stored.url, stored=stored)

        analyses = await asyncio.gather(*(analyze_with_limit(t) for t in targets))

        refreshed: list[CompetitorRecord] = []
        for stored, analysis in zip(targets, analyses, strict=True):
            record = await self._apply(stored.competitor_id, analysis)
            refreshed.append(record or stored.record)

        duration_ms = (time.monotonic() - start_time) * 1000
        logger.info(
            "Competitors refreshed",
            extra={
                "project_id": project_id,
                "count": len(refreshed),
                "scraped_count": sum(1 for a in analyses if a.scraped),
                "max_concurrent": limit,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return refreshed

    async def list_competitors(self, project_id: str) -> list[CompetitorRecord]:
        """List a project's competitors, oldest first."""
        competitors = await self._repository.get_by_project(project_id)
        return [to_competitor_record(c) for c in competitors]

    async def get_competitor(self, competitor_id: str) -> CompetitorRecord:
        """Get a competitor by ID.

        Raises:
            CompetitorNotFoundError: If competitor not found
        """
        competitor = await self._repository.get_by_id(competitor_id)
        if competitor is None:
            raise CompetitorNotFoundError("Competitor", competitor_id)
        return to_competitor_record(competitor)

    async def delete_competitor(self, competitor_id: str) -> bool:
        """Delete a competitor.

        Returns:
            True if deleted, False if not found
        """
        deleted = await self._repository.delete(competitor_id)
        if deleted:
            await self._session.commit()
        return deleted
