"""CompetitorRepository for competitor data storage and retrieval.

Handles all database operations for Competitor entities.
Follows the layered architecture pattern: API -> Service -> Repository -> Database.

ERROR LOGGING REQUIREMENTS:
- Log method entry/exit at DEBUG level with parameters (sanitized)
- Log all exceptions with full stack trace and context
- Include entity IDs (project_id, competitor_id) in all logs
- Add timing logs for operations >1 second
"""

import time
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from competitive_analysis.core.logging import db_logger, get_logger
from competitive_analysis.models.competitor import Competitor

logger = get_logger(__name__)


class CompetitorRepository:
    """Repository for Competitor CRUD operations.

    Deduplication Strategy:
    - Competitors are uniquely identified by (project_id, normalized url)
    - On duplicate, an IntegrityError is raised and the caller decides
    """

    TABLE_NAME = "competitors"
    SLOW_OPERATION_THRESHOLD_MS = 1000  # 1 second

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _check_slow(self, query: str, start_time: float) -> float:
        duration_ms = (time.monotonic() - start_time) * 1000
        if duration_ms > self.SLOW_OPERATION_THRESHOLD_MS:
            db_logger.slow_query(
                query=query,
                duration_ms=duration_ms,
                table=self.TABLE_NAME,
            )
        return duration_ms

    async def create(
        self,
        project_id: str,
        url: str,
        title: str,
        metrics: dict[str, Any] | None,
        keywords: list[dict[str, Any]],
        strengths: list[str],
        text: str | None = None,
        html: str | None = None,
    ) -> Competitor:
        """Create a new competitor.

        Args:
            project_id: Project UUID
            url: Normalized competitor URL
            title: Display title
            metrics: Serialized ContentMetrics
            keywords: Serialized keyword list
            strengths: Strength descriptions
            text: Scraped text (already truncated)
            html: Scraped markup (already truncated)

        Returns:
            Created Competitor instance

        Raises:
            IntegrityError: If competitor with same (project_id, url) exists
            SQLAlchemyError: On database errors
        """
        start_time = time.monotonic()
        logger.debug(
            "Creating competitor",
            extra={"project_id": project_id, "url": url[:200]},
        )

        try:
            competitor = Competitor(
                project_id=project_id,
                url=url,
                title=title,
                metrics=metrics,
                keywords=keywords,
                strengths=strengths,
                text=text,
                html=html,
            )
            self.session.add(competitor)
            await self.session.flush()
            await self.session.refresh(competitor)

            duration_ms = self._check_slow("INSERT INTO competitors", start_time)
            logger.debug(
                "Competitor created successfully",
                extra={
                    "competitor_id": competitor.id,
                    "project_id": project_id,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            return competitor

        except IntegrityError as e:
            logger.warning(
                "Competitor already exists for project and URL",
                extra={
                    "project_id": project_id,
                    "url": url[:200],
                    "error_type": type(e).__name__,
                },
            )
            raise

        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e,
                table=self.TABLE_NAME,
                context=f"Creating competitor for project_id={project_id}",
            )
            raise

    async def get_by_id(self, competitor_id: str) -> Competitor | None:
        """Get a competitor by ID.

        Raises:
            SQLAlchemyError: On database errors
        """
        start_time = time.monotonic()

        try:
            result = await self.session.execute(
                select(Competitor).where(Competitor.id == competitor_id)
            )
            competitor = result.scalar_one_or_none()

            duration_ms = self._check_slow(
                f"SELECT FROM competitors WHERE id={competitor_id}", start_time
            )
            logger.debug(
                "Competitor fetch completed",
                extra={
                    "competitor_id": competitor_id,
                    "found": competitor is not None,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            return competitor

        except SQLAlchemyError as e:
            logger.error(
                "Failed to fetch competitor by ID",
                extra={
                    "competitor_id": competitor_id,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )
            raise

    async def get_by_url(self, project_id: str, url: str) -> Competitor | None:
        """Get a competitor by normalized URL within a project.

        Raises:
            SQLAlchemyError: On database errors
        """
        start_time = time.monotonic()

        try:
            result = await self.session.execute(
                select(Competitor).where(
                    Competitor.project_id == project_id,
                    Competitor.url == url,
                )
            )
            competitor = result.scalar_one_or_none()

            duration_ms = self._check_slow(
                f"SELECT FROM competitors WHERE project_id={project_id} AND url=...",
                start_time,
            )
            logger.debug(
                "Competitor fetch by URL completed",
                extra={
                    "project_id": project_id,
                    "url": url[:200],
                    "found": competitor is not None,
                    "competitor_id": competitor.id if competitor else None,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            return competitor

        except SQLAlchemyError as e:
            logger.error(
                "Failed to fetch competitor by URL",
                extra={
                    "project_id": project_id,
                    "url": url[:200],
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )
            raise

    async def get_by_project(self, project_id: str) -> list[Competitor]:
        """Get all competitors for a project, oldest first.

        Raises:
            SQLAlchemyError: On database errors
        """
        start_time = time.monotonic()

        try:
            result = await self.session.execute(
                select(Competitor)
                .where(Competitor.project_id == project_id)
                .order_by(Competitor.created_at.asc())
            )
            competitors = list(result.scalars().all())

            duration_ms = self._check_slow(
                f"SELECT FROM competitors WHERE project_id={project_id}", start_time
            )
            logger.debug(
                "Competitors fetched for project",
                extra={
                    "project_id": project_id,
                    "count": len(competitors),
                    "duration_ms": round(duration_ms, 2),
                },
            )
            return competitors

        except SQLAlchemyError as e:
            logger.error(
                "Failed to fetch competitors for project",
                extra={
                    "project_id": project_id,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )
            raise

    async def update_analysis(
        self,
        competitor: Competitor,
        title: str,
        metrics: dict[str, Any] | None,
        keywords: list[dict[str, Any]],
        strengths: list[str],
        text: str | None = None,
        html: str | None = None,
    ) -> Competitor:
        """Overwrite a competitor's computed fields, keeping its identity.

        text/html are only replaced when new values are given.

        Raises:
            SQLAlchemyError: On database errors
        """
        start_time = time.monotonic()

        try:
            competitor.title = title
            competitor.metrics = metrics
            competitor.keywords = keywords
            competitor.strengths = strengths
            if text is not None:
                competitor.text = text
            if html is not None:
                competitor.html = html
            await self.session.flush()
            await self.session.refresh(competitor)

            duration_ms = self._check_slow(
                f"UPDATE competitors WHERE id={competitor.id}", start_time
            )
            logger.info(
                "Competitor analysis updated",
                extra={
                    "competitor_id": competitor.id,
                    "project_id": competitor.project_id,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            return competitor

        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e,
                table=self.TABLE_NAME,
                context=f"Updating competitor_id={competitor.id}",
            )
            raise

    async def delete(self, competitor_id: str) -> bool:
        """Delete a competitor.

        Returns:
            True if a row was deleted, False if it did not exist

        Raises:
            SQLAlchemyError: On database errors
        """
        start_time = time.monotonic()

        try:
            result = await self.session.execute(
                delete(Competitor).where(Competitor.id == competitor_id)
            )
            await self.session.flush()
            deleted = bool(result.rowcount)

            duration_ms = self._check_slow(
                f"DELETE FROM competitors WHERE id={competitor_id}", start_time
            )
            logger.info(
                "Competitor deleted" if deleted else "Competitor not found for deletion",
                extra={
                    "competitor_id": competitor_id,
                    "deleted": deleted,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            return deleted

        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e,
                table=self.TABLE_NAME,
                context=f"Deleting competitor_id={competitor_id}",
            )
            raise
