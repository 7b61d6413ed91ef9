"""ContentRepository for looking up stored content pages by URL.

Provides the three URL queries the content resolver needs:
exact string match, case-insensitive pattern match and substring match.
Every query can be scoped to a project.

ERROR LOGGING REQUIREMENTS:
- Log method entry/exit at DEBUG level with parameters (sanitized)
- Log all exceptions with full stack trace and context
- Add timing logs for operations >1 second
"""

import time

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from competitive_analysis.core.logging import db_logger, get_logger
from competitive_analysis.models.content_page import ContentPage
from competitive_analysis.utils.url import escape_like

logger = get_logger(__name__)


class ContentRepository:
    """Read-only repository over content_pages."""

    TABLE_NAME = "content_pages"
    SLOW_OPERATION_THRESHOLD_MS = 1000  # 1 second
    LIKE_ESCAPE = "\\"

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _scoped(self, stmt: Select, project_id: str | None) -> Select:
        if project_id is not None:
            stmt = stmt.where(ContentPage.project_id == project_id)
        return stmt

    async def _run(
        self, stmt: Select, description: str, limit: int
    ) -> list[ContentPage]:
        """Execute a query newest first, with timing and error logging."""
        start_time = time.monotonic()
        stmt = stmt.order_by(ContentPage.created_at.desc()).limit(limit)

        try:
            result = await self.session.execute(stmt)
            pages = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(
                "Content lookup failed",
                extra={
                    "lookup": description[:200],
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )
            raise

        duration_ms = (time.monotonic() - start_time) * 1000
        if duration_ms > self.SLOW_OPERATION_THRESHOLD_MS:
            db_logger.slow_query(
                query=f"SELECT FROM content_pages WHERE {description}",
                duration_ms=duration_ms,
                table=self.TABLE_NAME,
            )
        logger.debug(
            "Content lookup completed",
            extra={
                "lookup": description[:200],
                "count": len(pages),
                "duration_ms": round(duration_ms, 2),
            },
        )
        return pages

    async def get_by_id(self, content_id: str) -> ContentPage | None:
        """Get a content page by ID.

        Raises:
            SQLAlchemyError: On database errors
        """
        pages = await self._run(
            select(ContentPage).where(ContentPage.id == content_id),
            f"id={content_id}",
            limit=1,
        )
        return pages[0] if pages else None

    async def find_by_exact_url(
        self, url: str, project_id: str | None = None
    ) -> ContentPage | None:
        """Newest page whose stored URL equals url exactly.

        Raises:
            SQLAlchemyError: On database errors
        """
        stmt = self._scoped(select(ContentPage).where(ContentPage.url == url), project_id)
        pages = await self._run(stmt, f"url = {url}", limit=1)
        return pages[0] if pages else None

    async def find_by_url_ignoring_case(
        self, url: str, project_id: str | None = None
    ) -> ContentPage | None:
        """Newest page whose stored URL equals url, compared case-insensitively.

        LIKE wildcards in url are escaped so they match literally.

        Raises:
            SQLAlchemyError: On database errors
        """
        pattern = escape_like(url, self.LIKE_ESCAPE)
        stmt = self._scoped(
            select(ContentPage).where(
                ContentPage.url.ilike(pattern, escape=self.LIKE_ESCAPE)
            ),
            project_id,
        )
        pages = await self._run(stmt, f"url ILIKE {url}", limit=1)
        return pages[0] if pages else None

    async def find_containing(
        self, fragment: str, project_id: str | None = None, limit: int = 20
    ) -> list[ContentPage]:
        """Pages whose stored URL contains fragment, newest first.

        Raises:
            SQLAlchemyError: On database errors
        """
        stmt = self._scoped(
            select(ContentPage).where(ContentPage.url.contains(fragment, autoescape=True)),
            project_id,
        )
        return await self._run(stmt, f"url CONTAINS {fragment}", limit=limit)
