"""CompetitiveAnalysisRepository for persisted analysis snapshots.

ERROR LOGGING REQUIREMENTS:
- Log all exceptions with full stack trace and context
- Include entity IDs (project_id, analysis_id) in all logs
- Add timing logs for operations >1 second
"""

import time
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from competitive_analysis.core.logging import db_logger, get_logger
from competitive_analysis.models.competitive_analysis import CompetitiveAnalysis

logger = get_logger(__name__)


class CompetitiveAnalysisRepository:
    """Repository for CompetitiveAnalysis snapshots."""

    TABLE_NAME = "competitive_analyses"
    SLOW_OPERATION_THRESHOLD_MS = 1000  # 1 second

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        project_id: str,
        content_url: str,
        result: dict[str, Any],
        source: str | None = None,
        content_id: str | None = None,
    ) -> CompetitiveAnalysis:
        """Store an analysis snapshot.

        Raises:
            SQLAlchemyError: On database errors
        """
        start_time = time.monotonic()

        try:
            analysis = CompetitiveAnalysis(
                project_id=project_id,
                content_id=content_id,
                content_url=content_url[:2048],
                source=source,
                result=result,
            )
            self.session.add(analysis)
            await self.session.flush()

            duration_ms = (time.monotonic() - start_time) * 1000
            if duration_ms > self.SLOW_OPERATION_THRESHOLD_MS:
                db_logger.slow_query(
                    query="INSERT INTO competitive_analyses",
                    duration_ms=duration_ms,
                    table=self.TABLE_NAME,
                )
            logger.info(
                "Competitive analysis stored",
                extra={
                    "analysis_id": analysis.id,
                    "project_id": project_id,
                    "source": source,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            return analysis

        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e,
                table=self.TABLE_NAME,
                context=f"Storing analysis for project_id={project_id}",
            )
            raise

    async def list_by_project(
        self, project_id: str, limit: int = 20
    ) -> list[CompetitiveAnalysis]:
        """Most recent analyses for a project, newest first.

        Raises:
            SQLAlchemyError: On database errors
        """
        try:
            result = await self.session.execute(
                select(CompetitiveAnalysis)
                .where(CompetitiveAnalysis.project_id == project_id)
                .order_by(CompetitiveAnalysis.created_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

        except SQLAlchemyError as e:
            logger.error(
                "Failed to list competitive analyses",
                extra={
                    "project_id": project_id,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )
            raise
