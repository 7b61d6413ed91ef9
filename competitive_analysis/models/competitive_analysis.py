"""CompetitiveAnalysis model for persisted gap analysis reports.

Each analysis run stores a snapshot of its GapAnalysisResult so reports
can be revisited without recomputation.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import DateTime, String
from sqlalchemy import text as sa_text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from competitive_analysis.core.database import Base


class CompetitiveAnalysis(Base):
    """Snapshot of one competitive analysis run.

    Attributes:
        id: UUID primary key
        project_id: Owning project
        content_id: Resolved target content, NULL if the target was not found
        content_url: URL the analysis was requested for
        source: Path that produced the report (llm, fallback, ...)
        result: JSONB GapAnalysisResult (camelCase keys)
        created_at: Timestamp of the run
    """

    __tablename__ = "competitive_analyses"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
        server_default=sa_text("gen_random_uuid()"),
    )

    project_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        nullable=False,
        index=True,
    )

    content_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        nullable=True,
    )

    content_url: Mapped[str] = mapped_column(
        String(2048),
        nullable=False,
    )

    source: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
    )

    result: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        server_default=sa_text("'{}'::jsonb"),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=sa_text("now()"),
        index=True,
    )

    def __repr__(self) -> str:
        return (
            f"<CompetitiveAnalysis(id={self.id!r}, project_id={self.project_id!r}, "
            f"source={self.source!r})>"
        )
