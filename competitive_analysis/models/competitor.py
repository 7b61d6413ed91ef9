"""Competitor model for tracked competitor pages and their metrics.

The Competitor model represents one competitor page within a project:
- url: Normalized competitor page URL (unique per project)
- title: Display title (scraped <title> or hostname)
- metrics: JSONB ContentMetrics (word count, readability, tag counts)
- keywords / strengths: JSONB lists produced by the metrics engine
- text / html: Truncated scraped content, kept for recomputation
- Timestamps for auditing
"""

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import DateTime, String, Text, UniqueConstraint
from sqlalchemy import text as sa_text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from competitive_analysis.core.database import Base


class Competitor(Base):
    """Competitor page with computed content metrics.

    Attributes:
        id: UUID primary key
        project_id: Reference to the owning project
        url: The competitor page URL (normalized)
        title: Display title, truncated to 53 characters
        metrics: JSONB metrics, NULL until computed
        keywords: JSONB list of keyword objects
        strengths: JSONB list of strength descriptions
        text: Scraped plain text (truncated)
        html: Scraped markup (truncated)
        created_at: Timestamp when record was created
        updated_at: Timestamp when record was last updated

    Example metrics structure:
        {
            "wordCount": 1250,
            "readabilityScore": 58.4,
            "keywordDensity": 1.12,
            "headingCount": 6,
            "imageCount": 3,
            "linkCount": 14,
            "paragraphCount": 22
        }
    """

    __tablename__ = "competitors"
    __table_args__ = (
        UniqueConstraint("project_id", "url", name="uq_competitors_project_url"),
    )

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

    url: Mapped[str] = mapped_column(
        String(2048),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
        server_default=sa_text("''"),
    )

    metrics: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB,
        nullable=True,
    )

    keywords: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default=sa_text("'[]'::jsonb"),
    )

    strengths: Mapped[list[str]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default=sa_text("'[]'::jsonb"),
    )

    text: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    html: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=sa_text("now()"),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=sa_text("now()"),
        onupdate=lambda: datetime.now(UTC),
    )

    def __repr__(self) -> str:
        return f"<Competitor(id={self.id!r}, url={self.url!r})>"
