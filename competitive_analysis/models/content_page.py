"""ContentPage model for the content being analyzed against competitors.

Rows are written by the content editor; this service only reads them
when resolving an analysis target by URL.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import DateTime, String, Text
from sqlalchemy import text as sa_text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from competitive_analysis.core.database import Base


class ContentPage(Base):
    """A stored content document.

    Attributes:
        id: UUID primary key
        project_id: Owning project, NULL for unassigned drafts
        url: Canonical page URL (as saved by the editor, may not be normalized)
        title: Page title
        text: Plain body text
        keywords: JSONB list of target keywords (strings or keyword objects)
        metrics: JSONB ContentMetrics, NULL until analyzed
        created_at: Timestamp when record was created
        updated_at: Timestamp when record was last updated
    """

    __tablename__ = "content_pages"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
        server_default=sa_text("gen_random_uuid()"),
    )

    project_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        nullable=True,
        index=True,
    )

    url: Mapped[str] = mapped_column(
        String(2048),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        default="",
        server_default=sa_text("''"),
    )

    text: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        server_default=sa_text("''"),
    )

    keywords: Mapped[list[Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default=sa_text("'[]'::jsonb"),
    )

    metrics: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB,
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=sa_text("now()"),
        index=True,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=sa_text("now()"),
        onupdate=lambda: datetime.now(UTC),
    )

    def __repr__(self) -> str:
        return f"<ContentPage(id={self.id!r}, url={self.url!r})>"
