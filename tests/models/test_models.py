"""Tests for ORM models: text columns, Python-side defaults and round trips."""

from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from competitive_analysis.models import CompetitiveAnalysis, Competitor, ContentPage

# ---------------------------------------------------------------------------
# Column definitions
# ---------------------------------------------------------------------------


class TestTextColumns:
    """Models that map a `text` column still carry SQL server defaults."""

    def test_competitor_text_column(self):
        column = Competitor.__table__.c.text

        assert column.nullable is True
        assert Competitor.__table__.c.title.server_default.arg.text == "''"

    def test_content_page_text_column(self):
        column = ContentPage.__table__.c.text

        assert column.nullable is False
        assert column.server_default.arg.text == "''"


# ---------------------------------------------------------------------------
# Defaults and round trips
# ---------------------------------------------------------------------------


class TestCompetitorDefaults:
    """Verify Python-side defaults on the Competitor model."""

    async def test_defaults(self, db_session: AsyncSession):
        competitor = Competitor(project_id=str(uuid4()), url="https://a.com/x")
        db_session.add(competitor)
        await db_session.flush()

        assert competitor.id
        assert competitor.title == ""
        assert competitor.keywords == []
        assert competitor.strengths == []
        assert competitor.created_at is not None

    async def test_text_round_trip(self, db_session: AsyncSession):
        competitor = Competitor(
            project_id=str(uuid4()),
            url="https://a.com/x",
            text="Trail shoes for beginners.",
            html="<p>Trail shoes for beginners.</p>",
        )
        db_session.add(competitor)
        await db_session.commit()

        stored = await db_session.scalar(
            select(Competitor).where(Competitor.id == competitor.id)
        )

        assert stored is not None
        assert stored.text == "Trail shoes for beginners."


class TestContentPageDefaults:
    """Verify Python-side defaults on the ContentPage model."""

    async def test_defaults(self, db_session: AsyncSession):
        page = ContentPage(project_id=str(uuid4()), url="https://mysite.com/a")
        db_session.add(page)
        await db_session.flush()

        assert page.id
        assert page.text == ""
        assert page.keywords == []
        assert page.updated_at is not None


class TestCompetitiveAnalysisModel:
    """Snapshots persist alongside the other tables."""

    async def test_create(self, db_session: AsyncSession):
        snapshot = CompetitiveAnalysis(
            project_id=str(uuid4()),
            content_url="https://mysite.com/a",
            source="fallback",
            result={"contentGaps": []},
        )
        db_session.add(snapshot)
        await db_session.flush()

        assert snapshot.id
        assert snapshot.created_at is not None
