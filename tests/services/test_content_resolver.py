"""Tests for ContentResolver.

Covers the lookup cascade against an in-memory database:
- exact variants (trailing slash, missing scheme) and the exact flag
- case-insensitive match
- domain match with path similarity vs newest fallback
- fragment match
- project scoping
- failing strategies are skipped, never raised
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from competitive_analysis.models.content_page import ContentPage
from competitive_analysis.repositories.content import ContentRepository
from competitive_analysis.services.content_resolver import (
    ContentResolver,
    to_content_record,
)

PROJECT_ID = str(uuid4())
OTHER_PROJECT_ID = str(uuid4())
BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


async def add_page(
    session: AsyncSession,
    url: str,
    project_id: str | None = PROJECT_ID,
    age_days: int = 0,
    text: str = "Body text",
) -> ContentPage:
    """Insert a content page; larger age_days means older."""
    page = ContentPage(
        id=str(uuid4()),
        project_id=project_id,
        url=url,
        title="Page",
        text=text,
        keywords=["trail shoes"],
        created_at=BASE_TIME - timedelta(days=age_days),
        updated_at=BASE_TIME - timedelta(days=age_days),
    )
    session.add(page)
    await session.commit()
    return page


@pytest.fixture
def resolver(db_session: AsyncSession) -> ContentResolver:
    return ContentResolver(ContentRepository(db_session), project_id=PROJECT_ID)


# ---------------------------------------------------------------------------
# Exact
# ---------------------------------------------------------------------------


class TestExactStrategy:
    """Test exact-variant matching."""

    @pytest.mark.asyncio
    async def test_identical_url_is_exact(
        self, db_session: AsyncSession, resolver: ContentResolver
    ) -> None:
        page = await add_page(db_session, "https://example.com/blog/post")

        resolved = await resolver.resolve("https://example.com/blog/post")

        assert resolved is not None
        assert resolved.strategy == "exact"
        assert resolved.exact is True
        assert resolved.record.id == page.id

    @pytest.mark.asyncio
    async def test_variant_match_is_not_exact(
        self, db_session: AsyncSession, resolver: ContentResolver
    ) -> None:
        """Missing scheme and trailing slash still match, but not exactly."""
        await add_page(db_session, "https://example.com/blog/post")

        resolved = await resolver.resolve("  example.com/blog/post/  ")

        assert resolved is not None
        assert resolved.strategy == "exact"
        assert resolved.exact is False

    @pytest.mark.asyncio
    async def test_stored_trailing_slash_matches(
        self, db_session: AsyncSession, resolver: ContentResolver
    ) -> None:
        await add_page(db_session, "https://example.com/blog/post/")

        resolved = await resolver.resolve("https://example.com/blog/post")

        assert resolved is not None
        assert resolved.strategy == "exact"
        assert resolved.record.url == "https://example.com/blog/post/"

    @pytest.mark.asyncio
    async def test_newest_duplicate_wins(
        self, db_session: AsyncSession, resolver: ContentResolver
    ) -> None:
        await add_page(db_session, "https://example.com/a", age_days=5)
        newest = await add_page(db_session, "https://example.com/a", age_days=1)

        resolved = await resolver.resolve("https://example.com/a")

        assert resolved is not None
        assert resolved.record.id == newest.id


# ---------------------------------------------------------------------------
# Looser strategies
# ---------------------------------------------------------------------------


class TestLooseStrategies:
    """Test ignore_case, domain and fragment matching."""

    @pytest.mark.asyncio
    async def test_ignore_case(
        self, db_session: AsyncSession, resolver: ContentResolver
    ) -> None:
        await add_page(db_session, "https://example.com/Blog/Post")

        resolved = await resolver.resolve("https://example.com/blog/post")

        assert resolved is not None
        assert resolved.strategy == "ignore_case"
        assert resolved.exact is False

    @pytest.mark.asyncio
    async def test_domain_prefers_similar_path(
        self, db_session: AsyncSession, resolver: ContentResolver
    ) -> None:
        similar = await add_page(
            db_session, "https://example.com/guides/shoes/trail", age_days=10
        )
        await add_page(db_session, "https://example.com/about", age_days=1)

        resolved = await resolver.resolve("https://example.com/guides/shoes/road")

        assert resolved is not None
        assert resolved.strategy == "domain"
        assert resolved.record.id == similar.id

    @pytest.mark.asyncio
    async def test_domain_falls_back_to_newest(
        self, db_session: AsyncSession, resolver: ContentResolver
    ) -> None:
        """Half-matching paths do not beat the newest candidate."""
        await add_page(db_session, "https://example.com/blog/other-post", age_days=10)
        newest = await add_page(db_session, "https://example.com/about", age_days=1)

        resolved = await resolver.resolve("https://example.com/blog/new-post")

        assert resolved is not None
        assert resolved.strategy == "domain"
        assert resolved.record.id == newest.id

    @pytest.mark.asyncio
    async def test_fragment(
        self, db_session: AsyncSession, resolver: ContentResolver
    ) -> None:
        page = await add_page(db_session, "https://shop.example.org/best-trail-shoes-2024")

        resolved = await resolver.resolve("http://other.com/best-trail-shoes-2024")

        assert resolved is not None
        assert resolved.strategy == "fragment"
        assert resolved.record.id == page.id

    @pytest.mark.asyncio
    async def test_like_wildcards_match_literally(
        self, db_session: AsyncSession, resolver: ContentResolver
    ) -> None:
        await add_page(db_session, "https://example.com/abc")

        assert await resolver.resolve("https://exa_ple.com/x") is None


# ---------------------------------------------------------------------------
# Scoping and not-found
# ---------------------------------------------------------------------------


class TestScopingAndMisses:
    """Test project scoping and empty results."""

    @pytest.mark.asyncio
    async def test_other_project_not_visible(
        self, db_session: AsyncSession, resolver: ContentResolver
    ) -> None:
        await add_page(db_session, "https://example.com/a", project_id=OTHER_PROJECT_ID)

        assert await resolver.resolve("https://example.com/a") is None

    @pytest.mark.asyncio
    async def test_unscoped_resolver_sees_all(self, db_session: AsyncSession) -> None:
        await add_page(db_session, "https://example.com/a", project_id=OTHER_PROJECT_ID)

        resolved = await ContentResolver(ContentRepository(db_session)).resolve(
            "https://example.com/a"
        )

        assert resolved is not None

    @pytest.mark.asyncio
    async def test_no_match(
        self, db_session: AsyncSession, resolver: ContentResolver
    ) -> None:
        await add_page(db_session, "https://example.com/a")

        assert await resolver.resolve("https://unrelated.net/x") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["", "   "])
    async def test_empty_input(self, resolver: ContentResolver, url: str) -> None:
        assert await resolver.resolve(url) is None


# ---------------------------------------------------------------------------
# Failure handling
# ---------------------------------------------------------------------------


class TestFailureHandling:
    """Failing lookups are logged and skipped."""

    @staticmethod
    def _page(url: str) -> ContentPage:
        return ContentPage(id=str(uuid4()), url=url, title="", text="", keywords=[])

    @pytest.mark.asyncio
    async def test_failing_strategy_is_skipped(self) -> None:
        db_error = OperationalError("SELECT", {}, Exception("connection lost"))
        repository = MagicMock(spec=ContentRepository)
        repository.find_by_exact_url = AsyncMock(side_effect=db_error)
        repository.find_by_url_ignoring_case = AsyncMock(
            return_value=self._page("https://example.com/a")
        )

        resolved = await ContentResolver(repository).resolve("https://example.com/a")

        assert resolved is not None
        assert resolved.strategy == "ignore_case"

    @pytest.mark.asyncio
    async def test_all_strategies_failing_returns_none(self) -> None:
        db_error = OperationalError("SELECT", {}, Exception("connection lost"))
        repository = MagicMock(spec=ContentRepository)
        repository.find_by_exact_url = AsyncMock(side_effect=db_error)
        repository.find_by_url_ignoring_case = AsyncMock(side_effect=db_error)
        repository.find_containing = AsyncMock(side_effect=db_error)

        assert await ContentResolver(repository).resolve("https://example.com/a") is None

    @pytest.mark.asyncio
    async def test_fragments_come_from_normalized_url(self) -> None:
        repository = MagicMock(spec=ContentRepository)
        repository.find_by_exact_url = AsyncMock(return_value=None)
        repository.find_by_url_ignoring_case = AsyncMock(return_value=None)
        repository.find_containing = AsyncMock(return_value=[])

        resolved = await ContentResolver(repository).resolve(
            "HTTPS://WWW.Shop.Example.org/Trail-Guide/?utm_source=newsletter"
        )

        assert resolved is None
        searched = [call.args[0] for call in repository.find_containing.call_args_list]
        # First lookup is the domain strategy's hostname search
        assert searched == ["www.shop.example.org", "shop.example.org", "Trail-Guide"]


class TestToContentRecord:
    """Test ContentPage -> ContentRecord conversion."""

    def test_converts_metrics(self) -> None:
        page = ContentPage(
            id="c1",
            url="https://example.com/a",
            title=None,
            text="Some text",
            keywords=["shoes"],
            metrics={"wordCount": 2, "readabilityScore": 50.0},
        )

        record = to_content_record(page)

        assert record.title == ""
        assert record.metrics is not None
        assert record.metrics.word_count == 2
        assert record.keyword_terms() == {"shoes"}

    def test_missing_metrics(self) -> None:
        page = ContentPage(id="c1", url="https://example.com/a", text="", keywords=None)

        record = to_content_record(page)

        assert record.metrics is None
        assert record.keywords == []
