"""Unit tests for the web scraper integration.

Tests cover:
- extract_page() title and visible-text extraction
- fetch() success, redirects and request headers
- fetch() returning None for non-2xx, timeouts and connection errors
"""

import httpx
import pytest

from competitive_analysis.integrations.scraper import WebScraperClient, extract_page

PAGE = """<html><head><title>
  Trail   Shoes Guide </title>
<style>body { color: red; }</style>
<script>var tracking = "ignore me";</script>
</head>
<body>
<h1>Trail shoes</h1>
<noscript>Enable JavaScript</noscript>
<p>Grip   and
cushioning matter.</p>
</body></html>"""


def make_scraper(handler) -> WebScraperClient:
    return WebScraperClient(
        timeout=5.0,
        user_agent="TestBot/1.0",
        transport=httpx.MockTransport(handler),
    )


class TestExtractPage:
    """Test markup reduction."""

    def test_title_and_text(self) -> None:
        page = extract_page("https://a.com/", PAGE)

        assert page.title == "Trail Shoes Guide"
        assert page.text == "Trail shoes Grip and cushioning matter."
        assert page.html == PAGE
        assert page.status_code == 200

    def test_missing_title_and_body(self) -> None:
        page = extract_page("https://a.com/", "<div>Just   a fragment</div>")

        assert page.title == ""
        assert page.text == "Just a fragment"


class TestFetch:
    """Test fetch() against a mock transport."""

    @pytest.mark.asyncio
    async def test_success(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text=PAGE, headers={"Content-Type": "text/html"})

        scraper = make_scraper(handler)
        page = await scraper.fetch("https://a.com/guide")
        await scraper.close()

        assert page is not None
        assert page.url == "https://a.com/guide"
        assert page.title == "Trail Shoes Guide"
        assert page.duration_ms >= 0
        assert seen[0].headers["User-Agent"] == "TestBot/1.0"

    @pytest.mark.asyncio
    async def test_follows_redirects(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": "https://a.com/new"})
            return httpx.Response(200, text=PAGE)

        scraper = make_scraper(handler)
        page = await scraper.fetch("https://a.com/old")

        assert page is not None
        assert page.url == "https://a.com/new"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [404, 500, 503])
    async def test_error_status(self, status_code: int) -> None:
        scraper = make_scraper(lambda request: httpx.Response(status_code, text=PAGE))

        assert await scraper.fetch("https://a.com/") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            httpx.ConnectError("refused"),
            httpx.ReadTimeout("slow"),
            httpx.TooManyRedirects("loop"),
        ],
    )
    async def test_transport_errors(self, error: Exception) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise error

        scraper = make_scraper(handler)

        assert await scraper.fetch("https://a.com/") is None

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self) -> None:
        scraper = make_scraper(lambda request: httpx.Response(200, text=PAGE))
        await scraper.fetch("https://a.com/")

        await scraper.close()
        await scraper.close()

        assert scraper.timeout == 5.0
