"""Web scraper integration for fetching competitor pages.

Fetches a single page over HTTP and reduces it to title, plain text and
raw markup. Script, style and noscript elements are removed before text
extraction and whitespace is collapsed.

fetch() never raises: network errors, timeouts and non-2xx responses
return None so the competitor manager can store a fallback record.

ERROR LOGGING REQUIREMENTS:
- Log all outbound fetches with target URL and timing
- Log and handle: timeouts, non-2xx responses, connection errors
"""

import asyncio
import re
import time
from dataclasses import dataclass

import httpx
from bs4 import BeautifulSoup

from competitive_analysis.core.config import get_settings
from competitive_analysis.core.logging import get_logger, scraper_logger

logger = get_logger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_STRIPPED_TAGS = ("script", "style", "noscript")


@dataclass
class ScrapedPage:
    """A fetched page reduced to the parts the metrics engine needs."""

    url: str
    title: str
    text: str
    html: str
    status_code: int = 200
    duration_ms: float = 0.0


def extract_page(url: str, html: str, status_code: int = 200) -> ScrapedPage:
    """Parse markup into title and whitespace-collapsed visible text."""
    soup = BeautifulSoup(html, "html.parser")

    title = ""
    if soup.title and soup.title.string:
        title = _WHITESPACE_RE.sub(" ", soup.title.string).strip()

    for tag in soup(_STRIPPED_TAGS):
        tag.decompose()

    body = soup.body or soup
    text = _WHITESPACE_RE.sub(" ", body.get_text(separator=" ")).strip()

    return ScrapedPage(
        url=url,
        title=title,
        text=text,
        html=html,
        status_code=status_code,
    )


class WebScraperClient:
    """Async single-page fetcher using httpx and BeautifulSoup."""

    def __init__(
        self,
        timeout: float | None = None,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize scraper.

        Args:
            timeout: Overall fetch timeout in seconds. Defaults to settings.
            user_agent: User-Agent header. Defaults to settings.
            transport: Optional httpx transport (used by tests).
        """
        settings = get_settings()
        self._timeout = timeout or settings.scraper_timeout
        self._user_agent = user_agent or settings.scraper_user_agent
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def timeout(self) -> float:
        return self._timeout

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                headers={
                    "User-Agent": self._user_agent,
                    "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
                },
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str) -> ScrapedPage | None:
        """Fetch and parse a page.

        Args:
            url: Absolute page URL

        Returns:
            ScrapedPage, or None on timeout, network error or non-2xx status
        """
        start_time = time.monotonic()
        scraper_logger.fetch_start(url)
        client = await self._get_client()

        try:
            # Bounds the whole exchange, including slow-drip bodies
            response = await asyncio.wait_for(client.get(url), timeout=self._timeout)
        except (TimeoutError, httpx.TimeoutException):
            scraper_logger.timeout(url, self._timeout)
            return None
        except httpx.HTTPError as e:
            scraper_logger.fetch_error(
                url,
                (time.monotonic() - start_time) * 1000,
                str(e),
                type(e).__name__,
            )
            return None

        duration_ms = (time.monotonic() - start_time) * 1000

        if not response.is_success:
            scraper_logger.fetch_error(
                url,
                duration_ms,
                f"HTTP {response.status_code}",
                "HTTPStatusError",
                status_code=response.status_code,
            )
            return None

        page = extract_page(str(response.url), response.text, response.status_code)
        page.duration_ms = duration_ms
        scraper_logger.fetch_success(url, duration_ms, response.status_code, len(page.text))
        return page


# Global scraper instance
scraper_client: WebScraperClient | None = None


async def init_scraper() -> WebScraperClient:
    """Initialize the global scraper client."""
    global scraper_client
    if scraper_client is None:
        scraper_client = WebScraperClient()
        logger.info(
            "Web scraper initialized",
            extra={"timeout_seconds": scraper_client.timeout},
        )
    return scraper_client


async def close_scraper() -> None:
    """Close the global scraper client."""
    global scraper_client
    if scraper_client:
        await scraper_client.close()
        scraper_client = None


async def get_scraper() -> WebScraperClient:
    """Dependency for getting the scraper client."""
    if scraper_client is None:
        await init_scraper()
    return scraper_client  # type: ignore[return-value]
