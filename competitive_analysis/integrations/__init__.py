"""Integrations layer - External service clients.

Integrations handle communication with external APIs and services.
They abstract the details of external service protocols.
"""

from competitive_analysis.integrations.claude import (
    ClaudeClient,
    ClaudeError,
    ClaudeTimeoutError,
    CompletionResult,
    close_claude,
    get_claude,
    init_claude,
)
from competitive_analysis.integrations.scraper import (
    ScrapedPage,
    WebScraperClient,
    close_scraper,
    extract_page,
    get_scraper,
    init_scraper,
)

__all__ = [
    # Claude
    "ClaudeClient",
    "ClaudeError",
    "ClaudeTimeoutError",
    "CompletionResult",
    "close_claude",
    "get_claude",
    "init_claude",
    # Scraper
    "ScrapedPage",
    "WebScraperClient",
    "close_scraper",
    "extract_page",
    "get_scraper",
    "init_scraper",
]
