"""Core utilities and configuration."""

from competitive_analysis.core.config import Settings, get_settings
from competitive_analysis.core.database import Base, db_manager, get_session, transaction
from competitive_analysis.core.logging import (
    analysis_logger,
    claude_logger,
    db_logger,
    get_logger,
    scraper_logger,
    setup_logging,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Database
    "Base",
    "db_manager",
    "get_session",
    "transaction",
    # Logging
    "analysis_logger",
    "claude_logger",
    "db_logger",
    "get_logger",
    "scraper_logger",
    "setup_logging",
]
