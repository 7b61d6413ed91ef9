"""Application configuration loaded from environment variables.

All configuration is via environment variables (or a local .env file).
No hardcoded URLs, ports, or credentials.
"""

from functools import lru_cache

from pydantic import Field, PostgresDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Competitive Content Analysis Engine")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)
    environment: str = Field(default="development")
    frontend_url: str = Field(
        default="http://localhost:3000", description="Allowed CORS origin"
    )

    # Server
    port: int = Field(default=8000, description="Port to bind to")
    host: str = Field(default="0.0.0.0", description="Host to bind to")

    # Database
    database_url: PostgresDsn = Field(
        ...,
        description="PostgreSQL connection string",
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size")
    db_max_overflow: int = Field(default=10, description="Max overflow connections")
    db_pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    db_slow_query_threshold_ms: int = Field(
        default=100, description="Threshold for slow query warnings (ms)"
    )
    db_connect_timeout: int = Field(
        default=60, description="Connection timeout in seconds"
    )
    db_command_timeout: int = Field(
        default=60, description="Command timeout in seconds"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="json", description="Log format: json or text")

    # Web scraper
    scraper_timeout: float = Field(
        default=30.0, description="Competitor page fetch timeout in seconds"
    )
    scraper_user_agent: str = Field(
        default="Mozilla/5.0 (compatible; CompetitiveAnalysisBot/1.0; +https://example.com/bot)",
        description="User agent sent when fetching competitor pages",
    )
    scraper_min_content_length: int = Field(
        default=100,
        description="Scraped text shorter than this is treated as a failed fetch",
    )
    scraper_max_stored_text: int = Field(
        default=50000, description="Maximum characters of scraped text stored per record"
    )
    scraper_max_stored_html: int = Field(
        default=100000, description="Maximum characters of scraped HTML stored per record"
    )

    # Claude/Anthropic LLM
    anthropic_api_key: str | None = Field(
        default=None,
        description="Anthropic API key for Claude models",
    )
    claude_model: str = Field(
        default="claude-3-haiku-20240307",
        description="Claude model used for gap analysis",
    )
    claude_timeout: float = Field(
        default=60.0, description="Claude API request timeout in seconds"
    )
    claude_max_retries: int = Field(
        default=3, description="Maximum retry attempts for Claude API requests"
    )
    claude_retry_delay: float = Field(
        default=1.0, description="Base delay between retries in seconds"
    )
    claude_max_tokens: int = Field(
        default=4096, description="Maximum tokens in Claude response"
    )
    # Circuit breaker settings for Claude
    claude_circuit_failure_threshold: int = Field(
        default=5, description="Failures before circuit opens"
    )
    claude_circuit_recovery_timeout: float = Field(
        default=60.0, description="Seconds before attempting recovery"
    )

    # Competitive analysis
    analysis_llm_timeout: float = Field(
        default=45.0,
        description="Upper bound in seconds for the whole LLM analysis attempt",
    )
    analysis_refresh_concurrency: int = Field(
        default=3, description="Maximum concurrent competitor refreshes"
    )
    analysis_max_prompt_competitors: int = Field(
        default=10, description="Maximum competitors summarized in the LLM prompt"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
