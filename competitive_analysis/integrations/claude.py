"""Claude/Anthropic LLM integration client for competitive gap analysis.

Features:
- Async HTTP client using httpx (direct Messages API calls)
- Circuit breaker for fault tolerance
- Retry logic with exponential backoff
- Request/response logging per requirements
- Handles timeouts, rate limits (429), auth failures (401/403)
- Token usage logging for quota tracking

complete() never raises for transport or API errors; every failure is
reported through CompletionResult.success/error so callers can fall back.

ERROR LOGGING REQUIREMENTS:
- Log all outbound API calls with model and timing
- Log request/response bodies at DEBUG level (truncate large responses)
- Log and handle: timeouts, rate limits (429), auth failures (401/403)
- Include retry attempt number in logs
- Log API quota/credit usage if available
- Never log API keys
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any

import httpx

from competitive_analysis.core.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
)
from competitive_analysis.core.config import get_settings
from competitive_analysis.core.logging import claude_logger, get_logger

logger = get_logger(__name__)

# Anthropic API base URL
ANTHROPIC_API_URL = "https://api.anthropic.com"
ANTHROPIC_API_VERSION = "2023-06-01"

# Longest Retry-After we are willing to wait inside one request
MAX_RETRY_AFTER_SECONDS = 60


@dataclass
class CompletionResult:
    """Result of a Claude completion request."""

    success: bool
    text: str | None = None
    stop_reason: str | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None
    error: str | None = None
    status_code: int | None = None
    duration_ms: float = 0.0
    request_id: str | None = None


class ClaudeError(Exception):
    """Base exception for Claude API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ClaudeTimeoutError(ClaudeError):
    """Raised when a request times out."""

    pass


def _parse_retry_after(value: str | None) -> float | None:
    """Retry-After in seconds; HTTP-date values are ignored."""
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class ClaudeClient:
    """Async client for the Claude Messages API.

    Provides LLM completions with:
    - Circuit breaker for fault tolerance
    - Retry logic with exponential backoff
    - Comprehensive logging
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        max_tokens: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize Claude client.

        Args:
            api_key: Anthropic API key. Defaults to settings.
            model: Model to use. Defaults to settings.
            timeout: Request timeout in seconds. Defaults to settings.
            max_retries: Maximum attempts per request. Defaults to settings.
            retry_delay: Base delay between retries. Defaults to settings.
            max_tokens: Maximum response tokens. Defaults to settings.
            transport: Optional httpx transport (used by tests).
        """
        settings = get_settings()

        self._api_key = api_key or settings.anthropic_api_key
        self._model = model or settings.claude_model
        self._timeout = timeout or settings.claude_timeout
        self._max_retries = max_retries or settings.claude_max_retries
        self._retry_delay = retry_delay if retry_delay is not None else settings.claude_retry_delay
        self._max_tokens = max_tokens or settings.claude_max_tokens
        self._transport = transport

        self._circuit_breaker = CircuitBreaker(
            CircuitBreakerConfig(
                failure_threshold=settings.claude_circuit_failure_threshold,
                recovery_timeout=settings.claude_circuit_recovery_timeout,
            ),
            name="claude",
        )

        # HTTP client (created lazily)
        self._client: httpx.AsyncClient | None = None
        self._available = bool(self._api_key)

    @property
    def available(self) -> bool:
        """Check if Claude is configured and available."""
        return self._available

    @property
    def model(self) -> str:
        return self._model

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            headers: dict[str, str] = {
                "Content-Type": "application/json",
                "Accept": "application/json",
                "anthropic-version": ANTHROPIC_API_VERSION,
            }
            if self._api_key:
                headers["x-api-key"] = self._api_key

            self._client = httpx.AsyncClient(
                base_url=ANTHROPIC_API_URL,
                headers=headers,
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
        logger.info("Claude client closed")

    def _build_request_body(
        self,
        user_prompt: str,
        system_prompt: str | None,
        max_tokens: int | None,
        temperature: float,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens or self._max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": user_prompt}],
        }
        if system_prompt:
            body["system"] = system_prompt
        return body

    async def _backoff(self, attempt: int, reason: str, **extra: Any) -> bool:
        """Sleep before the next attempt. Returns False when no attempts remain."""
        if attempt >= self._max_retries - 1:
            return False
        delay = self._retry_delay * (2**attempt)
        logger.warning(
            f"Claude request attempt {attempt + 1} {reason}, retrying in {delay}s",
            extra={
                "attempt": attempt + 1,
                "max_retries": self._max_retries,
                "delay_seconds": delay,
                **extra,
            },
        )
        await asyncio.sleep(delay)
        return True

    @staticmethod
    def _parse_success(response_data: dict[str, Any]) -> tuple[str, str | None, dict[str, Any]]:
        """Join text blocks from a Messages API response."""
        blocks = response_data.get("content") or []
        text = "".join(
            block.get("text", "")
            for block in blocks
            if isinstance(block, dict) and block.get("type", "text") == "text"
        )
        return text, response_data.get("stop_reason"), response_data.get("usage") or {}

    async def complete(
        self,
        user_prompt: str,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
        temperature: float = 0.0,
    ) -> CompletionResult:
        """Send a completion request to Claude.

        Args:
            user_prompt: The user message/prompt
            system_prompt: Optional system prompt
            max_tokens: Maximum response tokens (overrides default)
            temperature: Sampling temperature (0.0 = deterministic)

        Returns:
            CompletionResult with response text and metadata
        """
        if not self._available:
            return CompletionResult(
                success=False,
                error="Claude not configured (missing API key)",
            )

        if not await self._circuit_breaker.can_execute():
            claude_logger.graceful_fallback("complete", "Circuit breaker open")
            return CompletionResult(
                success=False,
                error=f"Circuit breaker is open (retry in {self._circuit_breaker.retry_after:.0f}s)",
            )

        start_time = time.monotonic()
        client = await self._get_client()
        request_body = self._build_request_body(
            user_prompt, system_prompt, max_tokens, temperature
        )
        last_error: Exception | None = None
        request_id: str | None = None

        for attempt in range(self._max_retries):
            attempt_start = time.monotonic()

            try:
                claude_logger.api_call_start(
                    self._model,
                    len(user_prompt),
                    retry_attempt=attempt,
                    request_id=request_id,
                )
                claude_logger.request_body(self._model, system_prompt or "", user_prompt)

                response = await client.post("/v1/messages", json=request_body)
                duration_ms = (time.monotonic() - attempt_start) * 1000
                request_id = response.headers.get("request-id")
                status = response.status_code

                if status == 429:
                    retry_after = _parse_retry_after(response.headers.get("retry-after"))
                    claude_logger.rate_limit(
                        self._model, retry_after=retry_after, request_id=request_id
                    )
                    await self._circuit_breaker.record_failure()

                    if (
                        attempt < self._max_retries - 1
                        and retry_after
                        and retry_after <= MAX_RETRY_AFTER_SECONDS
                    ):
                        await asyncio.sleep(retry_after)
                        continue

                    return CompletionResult(
                        success=False,
                        error="Rate limit exceeded",
                        status_code=429,
                        request_id=request_id,
                        duration_ms=duration_ms,
                    )

                if status in (401, 403):
                    claude_logger.api_call_error(
                        self._model,
                        duration_ms,
                        status,
                        "Authentication failed",
                        "AuthError",
                        retry_attempt=attempt,
                        request_id=request_id,
                    )
                    await self._circuit_breaker.record_failure()
                    return CompletionResult(
                        success=False,
                        error=f"Authentication failed ({status})",
                        status_code=status,
                        request_id=request_id,
                        duration_ms=duration_ms,
                    )

                if status >= 500:
                    error_msg = f"Server error ({status})"
                    claude_logger.api_call_error(
                        self._model,
                        duration_ms,
                        status,
                        error_msg,
                        "ServerError",
                        retry_attempt=attempt,
                        request_id=request_id,
                    )
                    await self._circuit_breaker.record_failure()

                    if await self._backoff(
                        attempt, "failed", status_code=status, request_id=request_id
                    ):
                        continue

                    return CompletionResult(
                        success=False,
                        error=error_msg,
                        status_code=status,
                        request_id=request_id,
                        duration_ms=duration_ms,
                    )

                if status >= 400:
                    # Client error - don't retry
                    try:
                        error_body = response.json() if response.content else None
                    except ValueError:
                        error_body = None
                    error_msg = (
                        error_body.get("error", {}).get("message", str(error_body))
                        if isinstance(error_body, dict)
                        else "Client error"
                    )
                    claude_logger.api_call_error(
                        self._model,
                        duration_ms,
                        status,
                        error_msg,
                        "ClientError",
                        retry_attempt=attempt,
                        request_id=request_id,
                    )
                    return CompletionResult(
                        success=False,
                        error=f"Client error ({status}): {error_msg}",
                        status_code=status,
                        request_id=request_id,
                        duration_ms=duration_ms,
                    )

                text, stop_reason, usage = self._parse_success(response.json())
                input_tokens = usage.get("input_tokens")
                output_tokens = usage.get("output_tokens")

                claude_logger.api_call_success(
                    self._model,
                    duration_ms,
                    input_tokens=input_tokens,
                    output_tokens=output_tokens,
                    request_id=request_id,
                )
                claude_logger.response_body(
                    self._model, text, duration_ms, stop_reason=stop_reason
                )

                await self._circuit_breaker.record_success()

                return CompletionResult(
                    success=True,
                    text=text,
                    stop_reason=stop_reason,
                    input_tokens=input_tokens,
                    output_tokens=output_tokens,
                    request_id=request_id,
                    duration_ms=(time.monotonic() - start_time) * 1000,
                )

            except httpx.TimeoutException:
                duration_ms = (time.monotonic() - attempt_start) * 1000
                claude_logger.timeout(self._model, self._timeout)
                claude_logger.api_call_error(
                    self._model,
                    duration_ms,
                    None,
                    "Request timed out",
                    "TimeoutError",
                    retry_attempt=attempt,
                    request_id=request_id,
                )
                await self._circuit_breaker.record_failure()
                last_error = ClaudeTimeoutError(
                    f"Request timed out after {self._timeout}s"
                )
                if await self._backoff(attempt, "timed out"):
                    continue

            except httpx.RequestError as e:
                duration_ms = (time.monotonic() - attempt_start) * 1000
                claude_logger.api_call_error(
                    self._model,
                    duration_ms,
                    None,
                    str(e),
                    type(e).__name__,
                    retry_attempt=attempt,
                    request_id=request_id,
                )
                await self._circuit_breaker.record_failure()
                last_error = ClaudeError(f"Request failed: {e}")
                if await self._backoff(attempt, "failed", error=str(e)):
                    continue

            except ValueError as e:
                # 2xx with a body that is not JSON
                claude_logger.api_call_error(
                    self._model,
                    (time.monotonic() - attempt_start) * 1000,
                    None,
                    f"Invalid JSON response: {e}",
                    "DecodeError",
                    retry_attempt=attempt,
                    request_id=request_id,
                )
                await self._circuit_breaker.record_failure()
                last_error = ClaudeError(f"Invalid JSON response: {e}")
                break

        total_duration_ms = (time.monotonic() - start_time) * 1000
        return CompletionResult(
            success=False,
            error=str(last_error) if last_error else "Request failed after all retries",
            duration_ms=total_duration_ms,
            request_id=request_id,
        )


# Global Claude client instance
claude_client: ClaudeClient | None = None


async def init_claude() -> ClaudeClient:
    """Initialize the global Claude client."""
    global claude_client
    if claude_client is None:
        claude_client = ClaudeClient()
        if claude_client.available:
            logger.info(
                "Claude client initialized",
                extra={"model": claude_client.model},
            )
        else:
            logger.info("Claude not configured (missing API key)")
    return claude_client


async def close_claude() -> None:
    """Close the global Claude client."""
    global claude_client
    if claude_client:
        await claude_client.close()
        claude_client = None


async def get_claude() -> ClaudeClient:
    """Dependency for getting Claude client.

    Usage:
        @router.post("/analyze")
        async def analyze(claude: ClaudeClient = Depends(get_claude)):
            ...
    """
    if claude_client is None:
        await init_claude()
    return claude_client  # type: ignore[return-value]
