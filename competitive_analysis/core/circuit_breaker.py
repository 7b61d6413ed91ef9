"""Circuit breaker for outbound service calls.

Stops calling a failing service once failure_threshold consecutive
failures are recorded. After recovery_timeout one trial request is let
through (half-open); its outcome closes or re-opens the circuit.
"""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum

from competitive_analysis.core.logging import get_logger

logger = get_logger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject all requests
    HALF_OPEN = "half_open"  # Testing if service recovered


@dataclass
class CircuitBreakerConfig:
    """Circuit breaker configuration."""

    failure_threshold: int
    recovery_timeout: float


class CircuitBreaker:
    """Async-safe circuit breaker keyed by a service name."""

    def __init__(self, config: CircuitBreakerConfig, name: str = "default") -> None:
        self._config = config
        self._name = name
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: float | None = None
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def is_closed(self) -> bool:
        return self._state == CircuitState.CLOSED

    @property
    def is_open(self) -> bool:
        return self._state == CircuitState.OPEN

    @property
    def is_half_open(self) -> bool:
        return self._state == CircuitState.HALF_OPEN

    @property
    def retry_after(self) -> float:
        """Seconds until an open circuit will admit a trial request (0 if not open)."""
        if self._state != CircuitState.OPEN or self._last_failure_time is None:
            return 0.0
        elapsed = time.monotonic() - self._last_failure_time
        return max(0.0, self._config.recovery_timeout - elapsed)

    def _transition(self, new_state: CircuitState) -> None:
        """Move to new_state and log the change."""
        previous_state = self._state
        self._state = new_state
        extra = {
            "circuit_name": self._name,
            "previous_state": previous_state.value,
            "new_state": new_state.value,
            "failure_count": self._failure_count,
        }
        if new_state == CircuitState.OPEN:
            extra["recovery_timeout"] = self._config.recovery_timeout
            logger.warning("Circuit breaker opened", extra=extra)
        else:
            logger.info("Circuit breaker state change", extra=extra)

    async def can_execute(self) -> bool:
        """Check if operation can be executed based on circuit state."""
        async with self._lock:
            if self._state == CircuitState.CLOSED:
                return True

            if self._state == CircuitState.OPEN:
                if self.retry_after <= 0:
                    self._transition(CircuitState.HALF_OPEN)
                    return True
                return False

            # HALF_OPEN: the trial request is already allowed through
            return True

    async def record_success(self) -> None:
        """Record successful operation."""
        async with self._lock:
            self._failure_count = 0
            if self._state == CircuitState.HALF_OPEN:
                self._last_failure_time = None
                self._transition(CircuitState.CLOSED)

    async def record_failure(self) -> None:
        """Record failed operation."""
        async with self._lock:
            self._failure_count += 1
            self._last_failure_time = time.monotonic()

            if self._state == CircuitState.HALF_OPEN or (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self._config.failure_threshold
            ):
                self._transition(CircuitState.OPEN)

    async def reset(self) -> None:
        """Force the circuit closed and clear failure history."""
        async with self._lock:
            self._failure_count = 0
            self._last_failure_time = None
            if self._state != CircuitState.CLOSED:
                self._transition(CircuitState.CLOSED)
