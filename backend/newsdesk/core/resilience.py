"""
Retry and circuit breaker helpers for outbound HTTP calls

- Exponential backoff: base_delay * 2 ** attempt
- Circuit breaker: opens after N consecutive transient failures, stays open
  for a cool-down period, then lets a single probe through (half-open).
"""
import logging
import threading
import time
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)

# Request Timeout, Too Many Requests and every 5xx are worth retrying
RETRYABLE_STATUS_CODES = frozenset({408, 429})


def is_transient_status(status_code: int) -> bool:
    """Whether an HTTP status should be retried."""
    return status_code in RETRYABLE_STATUS_CODES or status_code >= 500


def is_breaker_failure_status(status_code: int) -> bool:
    """Whether an HTTP status counts against the circuit breaker (429 does not)."""
    return status_code == 408 or status_code >= 500


def backoff_delay(attempt: int, base_delay: float) -> float:
    """
    Delay before retry number `attempt` (0-based).

    Args:
        attempt: retry index, 0 for the first retry
        base_delay: base delay in seconds

    Returns:
        float: seconds to sleep
    """
    return base_delay * (2 ** attempt)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker

    The caller asks `allow_request()` before each attempt and reports the
    outcome with `record_success()` / `record_failure()`. An attempt that
    ends with neither must call `release_probe()`.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        reset_timeout: float = 30.0,
        name: str = "newsapi",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.name = name
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: Optional[float] = None
        self._probe_in_flight = False

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._refresh_state()
            return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def _refresh_state(self) -> None:
        # caller holds the lock
        if self._state == CircuitState.OPEN and self._opened_at is not None:
            if self._clock() - self._opened_at >= self.reset_timeout:
                self._state = CircuitState.HALF_OPEN
                self._probe_in_flight = False
                logger.info(f"Circuit [{self.name}] HALF-OPEN, probing upstream")

    def allow_request(self) -> bool:
        with self._lock:
            self._refresh_state()
            if self._state == CircuitState.CLOSED:
                return True
            if self._state == CircuitState.HALF_OPEN and not self._probe_in_flight:
                self._probe_in_flight = True
                return True
            return False

    def release_probe(self) -> None:
        """Give back a half-open probe that ended without an outcome (e.g. cancelled)."""
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._probe_in_flight = False

    def record_success(self) -> None:
        with self._lock:
            if self._state != CircuitState.CLOSED:
                logger.info(f"Circuit [{self.name}] CLOSED")
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._opened_at = None
            self._probe_in_flight = False

    def record_failure(self) -> None:
        with self._lock:
            self._failure_count += 1
            if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
                self._state = CircuitState.OPEN
                self._opened_at = self._clock()
                self._probe_in_flight = False
                logger.warning(
                    f"Circuit [{self.name}] OPEN for {self.reset_timeout:.0f}s "
                    f"after {self._failure_count} consecutive failures"
                )
