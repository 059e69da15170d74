"""
StudyBuddy Backend — Circuit Breaker
======================================

What:  Fast-fail guard in front of the model provider.

    closed ──(failure_threshold consecutive failures)──▶ open
    open ──(recovery_timeout elapsed, next call)──▶ half_open
    half_open ──success──▶ closed
    half_open ──failure──▶ open

When `enabled` is False failures are still counted (for /health and logs)
but the breaker stays closed, so every request reaches the provider.

One breaker per LLMService instance, i.e. per worker process. Plain
attributes; all access happens on the worker's event loop.
"""

import logging
import time
from typing import Optional

from studybuddy.exceptions import CircuitBreakerOpenError

logger = logging.getLogger(__name__)


class CircuitBreaker:
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60, enabled: bool = True):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.enabled = enabled
        self.state = self.CLOSED
        self.failure_count = 0
        self.opened_at: Optional[float] = None

    def _move_to(self, state: str, reason: str) -> None:
        if state != self.state:
            logger.warning("Circuit breaker %s → %s (%s)", self.state, state, reason)
        self.state = state
        self.opened_at = time.monotonic() if state == self.OPEN else None

    def retry_after(self) -> int:
        """Whole seconds until an open breaker lets a test call through (min 1)."""
        if self.opened_at is None:
            return 1
        remaining = self.recovery_timeout - (time.monotonic() - self.opened_at)
        return max(int(remaining), 1)

    def can_execute(self) -> bool:
        """Return True if a call may proceed; raise CircuitBreakerOpenError if not."""
        if self.state != self.OPEN:
            return True
        if time.monotonic() - self.opened_at >= self.recovery_timeout:
            self._move_to(self.HALF_OPEN, "recovery timeout elapsed")
            return True
        raise CircuitBreakerOpenError(recovery_time=self.retry_after())

    def record_success(self) -> None:
        self.failure_count = 0
        self._move_to(self.CLOSED, "call succeeded")

    def record_failure(self) -> None:
        self.failure_count += 1
        if not self.enabled:
            return
        if self.state == self.HALF_OPEN:
            self._move_to(self.OPEN, "test call failed")
        elif self.failure_count >= self.failure_threshold:
            self._move_to(self.OPEN, f"{self.failure_count} consecutive failures")
