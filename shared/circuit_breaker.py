"""
Circuit breaker pattern implementation for resilient collaborator calls.
"""

import threading
import time
from enum import Enum
from typing import Dict, Any, Callable, Tuple, Type

from shared.errors import CircuitBreakerOpenError
from shared.logging import get_logger


class CircuitBreakerState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"      # Normal operation
    OPEN = "open"          # Failing, requests blocked
    HALF_OPEN = "half_open"  # Testing if collaborator recovered


class CircuitBreaker:
    """Synchronous circuit breaker.

    Exceptions listed in ``ignored_exceptions`` pass through without
    counting as failures; lookups use this for not-found answers.
    """

    def __init__(self,
                 failure_threshold: int = 5,
                 recovery_timeout: float = 60.0,
                 ignored_exceptions: Tuple[Type[BaseException], ...] = (),
                 name: str = "default",
                 clock: Callable[[], float] = time.monotonic):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.ignored_exceptions = ignored_exceptions
        self.name = name
        self.logger = get_logger(f"post_access.circuit_breaker.{name}")
        self._clock = clock
        self._lock = threading.Lock()

        self._state = CircuitBreakerState.CLOSED
        self._failure_count = 0
        self._last_failure_time = 0.0
        self._success_count = 0

    @property
    def state(self) -> CircuitBreakerState:
        return self._state

    def _can_attempt_reset(self) -> bool:
        """Check if enough time has passed to attempt a reset."""
        return (self._clock() - self._last_failure_time) >= self.recovery_timeout

    def _should_attempt_call(self) -> bool:
        """Determine if a call should be attempted based on current state."""
        with self._lock:
            if self._state == CircuitBreakerState.CLOSED:
                return True
            if self._state == CircuitBreakerState.OPEN:
                if self._can_attempt_reset():
                    self._state = CircuitBreakerState.HALF_OPEN
                    self.logger.info("Circuit breaker transitioning to half-open")
                    return True
                return False
            return True

    def call(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        """Execute function with circuit breaker protection."""
        if not self._should_attempt_call():
            raise CircuitBreakerOpenError(self.name)

        try:
            result = func(*args, **kwargs)
        except self.ignored_exceptions:
            self._record_success()
            raise
        except Exception:
            self._record_failure()
            raise

        self._record_success()
        return result

    def _record_success(self):
        with self._lock:
            if self._state == CircuitBreakerState.HALF_OPEN:
                self._state = CircuitBreakerState.CLOSED
                self.logger.info("Circuit breaker reset to CLOSED after successful call")
            self._failure_count = 0
            self._success_count += 1

    def _record_failure(self):
        """Record a failure and update state."""
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = self._clock()
            self._success_count = 0

            if (self._state == CircuitBreakerState.HALF_OPEN
                    or self._failure_count >= self.failure_threshold):
                self._state = CircuitBreakerState.OPEN
                self.logger.warning(
                    "Circuit breaker opened due to failures",
                    failure_count=self._failure_count,
                    threshold=self.failure_threshold
                )

    def get_state(self) -> Dict[str, Any]:
        """Get current circuit breaker state."""
        return {
            "name": self.name,
            "state": self._state.value,
            "failure_count": self._failure_count,
            "success_count": self._success_count,
            "last_failure_time": self._last_failure_time,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout": self.recovery_timeout
        }

    def is_open(self) -> bool:
        """Check if circuit breaker is in OPEN state."""
        return self._state == CircuitBreakerState.OPEN
