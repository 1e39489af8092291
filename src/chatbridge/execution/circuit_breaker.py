"""Circuit breaker pattern for resilient provider calls.

Implements the circuit breaker pattern to stop calling a provider that is
already failing, giving it time to recover.

The circuit breaker has three states:
- CLOSED: Normal operation, requests flow through
- OPEN: Requests are rejected with CircuitOpenError without being invoked
- HALF_OPEN: Exactly one trial request is admitted to test recovery

State transitions:
- CLOSED -> OPEN: When consecutive failures reach failure_threshold
- OPEN -> HALF_OPEN: On the first call after reset_timeout_ms has elapsed
  since the last failure (checked lazily, there is no background timer)
- HALF_OPEN -> CLOSED: When the trial call succeeds
- HALF_OPEN -> OPEN: When the trial call fails

Example usage:
    from chatbridge.execution import CircuitBreaker

    breaker = CircuitBreaker(failure_threshold=5, reset_timeout_ms=60_000, name="openai")

    reply = await breaker.call(lambda: client.chat(prompt))

    @breaker.protect
    async def complete(prompt: str) -> str: ...
"""

from __future__ import annotations

import functools
import math
import time
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from enum import Enum
from threading import Lock
from typing import Any, ParamSpec, TypeVar

from chatbridge.core.config import CircuitBreakerConfig
from chatbridge.core.constants import DEFAULT_FAILURE_THRESHOLD, DEFAULT_RESET_TIMEOUT_MS
from chatbridge.core.errors import CircuitOpenError
from chatbridge.core.logging import ChatbridgeLogger, get_logger

T = TypeVar("T")
P = ParamSpec("P")

ClockFn = Callable[[], float]
"""Monotonic clock returning milliseconds."""


def monotonic_ms() -> float:
    return time.monotonic() * 1000


class CircuitState(str, Enum):
    """State of the circuit breaker."""

    CLOSED = "closed"
    """Normal operation - requests are allowed and failures are counted."""

    OPEN = "open"
    """Blocking calls - requests are rejected until the reset timeout elapses."""

    HALF_OPEN = "half-open"
    """Testing recovery - one trial request is allowed through."""


@dataclass
class CircuitBreakerStats:
    """Statistics for circuit breaker monitoring."""

    total_successes: int = 0
    """Total number of successful calls recorded."""

    total_failures: int = 0
    """Total number of failed calls recorded."""

    total_rejections: int = 0
    """Calls rejected without being invoked."""

    times_opened: int = 0
    """Number of transitions to OPEN."""

    times_half_opened: int = 0
    """Number of transitions to HALF_OPEN."""

    times_closed: int = 0
    """Number of transitions to CLOSED from another state."""

    last_failure_at: float | None = None
    """Clock reading (ms) of the most recent failure."""

    last_state_change_at: float | None = None
    """Clock reading (ms) of the most recent state transition."""

    def to_dict(self) -> dict[str, Any]:
        """Convert stats to dictionary for logging/serialization."""
        return asdict(self)


@dataclass(frozen=True)
class _Permit:
    """Admission token; ``trial`` marks the single half-open probe."""

    trial: bool


class CircuitBreaker:
    """Circuit breaker guarding one collaborator (typically one provider).

    Safe to share between asyncio tasks and threads: every admission decision
    and every outcome update happens under one lock, and the lock is never
    held across an await.

    Operation exceptions propagate unchanged; only rejections raise
    CircuitOpenError.
    """

    def __init__(
        self,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        reset_timeout_ms: int = DEFAULT_RESET_TIMEOUT_MS,
        name: str = "default",
        *,
        clock: ClockFn | None = None,
        logger: ChatbridgeLogger | None = None,
    ) -> None:
        """Initialize circuit breaker.

        Args:
            failure_threshold: Consecutive failures that open the circuit.
            reset_timeout_ms: Milliseconds in OPEN before a trial call is admitted.
            name: Name for this breaker (used in logging and rejections).
            clock: Monotonic clock in milliseconds. Defaults to time.monotonic.
            logger: Logger for state changes. Defaults to get_logger("circuit_breaker").

        Raises:
            ValueError: If failure_threshold < 1 or reset_timeout_ms <= 0.
        """
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if reset_timeout_ms <= 0:
            raise ValueError("reset_timeout_ms must be positive")

        self._failure_threshold = failure_threshold
        self._reset_timeout_ms = reset_timeout_ms
        self._name = name
        self._clock: ClockFn = clock or monotonic_ms
        self._logger = logger or get_logger("circuit_breaker")

        # State (protected by lock)
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_at: float | None = None
        self._trial_in_flight = False
        self._stats = CircuitBreakerStats()

        self._lock = Lock()

        self._logger.debug(
            "circuit_breaker.initialized",
            name=name,
            failure_threshold=failure_threshold,
            reset_timeout_ms=reset_timeout_ms,
        )

    @classmethod
    def from_config(
        cls,
        config: CircuitBreakerConfig,
        name: str = "default",
        *,
        clock: ClockFn | None = None,
        logger: ChatbridgeLogger | None = None,
    ) -> CircuitBreaker:
        return cls(
            failure_threshold=config.failure_threshold,
            reset_timeout_ms=config.reset_timeout_ms,
            name=name,
            clock=clock,
            logger=logger,
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def failure_threshold(self) -> int:
        return self._failure_threshold

    @property
    def reset_timeout_ms(self) -> int:
        return self._reset_timeout_ms

    @property
    def state(self) -> CircuitState:
        """Current state, after applying any due OPEN -> HALF_OPEN transition."""
        with self._lock:
            self._maybe_transition_to_half_open()
            return self._state

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failure_count

    @property
    def last_failure_at(self) -> float | None:
        with self._lock:
            return self._last_failure_at

    def time_until_retry_ms(self) -> int | None:
        """Milliseconds until a trial call will be admitted, or None if not OPEN."""
        with self._lock:
            return self._remaining_open_ms()

    async def call(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Invoke ``operation`` through the breaker.

        Raises:
            CircuitOpenError: If the circuit is open, or half-open with the
                trial call already in flight. ``operation`` is not invoked.
        """
        permit = self._admit()
        try:
            result = await operation()
        except Exception:
            self._record_failure(permit)
            raise
        except BaseException:
            # Cancelled: free the trial slot without judging the provider.
            self._release(permit)
            raise
        self._record_success(permit)
        return result

    def protect(self, func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        """Decorator routing every call of an async function through ``call``."""

        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            return await self.call(lambda: func(*args, **kwargs))

        return wrapper

    def get_stats(self) -> CircuitBreakerStats:
        """Copy of the current statistics."""
        with self._lock:
            return CircuitBreakerStats(**asdict(self._stats))

    # ------------------------------------------------------------------
    # Internals. Everything below expects the lock to be held unless it
    # takes it itself.
    # ------------------------------------------------------------------

    def _admit(self) -> _Permit:
        with self._lock:
            self._maybe_transition_to_half_open()

            if self._state == CircuitState.CLOSED:
                return _Permit(trial=False)

            if self._state == CircuitState.HALF_OPEN and not self._trial_in_flight:
                self._trial_in_flight = True
                return _Permit(trial=True)

            self._stats.total_rejections += 1
            retry_after_ms = self._remaining_open_ms()
            state = self._state

        self._logger.debug(
            "circuit_breaker.call_rejected",
            name=self._name,
            state=state.value,
            retry_after_ms=retry_after_ms,
        )
        raise CircuitOpenError(self._name, retry_after_ms=retry_after_ms)

    def _record_success(self, permit: _Permit) -> None:
        with self._lock:
            self._stats.total_successes += 1
            if permit.trial:
                self._trial_in_flight = False

            if self._state == CircuitState.OPEN:
                return

            self._failure_count = 0
            if permit.trial and self._state == CircuitState.HALF_OPEN:
                self._logger.info(
                    "circuit_breaker.state_changed",
                    name=self._name,
                    from_state=CircuitState.HALF_OPEN.value,
                    to_state=CircuitState.CLOSED.value,
                    reason="recovery_confirmed",
                )
                self._set_state(CircuitState.CLOSED)

    def _record_failure(self, permit: _Permit) -> None:
        with self._lock:
            now = self._clock()
            self._stats.total_failures += 1
            self._stats.last_failure_at = now
            self._failure_count += 1
            self._last_failure_at = now
            if permit.trial:
                self._trial_in_flight = False

            if self._state == CircuitState.HALF_OPEN:
                self._logger.info(
                    "circuit_breaker.state_changed",
                    name=self._name,
                    from_state=CircuitState.HALF_OPEN.value,
                    to_state=CircuitState.OPEN.value,
                    reason="recovery_test_failed",
                )
                self._set_state(CircuitState.OPEN)
            elif self._state == CircuitState.CLOSED:
                if self._failure_count >= self._failure_threshold:
                    self._logger.warning(
                        "circuit_breaker.state_changed",
                        name=self._name,
                        from_state=CircuitState.CLOSED.value,
                        to_state=CircuitState.OPEN.value,
                        reason="failure_threshold_reached",
                        failure_count=self._failure_count,
                        failure_threshold=self._failure_threshold,
                    )
                    self._set_state(CircuitState.OPEN)
                else:
                    self._logger.debug(
                        "circuit_breaker.failure_recorded",
                        name=self._name,
                        failure_count=self._failure_count,
                        failure_threshold=self._failure_threshold,
                    )

    def _release(self, permit: _Permit) -> None:
        if permit.trial:
            with self._lock:
                self._trial_in_flight = False

    def _maybe_transition_to_half_open(self) -> None:
        if self._state != CircuitState.OPEN or self._last_failure_at is None:
            return

        elapsed = self._clock() - self._last_failure_at
        if elapsed > self._reset_timeout_ms:
            self._set_state(CircuitState.HALF_OPEN)
            self._logger.info(
                "circuit_breaker.state_changed",
                name=self._name,
                from_state=CircuitState.OPEN.value,
                to_state=CircuitState.HALF_OPEN.value,
                reason="reset_timeout_elapsed",
                elapsed_ms=round(elapsed),
            )

    def _remaining_open_ms(self) -> int | None:
        if self._state != CircuitState.OPEN or self._last_failure_at is None:
            return None
        remaining = self._reset_timeout_ms - (self._clock() - self._last_failure_at)
        # Still rejecting at exactly reset_timeout_ms, so never report 0.
        return max(1, math.ceil(remaining))

    def _set_state(self, new_state: CircuitState) -> None:
        old_state = self._state
        if old_state == new_state:
            return

        self._state = new_state
        self._stats.last_state_change_at = self._clock()

        if new_state == CircuitState.OPEN:
            self._stats.times_opened += 1
        elif new_state == CircuitState.HALF_OPEN:
            self._stats.times_half_opened += 1
        elif new_state == CircuitState.CLOSED:
            self._stats.times_closed += 1

    def __repr__(self) -> str:
        return (
            f"CircuitBreaker(name={self._name!r}, state={self._state.value}, "
            f"failures={self._failure_count}/{self._failure_threshold})"
        )


__all__ = [
    "CircuitBreaker",
    "CircuitBreakerStats",
    "CircuitState",
    "ClockFn",
    "monotonic_ms",
]
