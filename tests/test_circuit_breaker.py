"""Tests for chatbridge.execution.circuit_breaker module."""

import asyncio
import threading
import time

import pytest

from chatbridge.core.config import CircuitBreakerConfig, RetryConfig
from chatbridge.core.errors import ChatbridgeError, CircuitOpenError, ErrorKind
from chatbridge.execution import (
    CircuitBreaker,
    CircuitBreakerStats,
    CircuitState,
    RetryExecutor,
)
from tests.helpers import AlwaysFails, FakeClock, FlakyOperation, RecordingLogger


async def fail_times(breaker: CircuitBreaker, n: int) -> None:
    """Drive ``n`` failing calls through the breaker."""
    for _ in range(n):
        with pytest.raises(RuntimeError):
            await breaker.call(AlwaysFails("boom", RuntimeError))


async def succeed(value: str = "ok") -> str:
    return value


def make_breaker(clock: FakeClock, **kwargs) -> CircuitBreaker:
    kwargs.setdefault("failure_threshold", 3)
    kwargs.setdefault("reset_timeout_ms", 1000)
    return CircuitBreaker(clock=clock, logger=RecordingLogger(), **kwargs)


class TestCircuitState:
    """Tests for CircuitState enum."""

    def test_state_values(self):
        """Test that states compare equal to their wire values."""
        assert CircuitState.CLOSED == "closed"
        assert CircuitState.OPEN == "open"
        assert CircuitState.HALF_OPEN == "half-open"


class TestCircuitBreakerStats:
    """Tests for CircuitBreakerStats dataclass."""

    def test_default_values(self):
        stats = CircuitBreakerStats()
        assert stats.total_successes == 0
        assert stats.total_failures == 0
        assert stats.total_rejections == 0
        assert stats.times_opened == 0
        assert stats.last_failure_at is None

    def test_to_dict(self):
        stats = CircuitBreakerStats(total_successes=5, times_opened=1, last_failure_at=12.0)
        result = stats.to_dict()
        assert result["total_successes"] == 5
        assert result["times_opened"] == 1
        assert result["last_failure_at"] == 12.0


class TestCircuitBreakerInitialization:
    """Tests for CircuitBreaker initialization."""

    def test_default_values(self):
        """Test circuit breaker with default values."""
        cb = CircuitBreaker()
        assert cb.failure_threshold == 5
        assert cb.reset_timeout_ms == 60_000
        assert cb.name == "default"
        assert cb.state == CircuitState.CLOSED
        assert cb.failure_count == 0
        assert cb.last_failure_at is None

    def test_from_config(self):
        """Test building a breaker from CircuitBreakerConfig."""
        cb = CircuitBreaker.from_config(
            CircuitBreakerConfig(failure_threshold=2, reset_timeout_ms=500), name="google"
        )
        assert cb.failure_threshold == 2
        assert cb.reset_timeout_ms == 500
        assert cb.name == "google"

    def test_invalid_failure_threshold(self):
        with pytest.raises(ValueError, match="failure_threshold must be at least 1"):
            CircuitBreaker(failure_threshold=0)

    def test_invalid_reset_timeout(self):
        with pytest.raises(ValueError, match="reset_timeout_ms must be positive"):
            CircuitBreaker(reset_timeout_ms=0)

    def test_repr(self):
        cb = CircuitBreaker(failure_threshold=5, name="my-breaker")
        result = repr(cb)
        assert "my-breaker" in result
        assert "closed" in result
        assert "0/5" in result


class TestClosedState:
    """Tests for circuit breaker in CLOSED state."""

    @pytest.mark.asyncio
    async def test_passes_result_through(self, fake_clock):
        cb = make_breaker(fake_clock)
        assert await cb.call(lambda: succeed("hello")) == "hello"
        assert cb.get_stats().total_successes == 1

    @pytest.mark.asyncio
    async def test_operation_exception_propagates_unchanged(self, fake_clock):
        """Test that the breaker does not wrap operation errors."""
        cb = make_breaker(fake_clock)
        error = ValueError("provider said no")

        with pytest.raises(ValueError) as exc_info:
            await cb.call(FlakyOperation([error]))

        assert exc_info.value is error
        assert cb.failure_count == 1
        assert cb.last_failure_at == fake_clock.now

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self, fake_clock):
        """Test that success resets consecutive failure count."""
        cb = make_breaker(fake_clock, failure_threshold=3)

        await fail_times(cb, 2)
        assert cb.failure_count == 2

        await cb.call(succeed)
        assert cb.failure_count == 0
        assert cb.state == CircuitState.CLOSED

        await fail_times(cb, 2)
        assert cb.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_threshold_opens_circuit(self, fake_clock):
        cb = make_breaker(fake_clock, failure_threshold=3)

        await fail_times(cb, 2)
        assert cb.state == CircuitState.CLOSED
        await fail_times(cb, 1)
        assert cb.state == CircuitState.OPEN
        assert cb.get_stats().times_opened == 1


class TestOpenState:
    """Tests for circuit breaker in OPEN state."""

    @pytest.mark.asyncio
    async def test_sixth_call_rejected_without_invocation(self, fake_clock):
        """Five consecutive failures reject the sixth call immediately."""
        cb = make_breaker(fake_clock, failure_threshold=5, reset_timeout_ms=60_000)
        await fail_times(cb, 5)

        operation = FlakyOperation([], result="never")
        with pytest.raises(CircuitOpenError) as exc_info:
            await cb.call(operation)

        assert operation.calls == 0
        error = exc_info.value
        assert isinstance(error, ChatbridgeError)
        assert error.kind == ErrorKind.PROVIDER_ERROR
        assert "temporarily unavailable" in error.message
        assert error.retry_after_ms == 60_000
        assert cb.get_stats().total_rejections == 1

    @pytest.mark.asyncio
    async def test_time_until_retry(self, fake_clock):
        cb = make_breaker(fake_clock, failure_threshold=1, reset_timeout_ms=1000)
        assert cb.time_until_retry_ms() is None

        await fail_times(cb, 1)
        fake_clock.advance(400)
        assert cb.time_until_retry_ms() == 600

    @pytest.mark.asyncio
    async def test_stays_open_until_timeout_strictly_exceeded(self, fake_clock):
        """Test that the transition needs elapsed time greater than the timeout."""
        cb = make_breaker(fake_clock, failure_threshold=1, reset_timeout_ms=1000)
        await fail_times(cb, 1)

        fake_clock.advance(1000)
        assert cb.state == CircuitState.OPEN
        with pytest.raises(CircuitOpenError):
            await cb.call(succeed)

        fake_clock.advance(1)
        assert cb.state == CircuitState.HALF_OPEN

    @pytest.mark.asyncio
    async def test_retry_hint_positive_at_exact_timeout(self, fake_clock):
        """While still OPEN the retry hint never drops to zero."""
        cb = make_breaker(fake_clock, failure_threshold=1, reset_timeout_ms=1000)
        await fail_times(cb, 1)

        fake_clock.advance(1000)
        assert cb.time_until_retry_ms() == 1
        with pytest.raises(CircuitOpenError) as exc_info:
            await cb.call(succeed)
        assert exc_info.value.retry_after_ms == 1


class TestHalfOpenState:
    """Tests for recovery through HALF_OPEN."""

    @pytest.mark.asyncio
    async def test_trial_success_closes_circuit(self, fake_clock):
        cb = make_breaker(fake_clock, failure_threshold=2, reset_timeout_ms=1000)
        await fail_times(cb, 2)
        fake_clock.advance(1001)

        assert await cb.call(succeed) == "ok"
        assert cb.state == CircuitState.CLOSED
        assert cb.failure_count == 0
        stats = cb.get_stats()
        assert stats.times_half_opened == 1
        assert stats.times_closed == 1

    @pytest.mark.asyncio
    async def test_trial_failure_reopens_immediately(self, fake_clock):
        """Test that one trial failure reopens without re-reaching the threshold."""
        cb = make_breaker(fake_clock, failure_threshold=3, reset_timeout_ms=1000)
        await fail_times(cb, 3)
        fake_clock.advance(1500)

        await fail_times(cb, 1)

        assert cb.state == CircuitState.OPEN
        assert cb.last_failure_at == fake_clock.now
        assert cb.time_until_retry_ms() == 1000
        assert cb.get_stats().times_opened == 2

    @pytest.mark.asyncio
    async def test_only_one_trial_admitted(self, fake_clock):
        """Concurrent callers in HALF_OPEN: one trial runs, the rest are rejected."""
        cb = make_breaker(fake_clock, failure_threshold=1, reset_timeout_ms=1000)
        await fail_times(cb, 1)
        fake_clock.advance(2000)

        release = asyncio.Event()
        invoked = 0

        async def slow_probe() -> str:
            nonlocal invoked
            invoked += 1
            await release.wait()
            return "recovered"

        trial = asyncio.create_task(cb.call(slow_probe))
        await asyncio.sleep(0)

        results = await asyncio.gather(
            *(cb.call(slow_probe) for _ in range(5)), return_exceptions=True
        )
        assert all(isinstance(r, CircuitOpenError) for r in results)

        release.set()
        assert await trial == "recovered"
        assert invoked == 1
        assert cb.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_cancelled_trial_frees_slot(self, fake_clock):
        cb = make_breaker(fake_clock, failure_threshold=1, reset_timeout_ms=1000)
        await fail_times(cb, 1)
        fake_clock.advance(2000)

        async def hang() -> None:
            await asyncio.Event().wait()

        trial = asyncio.create_task(cb.call(hang))
        await asyncio.sleep(0)
        trial.cancel()
        with pytest.raises(asyncio.CancelledError):
            await trial

        assert cb.state == CircuitState.HALF_OPEN
        assert await cb.call(succeed) == "ok"
        assert cb.state == CircuitState.CLOSED

    def test_only_one_trial_across_threads(self, fake_clock):
        """Test admission from many threads while HALF_OPEN."""
        cb = make_breaker(fake_clock, failure_threshold=1, reset_timeout_ms=1000)
        asyncio.run(fail_times(cb, 1))
        fake_clock.advance(2000)

        barrier = threading.Barrier(8)
        admitted = []
        rejected = []
        hold = threading.Event()

        async def probe() -> None:
            admitted.append(threading.get_ident())
            while not hold.is_set():
                await asyncio.sleep(0.001)

        def worker() -> None:
            barrier.wait()
            try:
                asyncio.run(cb.call(probe))
            except CircuitOpenError:
                rejected.append(threading.get_ident())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        deadline = time.monotonic() + 5
        while len(admitted) + len(rejected) < 8 and time.monotonic() < deadline:
            time.sleep(0.001)
        hold.set()
        for t in threads:
            t.join(timeout=5)

        assert len(admitted) == 1
        assert len(rejected) == 7


class TestDecoratorAndStats:
    """Tests for protect() and get_stats()."""

    @pytest.mark.asyncio
    async def test_protect_decorator(self, fake_clock):
        cb = make_breaker(fake_clock, failure_threshold=1)
        calls = []

        @cb.protect
        async def fetch(x: int) -> int:
            calls.append(x)
            if x < 0:
                raise RuntimeError("negative")
            return x * 2

        assert await fetch(2) == 4
        with pytest.raises(RuntimeError):
            await fetch(-1)
        with pytest.raises(CircuitOpenError):
            await fetch(3)
        assert calls == [2, -1]
        assert fetch.__name__ == "fetch"

    @pytest.mark.asyncio
    async def test_state_only_changes_through_transitions(self, fake_clock):
        """An open breaker offers no way back to CLOSED except a trial call."""
        cb = make_breaker(fake_clock, failure_threshold=1, reset_timeout_ms=1000)
        await fail_times(cb, 1)

        assert not hasattr(cb, "reset")
        assert cb.state == CircuitState.OPEN
        with pytest.raises(CircuitOpenError):
            await cb.call(succeed)

        fake_clock.advance(1001)
        await cb.call(succeed)
        assert cb.state == CircuitState.CLOSED
        assert cb.get_stats().times_half_opened == 1

    def test_get_stats_returns_copy(self, fake_clock):
        cb = make_breaker(fake_clock)
        stats = cb.get_stats()
        stats.total_failures = 99
        assert cb.get_stats().total_failures == 0


class TestComposition:
    """Breaker and retry executor used together."""

    @pytest.mark.asyncio
    async def test_retry_inside_breaker_rejects_once_open(self, fake_clock, fake_sleep):
        """Each retried operation counts once toward the breaker."""
        cb = make_breaker(fake_clock, failure_threshold=2, reset_timeout_ms=10_000)
        executor = RetryExecutor(
            RetryConfig(max_retries=1, use_jitter=False),
            logger=RecordingLogger(),
            sleep=fake_sleep,
        )
        operation = AlwaysFails("Network error")

        for _ in range(2):
            with pytest.raises(ChatbridgeError):
                await cb.call(lambda: executor.execute_with_retry(operation, "openai"))

        assert operation.calls == 4
        with pytest.raises(CircuitOpenError):
            await cb.call(lambda: executor.execute_with_retry(operation, "openai"))
        assert operation.calls == 4

    @pytest.mark.asyncio
    async def test_breaker_inside_retry_is_not_retried(self, fake_clock, fake_sleep):
        cb = make_breaker(fake_clock, failure_threshold=1, reset_timeout_ms=10_000)
        executor = RetryExecutor(
            RetryConfig(max_retries=3, use_jitter=False),
            logger=RecordingLogger(),
            sleep=fake_sleep,
        )
        operation = AlwaysFails("Network error")

        with pytest.raises(CircuitOpenError):
            await executor.execute_with_retry(lambda: cb.call(operation), "openai")

        assert operation.calls == 1
        assert len(fake_sleep.calls) == 1
