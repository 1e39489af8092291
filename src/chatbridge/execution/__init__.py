"""Execution layer: retry executor, circuit breaker and provider dispatcher."""

from chatbridge.execution.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerStats,
    CircuitState,
)
from chatbridge.execution.dispatcher import ProviderAwareDispatcher
from chatbridge.execution.retry import RetryExecutor

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerStats",
    "CircuitState",
    "ProviderAwareDispatcher",
    "RetryExecutor",
]
