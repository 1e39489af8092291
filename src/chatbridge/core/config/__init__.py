"""Configuration models for chatbridge.

Pydantic models for the retry policy, circuit breaker, logging and the
top-level client configuration, re-exported for convenience.
"""

from chatbridge.core.config.execution import CircuitBreakerConfig, RetryConfig
from chatbridge.core.config.logs import LogConfig
from chatbridge.core.config.client import DEFAULT_PROVIDER_POLICIES, ClientConfig

__all__ = [
    "CircuitBreakerConfig",
    "ClientConfig",
    "DEFAULT_PROVIDER_POLICIES",
    "LogConfig",
    "RetryConfig",
]
