"""chatbridge - resilient unified client layer for generative-AI provider APIs.

The package turns heterogeneous provider failures into one error taxonomy,
retries transient failures with exponential backoff and jitter, and guards
failing providers with a circuit breaker.
"""

from chatbridge.core.config import (
    CircuitBreakerConfig,
    ClientConfig,
    LogConfig,
    RetryConfig,
)
from chatbridge.core.errors import (
    ChatbridgeError,
    CircuitOpenError,
    ConfigurationError,
    ErrorCategory,
    ErrorClassifier,
    ErrorKind,
    ProcessedError,
    Severity,
    classify_error,
    severity_for,
)
from chatbridge.core.providers import Provider
from chatbridge.execution import (
    CircuitBreaker,
    CircuitState,
    ProviderAwareDispatcher,
    RetryExecutor,
)

__version__ = "0.1.0"

__all__ = [
    "ChatbridgeError",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitOpenError",
    "CircuitState",
    "ClientConfig",
    "ConfigurationError",
    "ErrorCategory",
    "ErrorClassifier",
    "ErrorKind",
    "LogConfig",
    "ProcessedError",
    "Provider",
    "ProviderAwareDispatcher",
    "RetryConfig",
    "RetryExecutor",
    "Severity",
    "classify_error",
    "severity_for",
]
