"""Core domain models: error taxonomy, configuration, logging, providers."""

from chatbridge.core.config import ClientConfig, RetryConfig
from chatbridge.core.errors import (
    ChatbridgeError,
    ErrorCategory,
    ErrorClassifier,
    ErrorKind,
    ProcessedError,
    Severity,
)
from chatbridge.core.providers import Provider

__all__ = [
    "ChatbridgeError",
    "ClientConfig",
    "ErrorCategory",
    "ErrorClassifier",
    "ErrorKind",
    "ProcessedError",
    "Provider",
    "RetryConfig",
    "Severity",
]
