"""Exception hierarchy for chatbridge.

Every failure that leaves the resilience layer is a ``ChatbridgeError`` so
callers have one failure contract regardless of provider. Callers can catch
broad (ChatbridgeError) or narrow (e.g., CircuitOpenError) and branch on
``kind``/``category`` without re-parsing message text.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from chatbridge.core.constants import CIRCUIT_OPEN_MESSAGE

from .codes import ErrorCategory, ErrorKind, Severity


class ChatbridgeError(Exception):
    """The single externally visible error type.

    Attributes:
        message: User-facing message; never contains raw provider text.
        kind: Coarse error kind for routing.
        provider_id: Provider the failure came from, if any.
        code: Short machine code (the original exception name for classified
            failures, e.g. ``"TimeoutError"``).
        metadata: Diagnostic details including the original message.
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.UNKNOWN_ERROR,
        provider_id: str | None = None,
        code: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.provider_id = provider_id
        self.code = code
        self.metadata: dict[str, Any] = dict(metadata or {})

    @property
    def category(self) -> ErrorCategory | None:
        value = self.metadata.get("category")
        return ErrorCategory(value) if value is not None else None

    @property
    def severity(self) -> Severity | None:
        value = self.metadata.get("severity")
        return Severity(value) if value is not None else None

    @property
    def is_retryable(self) -> bool:
        return bool(self.metadata.get("is_retryable", False))

    @property
    def original_message(self) -> str | None:
        return self.metadata.get("original_message")

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value}, "
            f"provider_id={self.provider_id!r}, code={self.code!r}, "
            f"message={self.message!r})"
        )


class CircuitOpenError(ChatbridgeError):
    """Raised without invoking the protected call while a circuit is open.

    This is a synthetic unavailability signal, not a classified provider
    failure; the retry executor never retries it.
    """

    def __init__(
        self,
        breaker_name: str,
        retry_after_ms: int | None = None,
        provider_id: str | None = None,
    ) -> None:
        super().__init__(
            CIRCUIT_OPEN_MESSAGE,
            kind=ErrorKind.PROVIDER_ERROR,
            provider_id=provider_id,
            code="CIRCUIT_OPEN",
            metadata={"breaker": breaker_name, "retry_after_ms": retry_after_ms},
        )
        self.breaker_name = breaker_name
        self.retry_after_ms = retry_after_ms


class ConfigurationError(ChatbridgeError):
    """Raised when a configuration source cannot be read or validated."""

    def __init__(self, message: str, metadata: Mapping[str, Any] | None = None) -> None:
        super().__init__(
            message,
            kind=ErrorKind.CONFIGURATION_ERROR,
            code="CONFIGURATION_INVALID",
            metadata=metadata,
        )


__all__ = ["ChatbridgeError", "CircuitOpenError", "ConfigurationError"]
