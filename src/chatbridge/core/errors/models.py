"""Data models for processed errors.

Contains the immutable envelope produced for every classified failure.

This module provides:
- ErrorMetadata: Diagnostic details captured at the moment of failure
- ProcessedError: Category, severity, retryability and user message for
  one failure, plus the conversion to the external ChatbridgeError
"""

from __future__ import annotations

import traceback
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

from .codes import ErrorCategory, ErrorKind, Severity
from .exceptions import ChatbridgeError


def _format_stack(error: BaseException) -> str | None:
    if error.__traceback__ is None:
        return None
    return "".join(traceback.format_exception(type(error), error, error.__traceback__))


@dataclass(frozen=True)
class ErrorMetadata:
    """Diagnostic details for a single failure.

    Attributes:
        error_name: Exception type name of the original failure.
        error_message: Raw message of the original failure (internal only).
        stack: Formatted traceback, if the exception was raised.
        context: Caller-supplied context plus attempt bookkeeping.
        timestamp: When the failure was processed (UTC).
    """

    error_name: str
    error_message: str
    stack: str | None = None
    context: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        if not isinstance(self.context, MappingProxyType):
            object.__setattr__(self, "context", MappingProxyType(dict(self.context)))

    @classmethod
    def from_exception(
        cls,
        error: BaseException,
        context: Mapping[str, Any] | None = None,
    ) -> ErrorMetadata:
        """Capture metadata from an exception."""
        return cls(
            error_name=type(error).__name__,
            error_message=str(error),
            stack=_format_stack(error),
            context=dict(context or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_name": self.error_name,
            "error_message": self.error_message,
            "stack": self.stack,
            "context": dict(self.context),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class ProcessedError:
    """A classified failure, ready to be logged or converted.

    Created fresh for every failed attempt and never mutated afterwards.
    """

    original_error: BaseException
    category: ErrorCategory
    severity: Severity
    is_retryable: bool
    user_message: str
    provider_id: str
    metadata: ErrorMetadata
    external_error_type: ErrorKind
    retry_delay_ms: int | None = None
    """Suggested delay before the next attempt; None when not retryable."""

    @property
    def original_message(self) -> str:
        return self.metadata.error_message

    def to_dict(self) -> dict[str, Any]:
        """JSON-serialisable representation (the original exception is summarised)."""
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
            "retry_delay_ms": self.retry_delay_ms,
            "user_message": self.user_message,
            "provider_id": self.provider_id,
            "external_error_type": self.external_error_type.value,
            "metadata": self.metadata.to_dict(),
        }

    def to_exception(self) -> ChatbridgeError:
        """Convert to the externally visible exception.

        The exception carries the user message, kind, provider and original
        exception name as ``code``; category, severity, retryability and the
        original message go into its metadata.
        """
        return ChatbridgeError(
            self.user_message,
            kind=self.external_error_type,
            provider_id=self.provider_id,
            code=self.metadata.error_name,
            metadata={
                "category": self.category.value,
                "severity": self.severity.value,
                "is_retryable": self.is_retryable,
                "original_message": self.metadata.error_message,
                **self.metadata.to_dict(),
            },
        )
