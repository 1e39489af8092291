"""Retry and circuit breaker configuration models.

Both models are immutable once constructed; per-call overrides produce a
validated copy instead of mutating the stored configuration.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from chatbridge.core.constants import (
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_BASE_DELAY_MS,
    DEFAULT_FAILURE_THRESHOLD,
    DEFAULT_MAX_DELAY_MS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RESET_TIMEOUT_MS,
)
from chatbridge.core.errors.codes import DEFAULT_RETRYABLE_CATEGORIES, ErrorCategory


class RetryConfig(BaseModel):
    """Configuration for retry behavior with exponential backoff and jitter.

    Example YAML:
        retry:
          max_retries: 3
          base_delay_ms: 1000
          max_delay_ms: 30000
          backoff_multiplier: 2.0
          use_jitter: true
          retryable_categories: [network, rate_limit, timeout, server_error]
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES,
        ge=0,
        description="Retries after the initial attempt",
    )
    base_delay_ms: int = Field(
        default=DEFAULT_BASE_DELAY_MS,
        gt=0,
        description="Delay before the first retry (milliseconds)",
    )
    max_delay_ms: int = Field(
        default=DEFAULT_MAX_DELAY_MS,
        gt=0,
        description="Ceiling for any single backoff delay (milliseconds)",
    )
    backoff_multiplier: float = Field(
        default=DEFAULT_BACKOFF_MULTIPLIER,
        gt=1,
        description="Exponential backoff multiplier",
    )
    use_jitter: bool = Field(
        default=True,
        description="Scale each delay by a random factor in [0.5, 1.0]",
    )
    retryable_categories: frozenset[ErrorCategory] = Field(
        default=DEFAULT_RETRYABLE_CATEGORIES,
        description="Error categories that are retried",
    )

    @model_validator(mode="after")
    def _validate_delay_range(self) -> RetryConfig:
        if self.base_delay_ms > self.max_delay_ms:
            raise ValueError(
                f"base_delay_ms ({self.base_delay_ms}) must not exceed "
                f"max_delay_ms ({self.max_delay_ms})"
            )
        return self

    def with_overrides(self, **changes: Any) -> RetryConfig:
        """Return a validated copy with ``changes`` applied."""
        if not changes:
            return self
        return RetryConfig.model_validate({**self.model_dump(), **changes})

    def is_retryable(self, category: ErrorCategory) -> bool:
        return category in self.retryable_categories


class CircuitBreakerConfig(BaseModel):
    """Configuration for the circuit breaker pattern.

    State transitions:
    - CLOSED (normal): Requests flow through, consecutive failures are counted
    - OPEN (blocking): Requests are rejected after failure_threshold is reached
    - HALF_OPEN (testing): A single trial request is admitted after reset_timeout_ms

    Example YAML:
        circuit_breaker:
          failure_threshold: 5
          reset_timeout_ms: 60000
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    failure_threshold: int = Field(
        default=DEFAULT_FAILURE_THRESHOLD,
        ge=1,
        le=1000,
        description="Consecutive failures before opening the circuit",
    )
    reset_timeout_ms: int = Field(
        default=DEFAULT_RESET_TIMEOUT_MS,
        gt=0,
        description="Milliseconds in OPEN state before a trial call is admitted",
    )
