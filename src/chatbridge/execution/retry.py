"""Retry executor with exponential backoff and jitter.

Runs an async provider call, classifies every failure, and decides whether to
wait and try again or to give up with a ``ChatbridgeError``.

Attempts recorded in error context and logs are numbered from 1. With
``max_retries = N`` a permanently failing retryable operation is invoked N+1
times; a non-retryable failure is never retried, even on the first attempt.

Backoff for retry number ``attempt`` (1-indexed):

    raw     = base_delay_ms * backoff_multiplier ** (attempt - 1)
    capped  = min(raw, max_delay_ms)
    delay   = capped * uniform(0.5, 1.0)   # only when use_jitter
    delay   = max(1, round(delay))

Example usage:
    from chatbridge.execution import RetryExecutor

    executor = RetryExecutor(RetryConfig(max_retries=2))
    reply = await executor.execute_with_retry(lambda: client.chat(prompt), "openai")
"""

from __future__ import annotations

import asyncio
import functools
import math
import random
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, ParamSpec, TypeVar

from chatbridge.core.config import RetryConfig
from chatbridge.core.constants import JITTER_MAX_FACTOR, JITTER_MIN_FACTOR
from chatbridge.core.errors import (
    CircuitOpenError,
    ErrorClassifier,
    ErrorMetadata,
    ProcessedError,
    Severity,
    coerce_exception,
    kind_for,
    sanitize_error_for_logging,
    severity_for,
    user_message,
)
from chatbridge.core.logging import ChatbridgeLogger, get_logger
from chatbridge.core.providers import Provider, normalize_provider_id

T = TypeVar("T")
P = ParamSpec("P")

SleepFn = Callable[[float], Awaitable[None]]
"""Async sleep taking seconds, e.g. ``asyncio.sleep``."""

_LOG_METHOD_BY_SEVERITY: dict[Severity, str] = {
    Severity.CRITICAL: "error",
    Severity.HIGH: "error",
    Severity.MEDIUM: "warning",
    Severity.LOW: "info",
}


class RetryExecutor:
    """Executes async operations with classification-driven retries.

    The stored RetryConfig is never mutated; a per-call ``retry_config``
    replaces it for that call only. Separate ``execute_with_retry`` calls
    share no mutable state and may run concurrently.
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        classifier: ErrorClassifier | None = None,
        logger: ChatbridgeLogger | None = None,
        rng: random.Random | None = None,
        sleep: SleepFn | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            config: Retry policy. Defaults to RetryConfig().
            classifier: Error classifier. Defaults to the built-in rule set.
            logger: Logger for failure events. Defaults to get_logger("retry_executor").
            rng: Random source for jitter; pass a seeded Random for
                reproducible delays.
            sleep: Async sleep function taking seconds. Defaults to asyncio.sleep.
        """
        self._config = config or RetryConfig()
        self._classifier = classifier or ErrorClassifier()
        self._logger = logger or get_logger("retry_executor")
        self._rng = rng or random.Random()
        self._sleep: SleepFn = sleep or asyncio.sleep

    @property
    def config(self) -> RetryConfig:
        return self._config

    @property
    def classifier(self) -> ErrorClassifier:
        return self._classifier

    def calculate_retry_delay(
        self,
        attempt: int,
        config: RetryConfig | None = None,
    ) -> int:
        """Delay in milliseconds before retry number ``attempt`` (1-indexed).

        Never exceeds ``max_delay_ms`` and is always at least 1.

        Raises:
            ValueError: If attempt is less than 1.
        """
        if attempt < 1:
            raise ValueError(f"attempt must be >= 1, got {attempt}")
        cfg = config or self._config

        try:
            raw = cfg.base_delay_ms * cfg.backoff_multiplier ** (attempt - 1)
        except OverflowError:
            raw = float(cfg.max_delay_ms)
        delay = min(raw, float(cfg.max_delay_ms))

        if cfg.use_jitter:
            delay *= self._rng.uniform(JITTER_MIN_FACTOR, JITTER_MAX_FACTOR)

        return max(1, math.floor(delay + 0.5))

    def process_error(
        self,
        error: object,
        provider_id: str | Provider,
        context: Mapping[str, Any] | None = None,
        *,
        retry_config: RetryConfig | None = None,
    ) -> ProcessedError:
        """Classify a failure and package it as a ProcessedError.

        ``retry_delay_ms`` holds the first-retry delay when the category is
        retryable, else None.
        """
        cfg = retry_config or self._config
        exc = coerce_exception(error)
        provider = normalize_provider_id(provider_id)

        category = self._classifier.classify(exc, provider)
        is_retryable = cfg.is_retryable(category)

        return ProcessedError(
            original_error=exc,
            category=category,
            severity=severity_for(category),
            is_retryable=is_retryable,
            user_message=user_message(category, provider),
            provider_id=provider,
            metadata=ErrorMetadata.from_exception(exc, context),
            external_error_type=kind_for(category),
            retry_delay_ms=self.calculate_retry_delay(1, cfg) if is_retryable else None,
        )

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        provider_id: str | Provider,
        context: Mapping[str, Any] | None = None,
        *,
        retry_config: RetryConfig | None = None,
    ) -> T:
        """Run ``operation`` until it succeeds or a failure is final.

        Args:
            operation: Zero-argument callable returning an awaitable.
            provider_id: Provider the operation talks to.
            context: Extra diagnostic context copied into every ProcessedError.
            retry_config: Policy for this call only.

        Returns:
            The operation's result.

        Raises:
            ChatbridgeError: For a non-retryable failure, or the last failure
                once retries are exhausted. Chained to the original exception.
            CircuitOpenError: Re-raised unchanged if the operation is guarded
                by an open circuit breaker.
        """
        cfg = retry_config or self._config
        provider = normalize_provider_id(provider_id)
        base_context = dict(context or {})

        attempt = 0
        while True:
            try:
                return await operation()
            except CircuitOpenError:
                raise
            except Exception as e:
                processed = self.process_error(
                    e,
                    provider,
                    # Recorded attempt numbers start at 1.
                    {**base_context, "attempt": attempt + 1, "max_retries": cfg.max_retries},
                    retry_config=cfg,
                )
                self._log_processed(processed)

                if not processed.is_retryable or attempt >= cfg.max_retries:
                    self._log_giving_up(processed, attempt, cfg)
                    raise processed.to_exception() from e

                delay_ms = self.calculate_retry_delay(attempt + 1, cfg)
                self._safe_log(
                    "debug",
                    "retry_executor.retrying",
                    provider_id=provider,
                    category=processed.category.value,
                    attempt=attempt + 1,
                    next_attempt=attempt + 2,
                    max_retries=cfg.max_retries,
                    delay_ms=delay_ms,
                )
                await self._sleep(delay_ms / 1000)
                attempt += 1

    def retrying(
        self,
        provider_id: str | Provider,
        context: Mapping[str, Any] | None = None,
    ) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
        """Decorator form of ``execute_with_retry`` for async functions.

        Example:
            @executor.retrying("anthropic")
            async def complete(prompt: str) -> str: ...
        """

        def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
            @functools.wraps(func)
            async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
                return await self.execute_with_retry(
                    lambda: func(*args, **kwargs), provider_id, context
                )

            return wrapper

        return decorator

    def _log_processed(self, processed: ProcessedError) -> None:
        method = _LOG_METHOD_BY_SEVERITY.get(processed.severity, "warning")
        self._safe_log(
            method,
            "retry_executor.attempt_failed",
            provider_id=processed.provider_id,
            category=processed.category.value,
            severity=processed.severity.value,
            is_retryable=processed.is_retryable,
            attempt=processed.metadata.context.get("attempt"),
            error=sanitize_error_for_logging(processed.original_error),
        )

    def _log_giving_up(self, processed: ProcessedError, attempt: int, cfg: RetryConfig) -> None:
        self._safe_log(
            "debug",
            "retry_executor.giving_up",
            provider_id=processed.provider_id,
            category=processed.category.value,
            reason="not_retryable" if not processed.is_retryable else "retries_exhausted",
            attempts=attempt + 1,
            max_retries=cfg.max_retries,
        )

    def _safe_log(self, method: str, event: str, **kw: Any) -> None:
        # Logging failures must never reach the retry loop.
        try:
            getattr(self._logger, method)(event, **kw)
        except Exception:  # noqa: BLE001
            pass

    def __repr__(self) -> str:
        cfg = self._config
        return (
            f"RetryExecutor(max_retries={cfg.max_retries}, "
            f"base_delay_ms={cfg.base_delay_ms}, max_delay_ms={cfg.max_delay_ms})"
        )


__all__ = ["RetryExecutor", "SleepFn"]
