"""Provider-aware routing of retry executors.

The dispatcher owns one RetryExecutor per provider policy plus a default
executor for everything else. It adds no retry logic of its own; it only
picks the executor and delegates.

Construct it explicitly and pass it to the code that calls providers:

    dispatcher = ProviderAwareDispatcher.from_config(ClientConfig.from_yaml(path))
    reply = await dispatcher.execute_with_retry(lambda: client.chat(prompt), "anthropic")
"""

from __future__ import annotations

import random
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from chatbridge.core.config import DEFAULT_PROVIDER_POLICIES, ClientConfig, RetryConfig
from chatbridge.core.errors import ErrorClassifier, ProcessedError
from chatbridge.core.logging import ChatbridgeLogger, get_logger
from chatbridge.core.providers import Provider, normalize_provider_id

from .retry import RetryExecutor, SleepFn

T = TypeVar("T")


class ProviderAwareDispatcher:
    """Routes calls to a per-provider RetryExecutor.

    All executors share one classifier, one random source and one sleep
    function, so a seeded Random makes every provider's jitter reproducible.
    """

    def __init__(
        self,
        default_config: RetryConfig | None = None,
        provider_configs: Mapping[str, RetryConfig] | None = None,
        *,
        include_builtin_policies: bool = True,
        classifier: ErrorClassifier | None = None,
        logger: ChatbridgeLogger | None = None,
        rng: random.Random | None = None,
        sleep: SleepFn | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            default_config: Policy for providers without a specific policy.
            provider_configs: Per-provider policies, layered over the
                built-in ones (provider ids are case-insensitive).
            include_builtin_policies: Whether to start from DEFAULT_PROVIDER_POLICIES.
            classifier: Shared error classifier.
            logger: Shared logger for all executors.
            rng: Shared random source for jitter.
            sleep: Shared async sleep function (seconds).
        """
        self._classifier = classifier or ErrorClassifier()
        self._logger = logger or get_logger("dispatcher")
        self._executor_logger = logger
        self._rng = rng or random.Random()
        self._sleep = sleep

        policies: dict[str, RetryConfig] = (
            dict(DEFAULT_PROVIDER_POLICIES) if include_builtin_policies else {}
        )
        for provider_id, policy in (provider_configs or {}).items():
            policies[normalize_provider_id(provider_id)] = policy

        self._default_executor = self._build_executor(default_config or RetryConfig())
        self._executors: dict[str, RetryExecutor] = {
            provider_id: self._build_executor(policy) for provider_id, policy in policies.items()
        }

        self._logger.debug(
            "dispatcher.initialized",
            providers=sorted(self._executors),
        )

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        *,
        classifier: ErrorClassifier | None = None,
        logger: ChatbridgeLogger | None = None,
        rng: random.Random | None = None,
        sleep: SleepFn | None = None,
    ) -> ProviderAwareDispatcher:
        """Build a dispatcher from a ClientConfig's default and provider policies."""
        return cls(
            config.retry,
            config.provider_policies(),
            include_builtin_policies=False,
            classifier=classifier,
            logger=logger,
            rng=rng,
            sleep=sleep,
        )

    @property
    def providers(self) -> frozenset[str]:
        """Provider ids that have their own executor."""
        return frozenset(self._executors)

    @property
    def default_executor(self) -> RetryExecutor:
        return self._default_executor

    def get_handler_for_provider(self, provider_id: str | Provider) -> RetryExecutor:
        """Executor for ``provider_id``; the default executor if it has no policy."""
        return self._executors.get(normalize_provider_id(provider_id), self._default_executor)

    def process_error(
        self,
        error: object,
        provider_id: str | Provider,
        context: Mapping[str, Any] | None = None,
    ) -> ProcessedError:
        return self.get_handler_for_provider(provider_id).process_error(
            error, provider_id, context
        )

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        provider_id: str | Provider,
        context: Mapping[str, Any] | None = None,
        *,
        retry_config: RetryConfig | None = None,
    ) -> T:
        return await self.get_handler_for_provider(provider_id).execute_with_retry(
            operation, provider_id, context, retry_config=retry_config
        )

    def _build_executor(self, config: RetryConfig) -> RetryExecutor:
        return RetryExecutor(
            config,
            classifier=self._classifier,
            logger=self._executor_logger,
            rng=self._rng,
            sleep=self._sleep,
        )


__all__ = ["ProviderAwareDispatcher"]
