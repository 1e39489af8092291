"""Top-level client configuration.

Groups the default retry policy, per-provider retry policies, circuit breaker
settings and logging settings, and loads them from YAML.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from chatbridge.core.errors.exceptions import ConfigurationError
from chatbridge.core.providers import Provider, normalize_provider_id

from .execution import CircuitBreakerConfig, RetryConfig
from .logs import LogConfig

DEFAULT_PROVIDER_POLICIES: dict[str, RetryConfig] = {
    Provider.OPENAI.value: RetryConfig(base_delay_ms=1000, max_delay_ms=30_000),
    # Anthropic recommends longer waits after overload/rate limit responses.
    Provider.ANTHROPIC.value: RetryConfig(base_delay_ms=2000, max_delay_ms=60_000),
    Provider.GOOGLE.value: RetryConfig(base_delay_ms=1500, max_delay_ms=45_000),
}
"""Built-in retry policies for providers with documented recovery guidance."""


class ClientConfig(BaseModel):
    """Complete resilience configuration for a chatbridge client.

    Example YAML:
        retry:
          max_retries: 2
        providers:
          openai:
            base_delay_ms: 500
            max_delay_ms: 10000
        circuit_breaker:
          failure_threshold: 3
        logging:
          level: DEBUG
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    retry: RetryConfig = Field(
        default_factory=RetryConfig,
        description="Policy for providers without a specific policy",
    )
    providers: dict[str, RetryConfig] = Field(
        default_factory=dict,
        description="Per-provider policies, layered over the built-in ones",
    )
    circuit_breaker: CircuitBreakerConfig = Field(default_factory=CircuitBreakerConfig)
    logging: LogConfig = Field(default_factory=LogConfig)

    @field_validator("providers", mode="before")
    @classmethod
    def _normalize_provider_keys(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {normalize_provider_id(key): policy for key, policy in value.items()}
        return value

    def provider_policies(self) -> dict[str, RetryConfig]:
        """Built-in provider policies overlaid with the configured ones."""
        return {**DEFAULT_PROVIDER_POLICIES, **self.providers}

    @classmethod
    def from_yaml(cls, path: Path) -> ClientConfig:
        """Load client configuration from a YAML file."""
        try:
            with open(path) as f:
                text = f.read()
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read configuration file {path}: {e}",
                metadata={"path": str(path)},
            ) from e
        return cls.from_yaml_string(text)

    @classmethod
    def from_yaml_string(cls, yaml_str: str) -> ClientConfig:
        """Load client configuration from a YAML string."""
        try:
            data = yaml.safe_load(yaml_str) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration root must be a mapping")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration: {e.error_count()} error(s)",
                metadata={"errors": e.errors(include_url=False)},
            ) from e
