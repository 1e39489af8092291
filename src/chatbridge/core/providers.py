"""Known provider identities.

Provider ids are plain strings so that new vendors can be routed without
code changes; ``Provider`` enumerates the ones chatbridge ships policies and
classification rules for.
"""

from __future__ import annotations

from enum import Enum


class Provider(str, Enum):
    """Generative-AI vendors with built-in error knowledge."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    META = "meta"
    XAI = "xai"
    DEEPSEEK = "deepseek"
    OLLAMA = "ollama"


_DISPLAY_NAMES: dict[str, str] = {
    Provider.OPENAI.value: "OpenAI",
    Provider.ANTHROPIC.value: "Anthropic",
    Provider.GOOGLE.value: "Google",
    Provider.META.value: "Meta",
    Provider.XAI.value: "xAI",
    Provider.DEEPSEEK.value: "DeepSeek",
    Provider.OLLAMA.value: "Ollama",
}


def normalize_provider_id(provider_id: str | Provider) -> str:
    """Return the canonical lower-case id used for lookups."""
    if isinstance(provider_id, Provider):
        return provider_id.value
    return str(provider_id).strip().lower()


def display_name(provider_id: str | Provider) -> str:
    """Human-readable provider name for user-facing messages.

    Unknown providers are shown with their first letter capitalised.
    """
    key = normalize_provider_id(provider_id)
    if key in _DISPLAY_NAMES:
        return _DISPLAY_NAMES[key]
    return key[:1].upper() + key[1:]


__all__ = ["Provider", "display_name", "normalize_provider_id"]
