"""ErrorClassifier implementation for pattern-based error classification.

Maps a raw provider failure plus the provider identity onto exactly one
ErrorCategory. Classification is case-insensitive substring matching over the
exception's message and type name, checked in a fixed priority order:

1. Network/timeout signals
2. Authentication signals
3. Rate limit / quota signals
4. Server-side signals
5. Content-safety signals
6. Provider-specific rules (a strategy map keyed by provider id)

The first match wins; if nothing matches the category is UNKNOWN.
Classification never raises, whatever it is given.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence

from chatbridge.core.providers import Provider, normalize_provider_id

from .codes import ErrorCategory

# =============================================================================
# Generic signal vocabulary.
# Kept at module scope so the priority order below reads as data.
# =============================================================================

_NETWORK_SIGNALS: tuple[str, ...] = (
    "network",
    "connection",
    "timeout",
    "econnreset",
    "enotfound",
)

_AUTH_SIGNALS: tuple[str, ...] = (
    "unauthorized",
    "authentication",
    "invalid api key",
    "forbidden",
    "401",
    "403",
)

_RATE_LIMIT_SIGNALS: tuple[str, ...] = (
    "rate limit",
    "too many requests",
    "quota",
    "429",
)

_SERVER_SIGNALS: tuple[str, ...] = (
    "internal server error",
    "service unavailable",
    "bad gateway",
    "500",
    "502",
    "503",
)

_CONTENT_POLICY_SIGNALS: tuple[str, ...] = (
    "content policy",
    "safety",
    "harmful",
    "blocked",
)

ProviderRule = tuple[str, ErrorCategory]
"""A ``(lower-case substring, category)`` pair; rules are checked in order."""

ProviderClassifyFn = Callable[[str], ErrorCategory | None]
"""Strategy signature: lower-cased error text -> category, or None for no match."""

_BAD_REQUEST_RULES: tuple[ProviderRule, ...] = (
    ("bad request", ErrorCategory.INVALID_REQUEST),
)

DEFAULT_PROVIDER_RULES: Mapping[str, tuple[ProviderRule, ...]] = {
    Provider.OPENAI.value: (
        ("invalid_request_error", ErrorCategory.INVALID_REQUEST),
        ("model_not_found", ErrorCategory.MODEL_ERROR),
        ("context_length_exceeded", ErrorCategory.INVALID_REQUEST),
        ("rate_limit_exceeded", ErrorCategory.RATE_LIMIT),
        ("insufficient_quota", ErrorCategory.QUOTA_EXCEEDED),
        ("invalid_api_key", ErrorCategory.AUTHENTICATION),
        ("content_policy_violation", ErrorCategory.CONTENT_POLICY),
        ("server_error", ErrorCategory.SERVER_ERROR),
    ),
    Provider.ANTHROPIC.value: (
        ("invalid_request", ErrorCategory.INVALID_REQUEST),
        ("overloaded", ErrorCategory.SERVER_ERROR),
        ("rate_limit_error", ErrorCategory.RATE_LIMIT),
        ("permission_error", ErrorCategory.AUTHENTICATION),
        ("api_error", ErrorCategory.SERVER_ERROR),
    ),
    Provider.GOOGLE.value: (
        ("invalid argument", ErrorCategory.INVALID_REQUEST),
        ("resource exhausted", ErrorCategory.RATE_LIMIT),
        ("permission denied", ErrorCategory.AUTHENTICATION),
        ("not found", ErrorCategory.MODEL_ERROR),
        ("internal error", ErrorCategory.SERVER_ERROR),
        ("unavailable", ErrorCategory.SERVER_ERROR),
    ),
    Provider.META.value: _BAD_REQUEST_RULES,
    Provider.XAI.value: _BAD_REQUEST_RULES,
    Provider.DEEPSEEK.value: _BAD_REQUEST_RULES,
    Provider.OLLAMA.value: (
        ("model not found", ErrorCategory.MODEL_ERROR),
        ("connection refused", ErrorCategory.NETWORK),
    ),
}


def coerce_exception(error: object) -> BaseException:
    """Return ``error`` if it is an exception, else a synthetic ``Exception``.

    ``None`` becomes an exception with an empty message so it falls through
    to UNKNOWN.
    """
    if isinstance(error, BaseException):
        return error
    if error is None:
        return Exception("")
    return Exception(str(error))


def error_text(error: BaseException) -> str:
    """Lower-cased haystack of message and exception type name."""
    try:
        message = str(error)
    except Exception:  # noqa: BLE001 - a broken __str__ must not break classification
        message = ""
    return f"{message}\n{type(error).__name__}".lower()


def rules_classifier(rules: Sequence[ProviderRule]) -> ProviderClassifyFn:
    """Build a provider strategy from an ordered rule sequence."""
    frozen_rules = tuple((pattern.lower(), category) for pattern, category in rules)

    def classify(text: str) -> ErrorCategory | None:
        for pattern, category in frozen_rules:
            if pattern in text:
                return category
        return None

    return classify


def _contains_any(text: str, signals: Sequence[str]) -> bool:
    return any(signal in text for signal in signals)


# =============================================================================
# Error Classifier
# =============================================================================


class ErrorClassifier:
    """Classifies provider failures into ErrorCategory values.

    The generic signal checks are fixed; the provider-specific fallback is a
    plain ``provider_id -> classify function`` map that callers can extend or
    replace at construction time. Instances are immutable after construction
    and safe to share.
    """

    def __init__(
        self,
        provider_rules: Mapping[str, Sequence[ProviderRule]] | None = None,
        *,
        include_defaults: bool = True,
    ) -> None:
        """Initialize classifier with provider rule tables.

        Args:
            provider_rules: Extra rules per provider id. For a provider that
                also has built-in rules, the extra rules are checked first.
            include_defaults: Whether to start from DEFAULT_PROVIDER_RULES.
        """
        merged: dict[str, list[ProviderRule]] = {}
        if include_defaults:
            for provider_id, rules in DEFAULT_PROVIDER_RULES.items():
                merged[provider_id] = list(rules)
        for provider_id, rules in (provider_rules or {}).items():
            key = normalize_provider_id(provider_id)
            merged[key] = list(rules) + merged.get(key, [])

        self._provider_classifiers: dict[str, ProviderClassifyFn] = {
            provider_id: rules_classifier(rules) for provider_id, rules in merged.items()
        }

    @property
    def known_providers(self) -> frozenset[str]:
        """Provider ids that have a provider-specific strategy."""
        return frozenset(self._provider_classifiers)

    def classify(self, error: object, provider_id: str | Provider) -> ErrorCategory:
        """Classify a failure for the given provider.

        Args:
            error: Anything raised by a provider call; non-exceptions are
                coerced first.
            provider_id: Provider the failure came from.

        Returns:
            The single matching ErrorCategory (UNKNOWN if nothing matches).
        """
        text = error_text(coerce_exception(error))
        return self.classify_text(text, provider_id)

    def classify_text(self, text: str, provider_id: str | Provider) -> ErrorCategory:
        """Classify already-extracted error text (case-insensitive)."""
        text = text.lower()

        if _contains_any(text, _NETWORK_SIGNALS):
            return ErrorCategory.TIMEOUT if "timeout" in text else ErrorCategory.NETWORK

        if _contains_any(text, _AUTH_SIGNALS):
            return ErrorCategory.AUTHENTICATION

        if _contains_any(text, _RATE_LIMIT_SIGNALS):
            return (
                ErrorCategory.QUOTA_EXCEEDED if "quota" in text else ErrorCategory.RATE_LIMIT
            )

        if _contains_any(text, _SERVER_SIGNALS):
            return ErrorCategory.SERVER_ERROR

        if _contains_any(text, _CONTENT_POLICY_SIGNALS):
            return ErrorCategory.CONTENT_POLICY

        return self.classify_provider_specific(text, provider_id)

    def classify_provider_specific(
        self, text: str, provider_id: str | Provider
    ) -> ErrorCategory:
        """Apply only the provider's own vocabulary; UNKNOWN if none matches."""
        strategy = self._provider_classifiers.get(normalize_provider_id(provider_id))
        if strategy is None:
            return ErrorCategory.UNKNOWN
        return strategy(text.lower()) or ErrorCategory.UNKNOWN


_DEFAULT_CLASSIFIER = ErrorClassifier()


def classify_error(error: object, provider_id: str | Provider) -> ErrorCategory:
    """Classify with the built-in rule set. See ``ErrorClassifier.classify``."""
    return _DEFAULT_CLASSIFIER.classify(error, provider_id)
