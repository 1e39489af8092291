"""Error categories, severity levels, and external error kinds.

Contains the closed enumerations of the error taxonomy and the static tables
that relate them.

This module provides:
- ErrorCategory: Underlying cause of a provider failure
- Severity: Operational priority tier derived from a category
- ErrorKind: Coarse kind carried by the externally visible exception
- severity_for / kind_for: Total lookups over ErrorCategory

Category Table
==============

| Category        | Severity | Kind             | Retried by default |
|-----------------|----------|------------------|--------------------|
| network         | low      | PROVIDER_ERROR   | yes                |
| timeout         | low      | TIMEOUT_ERROR    | yes                |
| server_error    | low      | PROVIDER_ERROR   | yes                |
| rate_limit      | medium   | RATE_LIMIT_ERROR | yes                |
| invalid_request | medium   | VALIDATION_ERROR | no                 |
| unknown         | medium   | UNKNOWN_ERROR    | no                 |
| model_error     | high     | PROVIDER_ERROR   | no                 |
| content_policy  | high     | SECURITY_ERROR   | no                 |
| authentication  | critical | PROVIDER_ERROR   | no                 |
| quota_exceeded  | critical | RATE_LIMIT_ERROR | no                 |

Severity encodes operational priority, not user-facing harm: authentication
and quota failures are critical because they need a human or a config change
and never resolve by retrying.
"""

from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    """Closed classification of a failure's underlying cause."""

    NETWORK = "network"
    """Connectivity problem between us and the provider."""

    AUTHENTICATION = "authentication"
    """Credentials rejected or insufficient permissions."""

    RATE_LIMIT = "rate_limit"
    """Provider is throttling requests; recovers after a short wait."""

    QUOTA_EXCEEDED = "quota_exceeded"
    """Account usage quota exhausted; needs account action."""

    INVALID_REQUEST = "invalid_request"
    """Request rejected as malformed or out of bounds."""

    MODEL_ERROR = "model_error"
    """Requested model missing or unusable."""

    CONTENT_POLICY = "content_policy"
    """Request or response blocked by the provider's safety systems."""

    TIMEOUT = "timeout"
    """Request did not complete in time."""

    SERVER_ERROR = "server_error"
    """Provider-side failure (5xx, overloaded)."""

    UNKNOWN = "unknown"
    """No rule matched."""


_SEVERITY_RANK: dict[str, int] = {"low": 0, "medium": 1, "high": 2, "critical": 3}


class Severity(str, Enum):
    """Operational priority tier, ordered ``LOW < MEDIUM < HIGH < CRITICAL``."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self.value]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


class ErrorKind(str, Enum):
    """Kind carried by ``ChatbridgeError`` so callers can branch without parsing text."""

    PROVIDER_ERROR = "PROVIDER_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    SECURITY_ERROR = "SECURITY_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


SEVERITY_BY_CATEGORY: dict[ErrorCategory, Severity] = {
    ErrorCategory.AUTHENTICATION: Severity.CRITICAL,
    ErrorCategory.QUOTA_EXCEEDED: Severity.CRITICAL,
    ErrorCategory.MODEL_ERROR: Severity.HIGH,
    ErrorCategory.CONTENT_POLICY: Severity.HIGH,
    ErrorCategory.RATE_LIMIT: Severity.MEDIUM,
    ErrorCategory.INVALID_REQUEST: Severity.MEDIUM,
    ErrorCategory.NETWORK: Severity.LOW,
    ErrorCategory.TIMEOUT: Severity.LOW,
    ErrorCategory.SERVER_ERROR: Severity.LOW,
    ErrorCategory.UNKNOWN: Severity.MEDIUM,
}

KIND_BY_CATEGORY: dict[ErrorCategory, ErrorKind] = {
    ErrorCategory.AUTHENTICATION: ErrorKind.PROVIDER_ERROR,
    ErrorCategory.RATE_LIMIT: ErrorKind.RATE_LIMIT_ERROR,
    ErrorCategory.QUOTA_EXCEEDED: ErrorKind.RATE_LIMIT_ERROR,
    ErrorCategory.INVALID_REQUEST: ErrorKind.VALIDATION_ERROR,
    ErrorCategory.CONTENT_POLICY: ErrorKind.SECURITY_ERROR,
    ErrorCategory.TIMEOUT: ErrorKind.TIMEOUT_ERROR,
    ErrorCategory.NETWORK: ErrorKind.PROVIDER_ERROR,
    ErrorCategory.SERVER_ERROR: ErrorKind.PROVIDER_ERROR,
    ErrorCategory.MODEL_ERROR: ErrorKind.PROVIDER_ERROR,
    ErrorCategory.UNKNOWN: ErrorKind.UNKNOWN_ERROR,
}

DEFAULT_RETRYABLE_CATEGORIES: frozenset[ErrorCategory] = frozenset({
    ErrorCategory.NETWORK,
    ErrorCategory.RATE_LIMIT,
    ErrorCategory.TIMEOUT,
    ErrorCategory.SERVER_ERROR,
})
"""Categories that can self-resolve and are retried unless configured otherwise."""


def severity_for(category: ErrorCategory) -> Severity:
    """Map a category to its severity tier (unmapped categories are MEDIUM)."""
    return SEVERITY_BY_CATEGORY.get(category, Severity.MEDIUM)


def kind_for(category: ErrorCategory) -> ErrorKind:
    """Map a category to the kind carried by the external exception."""
    return KIND_BY_CATEGORY.get(category, ErrorKind.UNKNOWN_ERROR)
