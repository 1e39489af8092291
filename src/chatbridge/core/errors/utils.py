"""Error helpers for common patterns.

Lightweight textual checks that do not need a provider id, plus a
sanitiser used before error text is written to logs.
"""

from __future__ import annotations

import re
from typing import Any

_RETRYABLE_MARKERS: tuple[str, ...] = (
    "timeout",
    "network",
    "connection",
    "rate limit",
    "server error",
    "service unavailable",
    "overloaded",
    "503",
    "502",
    "429",
)

_PERMANENT_MARKERS: tuple[str, ...] = (
    "invalid api key",
    "unauthorized",
    "forbidden",
    "quota exceeded",
    "content policy",
    "model not found",
    "permission denied",
    "401",
    "403",
)

_HTTP_STATUS_RE = re.compile(r"\b([45]\d{2})\b")
_CODE_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r"code:\s*([A-Z_]+)", re.IGNORECASE),
    re.compile(r"error_code:\s*([A-Z_]+)", re.IGNORECASE),
    re.compile(r"([A-Z_]+_ERROR)", re.IGNORECASE),
)

_REDACTIONS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"api[_-]?key[:\s=]+[\w-]+", re.IGNORECASE), "api_key=***"),
    (re.compile(r"token[:\s=]+[\w-]+", re.IGNORECASE), "token=***"),
    (re.compile(r"authorization[:\s=]+[\w\s-]+", re.IGNORECASE), "authorization=***"),
)


def is_retryable_error(error: object) -> bool:
    """True if the error text looks like a commonly transient failure."""
    if not isinstance(error, BaseException):
        return False
    message = str(error).lower()
    return any(marker in message for marker in _RETRYABLE_MARKERS)


def is_permanent_failure(error: object) -> bool:
    """True if the error text looks like a failure that never self-resolves."""
    if not isinstance(error, BaseException):
        return False
    message = str(error).lower()
    return any(marker in message for marker in _PERMANENT_MARKERS)


def extract_error_code(error: object) -> str | None:
    """Pull an HTTP status or symbolic error code out of the message.

    Returns:
        The first 4xx/5xx status found, else the first ``code: X``,
        ``error_code: X`` or ``X_ERROR`` token, else None.
    """
    if not isinstance(error, BaseException):
        return None
    message = str(error)

    status = _HTTP_STATUS_RE.search(message)
    if status:
        return status.group(1)

    for pattern in _CODE_RES:
        match = pattern.search(message)
        if match:
            return match.group(1)
    return None


def sanitize_message(message: str) -> str:
    """Mask api keys, tokens and authorization values in free text."""
    for pattern, replacement in _REDACTIONS:
        message = pattern.sub(replacement, message)
    return message


def sanitize_error_for_logging(error: object) -> dict[str, Any]:
    """Summarise an error for log output with credentials masked."""
    if not isinstance(error, BaseException):
        return {"message": sanitize_message(str(error)), "type": type(error).__name__}

    return {
        "name": type(error).__name__,
        "message": sanitize_message(str(error)),
        "module": type(error).__module__,
    }


__all__ = [
    "extract_error_code",
    "is_permanent_failure",
    "is_retryable_error",
    "sanitize_error_for_logging",
    "sanitize_message",
]
