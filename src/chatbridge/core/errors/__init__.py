"""Error taxonomy, classification and the external exception type.

Re-exports all public symbols.
"""

from chatbridge.core.errors.codes import (
    DEFAULT_RETRYABLE_CATEGORIES,
    KIND_BY_CATEGORY,
    SEVERITY_BY_CATEGORY,
    ErrorCategory,
    ErrorKind,
    Severity,
    kind_for,
    severity_for,
)
from chatbridge.core.errors.exceptions import (
    ChatbridgeError,
    CircuitOpenError,
    ConfigurationError,
)
from chatbridge.core.errors.models import ErrorMetadata, ProcessedError
from chatbridge.core.errors.messages import USER_MESSAGE_TEMPLATES, user_message
from chatbridge.core.errors.classifier import (
    DEFAULT_PROVIDER_RULES,
    ErrorClassifier,
    ProviderClassifyFn,
    ProviderRule,
    classify_error,
    coerce_exception,
)
from chatbridge.core.errors.utils import (
    extract_error_code,
    is_permanent_failure,
    is_retryable_error,
    sanitize_error_for_logging,
)

__all__ = [
    "DEFAULT_RETRYABLE_CATEGORIES",
    "KIND_BY_CATEGORY",
    "SEVERITY_BY_CATEGORY",
    "ErrorCategory",
    "ErrorKind",
    "Severity",
    "kind_for",
    "severity_for",
    "ChatbridgeError",
    "CircuitOpenError",
    "ConfigurationError",
    "ErrorMetadata",
    "ProcessedError",
    "USER_MESSAGE_TEMPLATES",
    "user_message",
    "DEFAULT_PROVIDER_RULES",
    "ErrorClassifier",
    "ProviderClassifyFn",
    "ProviderRule",
    "classify_error",
    "coerce_exception",
    "extract_error_code",
    "is_permanent_failure",
    "is_retryable_error",
    "sanitize_error_for_logging",
]
