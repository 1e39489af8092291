"""User-facing message templates, one per ErrorCategory.

Templates are parameterised only by the provider's display name. They never
include raw provider error text; that stays in ProcessedError metadata for
internal diagnostics.
"""

from __future__ import annotations

from chatbridge.core.providers import Provider, display_name

from .codes import ErrorCategory

USER_MESSAGE_TEMPLATES: dict[ErrorCategory, str] = {
    ErrorCategory.NETWORK: (
        "Network connection issue with {provider}. "
        "Please check your internet connection and try again."
    ),
    ErrorCategory.AUTHENTICATION: (
        "Authentication failed with {provider}. Please check your API key and permissions."
    ),
    ErrorCategory.RATE_LIMIT: (
        "Rate limit exceeded for {provider}. Please wait a moment before trying again."
    ),
    ErrorCategory.QUOTA_EXCEEDED: (
        "Usage quota exceeded for {provider}. Please check your account limits."
    ),
    ErrorCategory.INVALID_REQUEST: (
        "Invalid request to {provider}. Please check your input parameters."
    ),
    ErrorCategory.MODEL_ERROR: (
        "Model error with {provider}. The requested model may not be available."
    ),
    ErrorCategory.CONTENT_POLICY: (
        "Content policy violation detected by {provider}. Please modify your request."
    ),
    ErrorCategory.TIMEOUT: "Request to {provider} timed out. Please try again.",
    ErrorCategory.SERVER_ERROR: "{provider} server error. Please try again later.",
    ErrorCategory.UNKNOWN: (
        "An unexpected error occurred with {provider}. Please try again later."
    ),
}


def user_message(category: ErrorCategory, provider_id: str | Provider) -> str:
    """Render the user-facing message for a category and provider."""
    template = USER_MESSAGE_TEMPLATES.get(category, USER_MESSAGE_TEMPLATES[ErrorCategory.UNKNOWN])
    return template.format(provider=display_name(provider_id))
