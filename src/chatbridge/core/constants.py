"""Global constants for chatbridge.

Centralizes the default timing values used by the retry executor and the
circuit breaker so that defaults stay consistent between the configuration
models and the components that consume them. All durations are milliseconds.
"""

# =============================================================================
# Retry Defaults
# =============================================================================

DEFAULT_MAX_RETRIES = 3
"""Retries after the initial attempt (4 attempts in total)."""

DEFAULT_BASE_DELAY_MS = 1000
"""Delay before the first retry."""

DEFAULT_MAX_DELAY_MS = 30_000
"""Ceiling applied to every computed backoff delay."""

DEFAULT_BACKOFF_MULTIPLIER = 2.0
"""Growth factor between consecutive retry delays."""

JITTER_MIN_FACTOR = 0.5
"""Lower bound of the jitter factor applied to a capped delay."""

JITTER_MAX_FACTOR = 1.0
"""Upper bound of the jitter factor applied to a capped delay."""

# =============================================================================
# Circuit Breaker Defaults
# =============================================================================

DEFAULT_FAILURE_THRESHOLD = 5
"""Consecutive failures that open the circuit."""

DEFAULT_RESET_TIMEOUT_MS = 60_000
"""Cool-down in OPEN state before a trial call is admitted."""

CIRCUIT_OPEN_MESSAGE = "Circuit breaker is open - service temporarily unavailable"
"""Message carried by the synthetic rejection raised while the circuit is open."""
