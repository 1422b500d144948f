"""
Centralized constants for logging and correlation.

Usage:
    from kernel.config.constants import Headers, LogProperties

    request.headers.get(Headers.CORRELATION_ID)
"""

from typing import Final


# =============================================================================
# HTTP Headers
# =============================================================================


class Headers:
    """Header names read or written by the request pipeline."""

    CORRELATION_ID: Final[str] = "X-Correlation-ID"
    FORWARDED_FOR: Final[str] = "X-Forwarded-For"
    USER_AGENT: Final[str] = "User-Agent"


# =============================================================================
# Structured Log Property Names
# =============================================================================


class LogProperties:
    """Property keys attached to structured log events."""

    CORRELATION_ID: Final[str] = "CorrelationId"
    OPERATION_NAME: Final[str] = "OperationName"
    OPERATION_ID: Final[str] = "OperationId"
    DURATION: Final[str] = "Duration"
    DURATION_MS: Final[str] = "DurationMs"
    STATUS: Final[str] = "Status"
    EXCEPTION_TYPE: Final[str] = "ExceptionType"
    COMPONENT: Final[str] = "Component"


# Length of generated correlation IDs (hex characters)
CORRELATION_ID_LENGTH: Final[int] = 8

# Placeholder shown when no remote address can be resolved
UNKNOWN_REMOTE_ADDRESS: Final[str] = "Unknown"
