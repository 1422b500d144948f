"""
Request correlation tracking.

Holds the correlation ID of the current logical request in a ContextVar, so
every asyncio task (and every thread started through a copied context) sees
its own value and concurrent requests never observe each other's IDs.

Usage:
    from kernel.infrastructure.correlation import correlation_service

    token = correlation_service.set_correlation_id("abc123")
    try:
        ...
    finally:
        correlation_service.reset(token)
"""

import uuid
from contextvars import ContextVar, Token

from kernel.config.constants import CORRELATION_ID_LENGTH
from kernel.utils.exceptions import ArgumentError

# Context variable for the correlation ID (task-local, not global)
correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def new_correlation_id() -> str:
    """Create a short correlation ID without storing it."""
    return uuid.uuid4().hex[:CORRELATION_ID_LENGTH]


class CorrelationService:
    """
    Manages correlation IDs across request boundaries.

    - Reading `correlation_id` when none is set generates and stores one
    - `set_correlation_id` rejects None or blank values
    - `generate_correlation_id` always replaces the current value
    """

    @property
    def correlation_id(self) -> str:
        """Current correlation ID, generated on first access."""
        return correlation_id_var.get() or self.generate_correlation_id()

    def set_correlation_id(self, correlation_id: str) -> Token:
        """
        Set the correlation ID for the current context.

        Returns:
            Token that restores the previous value when passed to `reset`.

        Raises:
            ArgumentError: If the ID is None or whitespace.
        """
        if correlation_id is None or not str(correlation_id).strip():
            raise ArgumentError(
                "Correlation ID cannot be null or whitespace.", "correlation_id"
            )
        return correlation_id_var.set(str(correlation_id))

    def generate_correlation_id(self) -> str:
        """Create a short correlation ID, store it as current and return it."""
        correlation_id = new_correlation_id()
        correlation_id_var.set(correlation_id)
        return correlation_id

    def reset(self, token: Token) -> None:
        """Restore the correlation ID that was current before `set_correlation_id`."""
        correlation_id_var.reset(token)


def get_correlation_id() -> str | None:
    """Get the current correlation ID without generating one."""
    return correlation_id_var.get()


class CorrelationIdFilter:
    """
    Logging filter that adds correlation_id to log records.

    Applies to every record reaching the handler, including records from
    third-party libraries that do not go through StructuredLogger.

    Usage:
        import logging
        handler = logging.StreamHandler()
        handler.addFilter(CorrelationIdFilter())
    """

    def filter(self, record) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        return True


# Process-wide service; the value itself lives in correlation_id_var
correlation_service = CorrelationService()
