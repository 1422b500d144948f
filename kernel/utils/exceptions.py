"""
Exception taxonomy for the data-access layer.

Usage:
    from kernel.utils.exceptions import ArgumentNullError, MultipleResultsError

    if entity is None:
        raise ArgumentNullError("entity")

Errors coming from the database are never wrapped: MultipleResultsError and
PersistenceError are SQLAlchemy's own classes, re-exported here so callers
can catch them without importing SQLAlchemy.
"""

from sqlalchemy.exc import MultipleResultsFound as MultipleResultsError
from sqlalchemy.exc import SQLAlchemyError as PersistenceError


class ArgumentError(ValueError):
    """A required input was missing or blank."""

    def __init__(self, message: str, param_name: str | None = None):
        self.param_name = param_name
        super().__init__(message)


class ArgumentNullError(ArgumentError):
    """
    A required argument was None.

    Usage:
        raise ArgumentNullError("entity")
    """

    def __init__(self, param_name: str):
        super().__init__(f"Value cannot be None. (Parameter '{param_name}')", param_name)


class LogScopeError(RuntimeError):
    """A log scope was released while an inner scope was still active."""


__all__ = [
    "ArgumentError",
    "ArgumentNullError",
    "LogScopeError",
    "MultipleResultsError",
    "PersistenceError",
]
