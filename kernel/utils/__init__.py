"""
Utilities module: Exceptions.
"""

from kernel.utils.exceptions import (
    ArgumentError,
    ArgumentNullError,
    LogScopeError,
    MultipleResultsError,
    PersistenceError,
)

__all__ = [
    "ArgumentError",
    "ArgumentNullError",
    "LogScopeError",
    "MultipleResultsError",
    "PersistenceError",
]
