"""
Configuration module: Settings, constants.

Logging lives in kernel.config.logging and is imported directly, since it
depends on kernel.infrastructure.correlation.
"""

from kernel.config.settings import settings, get_settings
from kernel.config.constants import (
    Headers,
    LogProperties,
    CORRELATION_ID_LENGTH,
)

__all__ = [
    # settings
    "settings",
    "get_settings",
    # constants
    "Headers",
    "LogProperties",
    "CORRELATION_ID_LENGTH",
]
