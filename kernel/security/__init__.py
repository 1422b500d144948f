"""
Security module: caller identity resolution.
"""

from kernel.security.user_context import (
    EMPTY_USER_ID,
    UserContext,
    ClaimsUserContext,
    StaticUserContext,
    current_user_claims,
    set_current_user_claims,
)

__all__ = [
    "EMPTY_USER_ID",
    "UserContext",
    "ClaimsUserContext",
    "StaticUserContext",
    "current_user_claims",
    "set_current_user_claims",
]
