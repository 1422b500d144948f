"""
Caller identity resolution.

Authentication itself happens outside this package: whatever verifies the
caller's token publishes its claims with `set_current_user_claims`, and the
persistence layer reads the caller's ID through a UserContext when it
stamps audit fields.

A UserContext never raises. When no caller is authenticated (or the claim
cannot be parsed) it returns EMPTY_USER_ID.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar, Token
from typing import Any, Mapping, Protocol, runtime_checkable

# Sentinel for "no authenticated caller"
EMPTY_USER_ID = uuid.UUID(int=0)

# Claim names checked in order
USER_ID_CLAIMS = (
    "sub",
    "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/nameidentifier",
    "nameidentifier",
    "userId",
    "id",
)

current_user_claims: ContextVar[Mapping[str, Any] | None] = ContextVar(
    "current_user_claims", default=None
)


def set_current_user_claims(claims: Mapping[str, Any] | None) -> Token:
    """Publish the authenticated caller's claims for the current context."""
    return current_user_claims.set(claims)


@runtime_checkable
class UserContext(Protocol):
    """Resolves the ID of the caller on whose behalf changes are saved."""

    def get_current_user_id(self) -> uuid.UUID:
        ...


class ClaimsUserContext:
    """
    Reads the caller's ID from the claims published for the current context.

    Usage:
        user_context = ClaimsUserContext()
        user_context.get_current_user_id()  # EMPTY_USER_ID when anonymous
    """

    def get_current_user_id(self) -> uuid.UUID:
        claims = current_user_claims.get()
        if not claims:
            return EMPTY_USER_ID

        for claim in USER_ID_CLAIMS:
            value = claims.get(claim)
            if value is None:
                continue
            if isinstance(value, uuid.UUID):
                return value
            try:
                return uuid.UUID(str(value))
            except ValueError:
                return EMPTY_USER_ID

        return EMPTY_USER_ID


class StaticUserContext:
    """Always resolves to the same ID. Used for background jobs and tests."""

    def __init__(self, user_id: uuid.UUID = EMPTY_USER_ID):
        self._user_id = user_id

    def get_current_user_id(self) -> uuid.UUID:
        return self._user_id
