"""
Tests for caller identity resolution.
"""

import uuid

import pytest

from kernel.security.user_context import (
    EMPTY_USER_ID,
    ClaimsUserContext,
    StaticUserContext,
    UserContext,
    current_user_claims,
    set_current_user_claims,
)

CALLER = uuid.UUID("0190f3c8-7a1e-7b2c-9d4e-5f6a7b8c9d0e")


@pytest.fixture
def claims():
    """Publish claims for the duration of a test."""
    tokens = []

    def publish(value):
        tokens.append(set_current_user_claims(value))

    yield publish

    for token in reversed(tokens):
        current_user_claims.reset(token)


class TestClaimsUserContext:

    def test_anonymous_returns_empty_id(self):
        assert ClaimsUserContext().get_current_user_id() == EMPTY_USER_ID

    @pytest.mark.parametrize(
        "claim",
        [
            "sub",
            "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/nameidentifier",
            "nameidentifier",
            "userId",
            "id",
        ],
    )
    def test_reads_supported_claims(self, claims, claim):
        claims({claim: str(CALLER)})

        assert ClaimsUserContext().get_current_user_id() == CALLER

    def test_first_claim_wins(self, claims):
        other = uuid.UUID(int=1)
        claims({"id": str(other), "sub": str(CALLER)})

        assert ClaimsUserContext().get_current_user_id() == CALLER

    def test_uuid_value_accepted(self, claims):
        claims({"sub": CALLER})

        assert ClaimsUserContext().get_current_user_id() == CALLER

    def test_unparseable_claim_returns_empty_id(self, claims):
        claims({"sub": "not-a-uuid"})

        assert ClaimsUserContext().get_current_user_id() == EMPTY_USER_ID

    def test_empty_claims(self, claims):
        claims({})

        assert ClaimsUserContext().get_current_user_id() == EMPTY_USER_ID


class TestStaticUserContext:

    def test_returns_configured_id(self):
        assert StaticUserContext(CALLER).get_current_user_id() == CALLER

    def test_defaults_to_empty_id(self):
        assert StaticUserContext().get_current_user_id() == EMPTY_USER_ID

    def test_satisfies_protocol(self):
        assert isinstance(StaticUserContext(), UserContext)
        assert isinstance(ClaimsUserContext(), UserContext)
