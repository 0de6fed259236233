"""
Tests for the token providers.
Run with: pytest tests/test_auth.py
"""

import pytest
from unittest.mock import AsyncMock

from pulumipus.api.auth import AuthenticationToken, SessionTokenProvider, StaticTokenProvider


@pytest.fixture
def session():
    return AsyncMock(return_value=AuthenticationToken("pul-1"))


@pytest.mark.asyncio
async def test_request_uses_existing_session(session):
    provider = SessionTokenProvider(session)
    token = await provider.request()
    assert token.access_token == "pul-1"
    session.assert_awaited_once_with(False, None)


@pytest.mark.asyncio
async def test_invalidate_forces_new_session_once(session):
    """The next request forces a new sign-in with the reason; the one after does not."""
    provider = SessionTokenProvider(session)
    provider.invalidate(detail="token rejected")
    assert provider.force_new_session

    await provider.request()
    session.assert_awaited_with(True, "token rejected")
    assert not provider.force_new_session

    await provider.request()
    session.assert_awaited_with(False, None)


@pytest.mark.asyncio
async def test_repeated_invalidation_does_not_compound(session):
    provider = SessionTokenProvider(session)
    provider.invalidate(detail="first")
    provider.invalidate(detail="second")

    await provider.request()
    await provider.request()

    assert [c.args for c in session.await_args_list] == [(True, "second"), (False, None)]


@pytest.mark.asyncio
async def test_declined_session_returns_none():
    provider = SessionTokenProvider(AsyncMock(return_value=None))
    assert await provider.request() is None


@pytest.mark.asyncio
async def test_static_provider_drops_token_on_invalidate():
    provider = StaticTokenProvider("pul-x")
    assert (await provider.request()).access_token == "pul-x"

    provider.invalidate(detail="rejected")
    assert await provider.request() is None
    assert provider.detail == "rejected"


def test_token_repr_hides_secret():
    assert "pul-secret" not in repr(AuthenticationToken("pul-secret"))
