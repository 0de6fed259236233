"""
Tests for organization resolution and overrides.
Run with: pytest tests/test_organizations.py
"""

import pytest
from unittest.mock import AsyncMock

from pulumipus.api.models import User
from pulumipus.chat.organizations import override_organization, resolve_organization
from pulumipus.chat.state import ConversationState
from pulumipus.errors import (
    NoOrganizationsError,
    OrganizationSelectionDismissed,
    UnknownOrganizationError,
    ValidationError,
)

from conftest import org, user_payload


def state_with(*logins, org_id=None, conversation_id=None):
    user = User.from_dict(user_payload(*(org(login) for login in logins)))
    return ConversationState(user=user, org_id=org_id, conversation_id=conversation_id)


# ---------------------------------------------------------------------------
# resolve_organization
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_no_organizations_is_fatal():
    picker = AsyncMock()
    with pytest.raises(NoOrganizationsError):
        await resolve_organization(state_with(), picker)
    picker.assert_not_awaited()


@pytest.mark.asyncio
async def test_single_organization_is_auto_selected():
    picker = AsyncMock()
    state = await resolve_organization(state_with("acme"), picker)
    assert state.org_id == "acme"
    picker.assert_not_awaited()


@pytest.mark.asyncio
async def test_several_organizations_ask_once():
    picker = AsyncMock(return_value="globex")
    state = await resolve_organization(state_with("acme", "globex", "initech"), picker)

    assert state.org_id == "globex"
    picker.assert_awaited_once()
    offered = picker.await_args.args[0]
    assert [o.github_login for o in offered] == ["acme", "globex", "initech"]


@pytest.mark.asyncio
async def test_dismissed_pick_list_fails():
    picker = AsyncMock(return_value=None)
    with pytest.raises(OrganizationSelectionDismissed) as exc:
        await resolve_organization(state_with("acme", "globex"), picker)
    assert isinstance(exc.value, ValidationError)
    assert "select an organization" in exc.value.message


@pytest.mark.asyncio
async def test_pick_outside_offered_set_is_rejected():
    picker = AsyncMock(return_value="umbrella")
    with pytest.raises(UnknownOrganizationError):
        await resolve_organization(state_with("acme", "globex"), picker)


# ---------------------------------------------------------------------------
# override_organization
# ---------------------------------------------------------------------------

def test_override_to_other_org_clears_conversation():
    state = override_organization(state_with("acme", "globex", org_id="acme", conversation_id="c1"), "globex")
    assert state.org_id == "globex"
    assert state.conversation_id is None


def test_override_to_same_org_starts_new_conversation():
    state = override_organization(state_with("acme", org_id="acme", conversation_id="c1"), "acme")
    assert state.org_id == "acme"
    assert state.conversation_id is None


def test_empty_override_clears_organization():
    state = override_organization(state_with("acme", org_id="acme", conversation_id="c1"), "   ")
    assert state.org_id is None
    assert state.conversation_id is None


def test_override_is_case_sensitive():
    with pytest.raises(UnknownOrganizationError) as exc:
        override_organization(state_with("acme"), "ACME")
    assert exc.value.handle == "ACME"
    assert "ACME" in exc.value.message
