"""
Tests for conversation state recovery.
Run with: pytest tests/test_state.py
"""

import pytest

from pulumipus.api.models import User
from pulumipus.chat.state import ConversationState, last_metadata, recover_state
from pulumipus.chat.types import RequestTurn, ResponseTurn, TurnResult

from conftest import PARTICIPANT, make_client, org, user_payload


def response(metadata, participant=PARTICIPANT):
    return ResponseTurn(participant=participant, result=TurnResult(metadata=metadata))


def metadata(org_id, conversation_id):
    return {
        "command": "",
        "user": user_payload(org("acme"), org("globex")),
        "orgId": org_id,
        "conversationId": conversation_id,
    }


@pytest.mark.asyncio
async def test_fresh_history_fetches_user_once(copilot):
    history = [RequestTurn(prompt="hi", participant=PARTICIPANT)]
    state = await recover_state(history, make_client(copilot), PARTICIPANT)

    assert len(copilot.user_calls) == 1
    assert state.user.github_login == "pat"
    assert state.org_id is None
    assert state.conversation_id is None


@pytest.mark.asyncio
async def test_prior_turn_restores_state_without_network(copilot):
    history = [
        RequestTurn(prompt="hi", participant=PARTICIPANT),
        response(metadata("acme", "conv-1")),
        RequestTurn(prompt="more", participant=PARTICIPANT),
        response(metadata("globex", "conv-2")),
    ]
    state = await recover_state(history, make_client(copilot), PARTICIPANT)

    assert copilot.requests == []
    assert state.org_id == "globex"
    assert state.conversation_id == "conv-2"
    assert state.user.organization_logins == ["acme", "globex"]


@pytest.mark.asyncio
async def test_other_participants_are_ignored(copilot):
    history = [
        response(metadata("acme", "conv-1")),
        response(metadata("globex", "conv-x"), participant="someone.else"),
    ]
    state = await recover_state(history, make_client(copilot), PARTICIPANT)
    assert state.org_id == "acme"
    assert state.conversation_id == "conv-1"


@pytest.mark.asyncio
async def test_turns_without_metadata_are_skipped(copilot):
    """A cancelled turn stores nothing; the turn before it still counts."""
    history = [
        response(metadata("acme", "conv-1")),
        ResponseTurn(participant=PARTICIPANT, result=TurnResult(cancelled=True)),
    ]
    state = await recover_state(history, make_client(copilot), PARTICIPANT)
    assert copilot.requests == []
    assert state.conversation_id == "conv-1"


def test_last_metadata_empty_history():
    assert last_metadata([], PARTICIPANT) is None


def test_organization_change_clears_conversation():
    state = ConversationState(user=User(id="u"), org_id="acme", conversation_id="conv-1")

    moved = state.with_organization("globex")
    assert moved.org_id == "globex"
    assert moved.conversation_id is None

    cleared = state.with_organization("")
    assert cleared.org_id is None
    assert cleared.conversation_id is None


def test_metadata_round_trip_keeps_user():
    state = ConversationState(
        user=User.from_dict(user_payload(org("acme"))), org_id="acme", conversation_id="c",
    )
    meta = state.to_metadata("org")
    assert meta["command"] == "org"
    assert ConversationState.from_metadata(meta) == state
