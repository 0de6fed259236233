"""
Conversation state, recovered from the host's turn history.

Nothing is kept in memory between turns. Each turn's result metadata carries
the user, organization and conversation id, and the next turn reads them back
from the most recent response of ours that has metadata.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Sequence

from pulumipus.api.client import Client
from pulumipus.api.models import User
from pulumipus.cancellation import CancellationToken
from pulumipus.chat.types import ResponseTurn, Turn

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversationState:
    user: User
    org_id: str | None = None
    conversation_id: str | None = None

    def with_organization(self, org_id: str | None) -> ConversationState:
        """
        Bind (or clear) the organization. A conversation belongs to exactly
        one organization, so the conversation id is always dropped.
        """
        return replace(self, org_id=org_id or None, conversation_id=None)

    def with_conversation(self, conversation_id: str | None) -> ConversationState:
        return replace(self, conversation_id=conversation_id or None)

    def to_metadata(self, command: str | None = None) -> dict:
        return {
            "command": command or "",
            "user": self.user.to_dict(),
            "orgId": self.org_id,
            "conversationId": self.conversation_id,
        }

    @classmethod
    def from_metadata(cls, metadata: dict) -> ConversationState:
        return cls(
            user=User.from_dict(metadata.get("user") or {}),
            org_id=metadata.get("orgId") or None,
            conversation_id=metadata.get("conversationId") or None,
        )


def last_metadata(history: Sequence[Turn], participant: str) -> dict | None:
    """Metadata of the newest response from `participant` that has any."""
    for turn in reversed(history):
        if not isinstance(turn, ResponseTurn) or turn.participant != participant:
            continue
        if turn.result.metadata:
            return turn.result.metadata
    return None


async def recover_state(
    history: Sequence[Turn],
    client: Client,
    participant: str,
    cancellation: CancellationToken | None = None,
) -> ConversationState:
    """
    Rebuild the state for this turn.

    With prior metadata, no network call is made. On the first turn of a
    chain the user is fetched once and organization/conversation stay unset.
    """
    metadata = last_metadata(history, participant)
    if metadata is not None:
        state = ConversationState.from_metadata(metadata)
        logger.debug(
            "Recovered state from history: org=%s conversation=%s",
            state.org_id or "(none)", state.conversation_id or "(none)",
        )
        return state

    user = await client.get_user_info(cancellation)
    logger.info(
        "Fetched user %s (%d organizations)", user.github_login, len(user.organizations)
    )
    return ConversationState(user=user)
