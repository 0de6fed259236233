"""
Organization resolution.

Copilot needs an organization before it accepts any prompt. When the
recovered state has none, pick it from the user's memberships: a single
membership is chosen silently, several are offered in a pick list. The user
can also switch explicitly with the `org` directive.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Sequence

from pulumipus.api.models import OrganizationSummary
from pulumipus.cancellation import CancellationToken, race
from pulumipus.chat.state import ConversationState
from pulumipus.errors import (
    NoOrganizationsError,
    OrganizationSelectionDismissed,
    UnknownOrganizationError,
)

logger = logging.getLogger(__name__)

# Shows the choices and returns the chosen login, or None when dismissed.
OrganizationPicker = Callable[[Sequence[OrganizationSummary]], Awaitable["str | None"]]


async def dismiss_picker(organizations: Sequence[OrganizationSummary]) -> str | None:
    """Picker for hosts that cannot ask the user anything."""
    return None


async def resolve_organization(
    state: ConversationState,
    picker: OrganizationPicker,
    cancellation: CancellationToken | None = None,
) -> ConversationState:
    """Bind an organization to a state that has none."""
    orgs = state.user.organizations
    if not orgs:
        raise NoOrganizationsError()

    if len(orgs) == 1:
        chosen = orgs[0].github_login
        logger.info("Auto-selected the only organization: %s", chosen)
    else:
        chosen = await race(picker(orgs), cancellation)
        if not chosen:
            raise OrganizationSelectionDismissed()
        if state.user.find_organization(chosen) is None:
            raise UnknownOrganizationError(chosen)
        logger.info("User selected organization: %s", chosen)

    if chosen == state.org_id:
        return state
    return state.with_organization(chosen)


def override_organization(state: ConversationState, handle: str) -> ConversationState:
    """
    Apply an explicit `org <handle>` directive.

    An empty handle clears the organization so the next turn resolves it
    again. Otherwise the handle must match a membership exactly. The
    conversation id is cleared either way, including a re-selection of the
    organization that is already active.
    """
    handle = handle.strip()
    if not handle:
        logger.info("Cleared the active organization (was %s)", state.org_id or "(none)")
        return state.with_organization(None)

    if state.user.find_organization(handle) is None:
        raise UnknownOrganizationError(handle)

    logger.info("Organization override: %s → %s", state.org_id or "(none)", handle)
    return state.with_organization(handle)
