"""
Access token lifecycle.

The client never stores credentials itself. It asks a TokenProvider for a
token before every call and tells it when the backend rejects one. The
provider remembers the rejection so the next request() forces a fresh,
interactive sign-in with the reason shown to the user.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthenticationToken:
    access_token: str

    def __repr__(self) -> str:
        return "AuthenticationToken(access_token=***)"


# (force_new_session, detail) -> token or None when the user declines
SessionSource = Callable[[bool, "str | None"], Awaitable["AuthenticationToken | None"]]


class TokenProvider(abc.ABC):
    @abc.abstractmethod
    async def request(self) -> AuthenticationToken | None:
        """Return a token, or None if the user declined to sign in."""
        ...

    @abc.abstractmethod
    def invalidate(self, detail: str | None = None):
        """Mark the current token as untrustworthy."""
        ...


class SessionTokenProvider(TokenProvider):
    """
    Token provider backed by the host's identity-session mechanism.

    State is a single force-new-session flag plus the pending detail. Both
    are overwritten on each invalidate() and reset as soon as request()
    consumes them, so back-to-back rejections from overlapping calls collapse
    into one forced sign-in.
    """

    def __init__(self, get_session: SessionSource):
        self._get_session = get_session
        self._force_new_session = False
        self._detail: str | None = None

    @property
    def force_new_session(self) -> bool:
        return self._force_new_session

    async def request(self) -> AuthenticationToken | None:
        force, detail = self._force_new_session, self._detail
        self._force_new_session = False
        self._detail = None
        if force:
            logger.info("Requesting a new Pulumi session: %s", detail or "(no detail)")
        return await self._get_session(force, detail)

    def invalidate(self, detail: str | None = None):
        self._force_new_session = True
        self._detail = detail
        logger.debug("Token invalidated: %s", detail or "(no detail)")


class StaticTokenProvider(TokenProvider):
    """A fixed token, e.g. forwarded by an HTTP caller. Invalidation just drops it."""

    def __init__(self, access_token: str | None):
        self._token = AuthenticationToken(access_token) if access_token else None
        self.detail: str | None = None

    async def request(self) -> AuthenticationToken | None:
        return self._token

    def invalidate(self, detail: str | None = None):
        self._token = None
        self.detail = detail
