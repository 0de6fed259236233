"""
Pulumi Cloud REST client.

Two calls: the signed-in user (GET /api/user) and a Copilot prompt
(POST /api/ai/chat/preview). Credentials are attached by a request hook that
asks the TokenProvider for a token; a response hook invalidates the provider
when the service answers 401. Each call is attempted once and races the
caller's CancellationToken.
"""

from __future__ import annotations

import logging
import time

import httpx

from pulumipus.api.auth import TokenProvider
from pulumipus.api.models import ChatRequest, ChatResponse, User
from pulumipus.cancellation import CancellationToken, race
from pulumipus.errors import AuthenticationRejected, ConnectivityError, Unauthenticated

logger = logging.getLogger(__name__)

REJECTED_DETAIL = "Your Pulumi access token was rejected. Please re-authenticate."


class Client:
    """Async client for the Pulumi Cloud endpoints Copilot needs."""

    def __init__(
        self,
        base_url: str,
        user_agent: str,
        token_provider: TokenProvider,
        timeout: float = 120,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.token_provider = token_provider
        self.timeout = timeout
        self._transport = transport

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={
                "User-Agent": self.user_agent,
                "X-Pulumi-Source": "pulumipus",
                "Accept": "application/json",
            },
            event_hooks={
                "request": [self._authorize],
                "response": [self._check_rejected],
            },
        )

    async def _authorize(self, request: httpx.Request):
        token = await self.token_provider.request()
        if not token:
            raise Unauthenticated()
        request.headers["Authorization"] = f"token {token.access_token}"
        logger.debug("→ %s %s", request.method, request.url)

    async def _check_rejected(self, response: httpx.Response):
        logger.debug(
            "← %s %s %d", response.request.method, response.request.url, response.status_code
        )
        if response.status_code == 401:
            self.token_provider.invalidate(detail=REJECTED_DETAIL)

    async def _call(
        self,
        method: str,
        path: str,
        cancellation: CancellationToken | None,
        body: dict | None = None,
    ) -> dict:
        t0 = time.monotonic()
        async with self._http() as http:
            try:
                resp = await race(http.request(method, path, json=body), cancellation)
            except httpx.HTTPError as e:
                logger.warning("%s %s failed: %s", method, path, e)
                raise ConnectivityError(f"Pulumi REST API is unavailable: {e}.") from e

        latency = (time.monotonic() - t0) * 1000
        logger.info("%s %s → HTTP %d (%.0fms)", method, path, resp.status_code, latency)

        if resp.status_code == 401:
            raise AuthenticationRejected(REJECTED_DETAIL)
        if resp.status_code >= 400:
            raise ConnectivityError(
                f"Pulumi REST API is unavailable (HTTP {resp.status_code}): {resp.text[:200]}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as e:
            raise ConnectivityError(
                "Pulumi REST API returned a response that is not JSON.",
                status_code=resp.status_code,
            ) from e

    @staticmethod
    def _parse(parser, data, path: str):
        try:
            return parser(data)
        except (TypeError, ValueError) as e:
            logger.warning("%s: unexpected response shape: %s", path, e)
            raise ConnectivityError("Pulumi REST API returned an unexpected response.") from e

    async def get_user_info(self, cancellation: CancellationToken | None = None) -> User:
        data = await self._call("GET", "/api/user", cancellation)
        return self._parse(User.from_dict, data, "/api/user")

    async def send_prompt(
        self,
        request: ChatRequest,
        cancellation: CancellationToken | None = None,
    ) -> ChatResponse:
        data = await self._call("POST", "/api/ai/chat/preview", cancellation, body=request.to_dict())
        return self._parse(ChatResponse.from_dict, data, "/api/ai/chat/preview")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} base_url={self.base_url!r}>"
