"""
Shared fixtures: a fake Pulumi Cloud behind httpx.MockTransport.
"""

import json

import httpx
import pytest

from pulumipus.api.auth import StaticTokenProvider
from pulumipus.api.client import Client
from pulumipus.chat.handler import Handler

PARTICIPANT = "test.pulumipus"


def org(login: str, name: str = "") -> dict:
    return {"githubLogin": login, "name": name or login.title(), "avatarUrl": f"https://avatars/{login}"}


def user_payload(*orgs: dict) -> dict:
    return {
        "id": "u-1",
        "name": "Pat Doe",
        "email": "pat@example.com",
        "githubLogin": "pat",
        "avatarUrl": "https://avatars/pat",
        "hasMFA": True,
        "organizations": list(orgs),
    }


class FakeCopilot:
    """Routes /api/user and /api/ai/chat/preview, recording every request."""

    def __init__(self, user: dict | None = None, chat: dict | None = None,
                 user_status: int = 200, chat_status: int = 200):
        self.user = user or user_payload(org("acme"))
        self.chat = chat or {"conversationId": "conv-1", "messages": []}
        self.user_status = user_status
        self.chat_status = chat_status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/api/user":
            return httpx.Response(self.user_status, json=self.user)
        if request.url.path == "/api/ai/chat/preview":
            return httpx.Response(self.chat_status, json=self.chat)
        return httpx.Response(404, json={"message": "not found"})

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    @property
    def user_calls(self) -> list[httpx.Request]:
        return self.calls("/api/user")

    @property
    def prompt_calls(self) -> list[httpx.Request]:
        return self.calls("/api/ai/chat/preview")

    def prompt_body(self, index: int = -1) -> dict:
        return json.loads(self.prompt_calls[index].content)


@pytest.fixture
def copilot():
    return FakeCopilot()


def make_client(copilot, provider=None) -> Client:
    return Client(
        "https://api.test",
        "pulumipus/test",
        provider or StaticTokenProvider("pul-secret"),
        transport=httpx.MockTransport(copilot),
    )


def make_handler(copilot, picker=None, provider=None) -> Handler:
    kwargs = {"picker": picker} if picker else {}
    return Handler(
        make_client(copilot, provider),
        participant=PARTICIPANT,
        console_url="https://app.test",
        **kwargs,
    )
