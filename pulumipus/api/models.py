"""
Wire types for the Pulumi Cloud REST API.

The backend speaks camelCase JSON; these dataclasses carry snake_case
attributes and convert at the edges with from_dict()/to_dict().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Union

logger = logging.getLogger(__name__)

ROLE_ASSISTANT = "assistant"

# A legacy project archive served when a program arrives without its own URL.
FALLBACK_TEMPLATE_URL = (
    "https://www.pulumi.com/ai/api/project/859bfc82-d039-4b24-ac02-751e3b4e22f6.zip"
)


# ---------------------------------------------------------------------------
# User API
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OrganizationSummary:
    github_login: str
    name: str = ""
    avatar_url: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> OrganizationSummary:
        return cls(
            github_login=data.get("githubLogin", ""),
            name=data.get("name", ""),
            avatar_url=data.get("avatarUrl", ""),
        )

    def to_dict(self) -> dict:
        return {
            "githubLogin": self.github_login,
            "name": self.name,
            "avatarUrl": self.avatar_url,
        }


@dataclass(frozen=True)
class User:
    """Identity returned by GET /api/user."""
    id: str
    name: str = ""
    email: str = ""
    github_login: str = ""
    avatar_url: str = ""
    has_mfa: bool = False
    organizations: tuple[OrganizationSummary, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> User:
        _expect(data, dict, "user")
        for o in _expect(data.get("organizations") or [], list, "organizations"):
            _expect(o, dict, "organization")
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            email=data.get("email", ""),
            github_login=data.get("githubLogin", ""),
            avatar_url=data.get("avatarUrl", ""),
            has_mfa=bool(data.get("hasMFA", False)),
            organizations=tuple(
                OrganizationSummary.from_dict(o) for o in data.get("organizations") or []
            ),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "githubLogin": self.github_login,
            "avatarUrl": self.avatar_url,
            "hasMFA": self.has_mfa,
            "organizations": [o.to_dict() for o in self.organizations],
        }

    @property
    def organization_logins(self) -> list[str]:
        return [o.github_login for o in self.organizations]

    def find_organization(self, login: str) -> OrganizationSummary | None:
        """Exact, case-sensitive lookup by login handle."""
        for org in self.organizations:
            if org.github_login == login:
                return org
        return None


# ---------------------------------------------------------------------------
# Chat API
# ---------------------------------------------------------------------------

@dataclass
class ChatRequest:
    query: str
    org_id: str
    url: str | None = None
    conversation_id: str | None = None

    def to_dict(self) -> dict:
        cloud_context = {"orgId": self.org_id}
        if self.url:
            cloud_context["url"] = self.url
        body = {
            "query": self.query,
            "state": {"client": {"cloudContext": cloud_context}},
        }
        if self.conversation_id:
            body["conversationId"] = self.conversation_id
        return body


@dataclass(frozen=True)
class ProgramPlan:
    instructions: str = ""
    search_terms: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProgramContent:
    code: str
    language: str
    plan: ProgramPlan = field(default_factory=ProgramPlan)
    template_url: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> ProgramContent:
        plan = _expect(data.get("plan") or {}, dict, "program plan")
        return cls(
            code=data.get("code", ""),
            language=data.get("language", ""),
            plan=ProgramPlan(
                instructions=plan.get("instructions", ""),
                search_terms=tuple(plan.get("searchTerms") or []),
            ),
            template_url=data.get("templateUrl") or None,
        )


@dataclass(frozen=True)
class TraceMessage:
    role: str
    content: str
    kind: str = field(default="trace", init=False)


@dataclass(frozen=True)
class ResponseMessage:
    role: str
    content: str
    kind: str = field(default="response", init=False)


@dataclass(frozen=True)
class StatusMessage:
    role: str
    content: str
    kind: str = field(default="status", init=False)


@dataclass(frozen=True)
class ProgramMessage:
    role: str
    content: ProgramContent
    kind: str = field(default="program", init=False)


Message = Union[TraceMessage, ResponseMessage, StatusMessage, ProgramMessage]

_TEXT_KINDS = {
    "trace": TraceMessage,
    "response": ResponseMessage,
    "status": StatusMessage,
}


def _expect(value, kind: type, what: str):
    if not isinstance(value, kind):
        raise ValueError(f"{what} is {type(value).__name__}, expected {kind.__name__}")
    return value


def parse_message(data: dict) -> Message | None:
    """
    Build a Message from its wire form. Unknown kinds return None; a
    malformed entry of a known kind raises ValueError.
    """
    _expect(data, dict, "message")
    kind = data.get("kind")
    role = data.get("role", ROLE_ASSISTANT)
    if kind in _TEXT_KINDS:
        content = _expect(data.get("content") or "", str, f"{kind} content")
        return _TEXT_KINDS[kind](role=role, content=content)
    if kind == "program":
        content = _expect(data.get("content") or {}, dict, "program content")
        return ProgramMessage(role=role, content=ProgramContent.from_dict(content))
    logger.warning("Ignoring Copilot message of unknown kind %r", kind)
    return None


@dataclass
class ChatResponse:
    conversation_id: str
    messages: list[Message] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> ChatResponse:
        _expect(data, dict, "chat response")
        messages = []
        for raw in _expect(data.get("messages") or [], list, "messages"):
            msg = parse_message(raw)
            if msg is not None:
                messages.append(msg)
        return cls(conversation_id=data.get("conversationId") or "", messages=messages)


def template_url(conversation_id: str, program: ProgramContent) -> str:
    """URL of the project archive for a generated program."""
    if program.template_url:
        # e.g. https://api.pulumi.com/api/orgs/<org>/ai/conversations/<id>/programs/<name>.zip
        return program.template_url
    return FALLBACK_TEMPLATE_URL
