"""
Shapes exchanged with the chat host.

The host hands us a TurnRequest, the prior turns (ChatContext), a
ChatResponseStream to render into and a CancellationToken. We hand back a
TurnResult whose metadata the host stores with the turn and gives back to us
in later histories.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass
class ChatReference:
    """Something the user attached to the prompt (a file, a URL, a selection)."""
    id: str
    value: Any = None


@dataclass
class TurnRequest:
    prompt: str = ""
    command: str | None = None
    references: list[ChatReference] = field(default_factory=list)


@dataclass
class ChatErrorDetails:
    message: str
    kind: str = ""


@dataclass
class TurnResult:
    metadata: dict | None = None
    error_details: ChatErrorDetails | None = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error_details is None and not self.cancelled

    def to_dict(self) -> dict:
        return {
            "metadata": self.metadata,
            "errorDetails": (
                {"message": self.error_details.message, "kind": self.error_details.kind}
                if self.error_details else None
            ),
            "cancelled": self.cancelled,
        }


@dataclass
class RequestTurn:
    prompt: str
    participant: str
    command: str | None = None


@dataclass
class ResponseTurn:
    participant: str
    result: TurnResult
    command: str | None = None


Turn = Union[RequestTurn, ResponseTurn]


@dataclass
class ChatContext:
    history: list[Turn] = field(default_factory=list)


@dataclass
class ChatCommand:
    """An actionable button rendered under a response."""
    command: str
    title: str
    arguments: list = field(default_factory=list)


@dataclass
class ChatFollowup:
    prompt: str
    label: str = ""
    command: str | None = None


def turn_from_dict(data: dict) -> Turn:
    """Rebuild a history entry sent by a remote host."""
    participant = data.get("participant", "")
    if data.get("type") == "response" or "result" in data:
        raw = data.get("result") or {}
        error = raw.get("errorDetails")
        return ResponseTurn(
            participant=participant,
            command=data.get("command"),
            result=TurnResult(
                metadata=raw.get("metadata"),
                error_details=ChatErrorDetails(error.get("message", ""), error.get("kind", "")) if error else None,
                cancelled=bool(raw.get("cancelled", False)),
            ),
        )
    return RequestTurn(
        prompt=data.get("prompt", ""),
        participant=participant,
        command=data.get("command"),
    )
