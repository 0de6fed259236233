"""
Response sinks.

A ChatResponseStream is where a turn's visible output goes: markdown prose,
transient progress lines and buttons. Hosts implement it; RecordingStream
collects the effects in order so they can be returned over HTTP or asserted
on in tests.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field

from pulumipus.chat.types import ChatCommand


class ChatResponseStream(abc.ABC):
    @abc.abstractmethod
    def markdown(self, text: str):
        ...

    @abc.abstractmethod
    def progress(self, text: str):
        ...

    @abc.abstractmethod
    def button(self, command: ChatCommand):
        ...


@dataclass
class Effect:
    kind: str  # markdown | progress | button
    value: str = ""
    command: ChatCommand | None = None

    def to_dict(self) -> dict:
        out = {"kind": self.kind, "value": self.value}
        if self.command:
            out["command"] = {
                "command": self.command.command,
                "title": self.command.title,
                "arguments": list(self.command.arguments),
            }
        return out


@dataclass
class RecordingStream(ChatResponseStream):
    effects: list[Effect] = field(default_factory=list)

    def markdown(self, text: str):
        self.effects.append(Effect("markdown", text))

    def progress(self, text: str):
        self.effects.append(Effect("progress", text))

    def button(self, command: ChatCommand):
        self.effects.append(Effect("button", command.title, command))

    def of_kind(self, kind: str) -> list[Effect]:
        return [e for e in self.effects if e.kind == kind]

    @property
    def text(self) -> str:
        """Everything the user would see, joined."""
        return "\n".join(e.value for e in self.effects)
