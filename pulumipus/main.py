"""
FastAPI application: an HTTP bridge for chat hosts that are not Python.

POST /chat runs one turn. The caller sends the prompt, the optional
directive, any references and the full prior history (the same turns and
metadata we returned before), plus its Pulumi token in the Authorization
header. The response carries the rendered effects, the turn result to store
in the caller's history, and follow-up suggestions.

The bridge cannot ask the user anything, so when the user belongs to several
organizations and none is bound, the pick list counts as dismissed: the turn
fails and the follow-ups list one `org` suggestion per organization.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Header
from pydantic import BaseModel, Field

from pulumipus import __version__
from pulumipus.api.auth import StaticTokenProvider
from pulumipus.chat.handler import Handler
from pulumipus.chat.organizations import dismiss_picker
from pulumipus.chat.stream import RecordingStream
from pulumipus.chat.types import ChatContext, ChatReference, TurnRequest, turn_from_dict
from pulumipus.config import get_config, setup_logging

logger = logging.getLogger(__name__)


class ReferenceBody(BaseModel):
    id: str
    value: Any = None


class ChatBody(BaseModel):
    prompt: str = ""
    command: str | None = None
    references: list[ReferenceBody] = Field(default_factory=list)
    history: list[dict] = Field(default_factory=list)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    cfg = get_config()
    setup_logging(cfg)
    logger.info(
        "pulumipus %s bridge up: api=%s participant=%s",
        __version__, cfg["api"]["url"], cfg["participant"]["id"],
    )
    yield
    logger.info("pulumipus bridge shutting down")


app = FastAPI(title="pulumipus", version=__version__, lifespan=lifespan)


def _access_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() in ("token", "bearer") and value.strip():
        return value.strip()
    return None


@app.get("/health")
async def health():
    return {"status": "ok", "version": __version__}


@app.post("/chat")
async def chat(body: ChatBody, authorization: str | None = Header(default=None)):
    provider = StaticTokenProvider(_access_token(authorization))
    handler = Handler.from_config(provider, picker=dismiss_picker)

    request = TurnRequest(
        prompt=body.prompt,
        command=body.command,
        references=[ChatReference(id=r.id, value=r.value) for r in body.references],
    )
    context = ChatContext(history=[turn_from_dict(t) for t in body.history])
    stream = RecordingStream()

    try:
        result = await handler.handle_request(request, context, stream)
        followups = handler.provide_followups(result, context)
    finally:
        if handler.wire:
            handler.wire.close()

    return {
        "effects": [e.to_dict() for e in stream.effects],
        "result": result.to_dict(),
        "followups": [
            {"prompt": f.prompt, "label": f.label, "command": f.command} for f in followups
        ],
        "participant": handler.participant,
        "reauthenticate": provider.detail,
    }
