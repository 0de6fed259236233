"""
Handler: the core of pulumipus.
Takes one chat turn from the host, talks to Pulumi Copilot, renders the
answer and returns the metadata the next turn recovers its state from.

Turn flow:
  1. Recover state from history (fetches the user on the first turn only)
  2. `org` directive → switch organization and stop; Copilot is not called
  3. No organization bound → resolve one (auto-select or pick list)
  4. Empty prompt → fail before anything is sent
  5. Send the prompt under the turn's cancellation token
  6. Dispatch assistant messages in order: response → markdown,
     status → progress, trace → log only, program → code block + button
  7. Return {command, user, orgId, conversationId}

Failures end the turn with error details but keep whatever state was
already established. Cancellation ends it with no metadata at all.
"""

from __future__ import annotations

import logging

from pulumipus import __version__
from pulumipus.api.auth import TokenProvider
from pulumipus.api.client import Client
from pulumipus.api.models import (
    ROLE_ASSISTANT,
    ChatRequest,
    ChatResponse,
    ProgramMessage,
    ResponseMessage,
    StatusMessage,
    TraceMessage,
    User,
    template_url,
)
from pulumipus.cancellation import CancellationToken
from pulumipus.chat.directives import HELP_COMMAND, HELP_TEXT, ORG_COMMAND
from pulumipus.chat.organizations import (
    OrganizationPicker,
    dismiss_picker,
    override_organization,
    resolve_organization,
)
from pulumipus.chat.state import ConversationState, last_metadata, recover_state
from pulumipus.chat.stream import ChatResponseStream
from pulumipus.chat.types import (
    ChatCommand,
    ChatContext,
    ChatErrorDetails,
    ChatFollowup,
    TurnRequest,
    TurnResult,
)
from pulumipus.config import get_config
from pulumipus.errors import Cancelled, CopilotError, ValidationError
from pulumipus.wiretap import WireLog

logger = logging.getLogger(__name__)

DEFAULT_PARTICIPANT_ID = "pulumi.pulumipus"
CREATE_PROJECT_COMMAND_ID = "pulumipus.createProject"


class Handler:
    """Turns chat turns into Copilot requests and Copilot messages into output."""

    def __init__(
        self,
        client: Client,
        picker: OrganizationPicker = dismiss_picker,
        participant: str = DEFAULT_PARTICIPANT_ID,
        console_url: str = "https://app.pulumi.com",
        wire: WireLog | None = None,
    ):
        self.client = client
        self.picker = picker
        self.participant = participant
        self.console_url = console_url.rstrip("/")
        self.wire = wire

    @classmethod
    def from_config(
        cls,
        token_provider: TokenProvider,
        picker: OrganizationPicker = dismiss_picker,
        cfg: dict | None = None,
    ) -> Handler:
        cfg = cfg or get_config()
        client = Client(
            cfg["api"]["url"],
            f"pulumipus/{__version__}",
            token_provider,
            timeout=cfg["api"].get("timeout", 120),
        )
        wire_cfg = cfg.get("wiretap", {})
        wire = WireLog(wire_cfg["path"]) if wire_cfg.get("enabled") else None
        return cls(
            client,
            picker=picker,
            participant=cfg["participant"]["id"],
            console_url=cfg["console"]["url"],
            wire=wire,
        )

    # ------------------------------------------------------------------
    # Turn handling
    # ------------------------------------------------------------------

    async def handle_request(
        self,
        request: TurnRequest,
        context: ChatContext,
        stream: ChatResponseStream,
        cancellation: CancellationToken | None = None,
    ) -> TurnResult:
        command = (request.command or "").strip().lower() or None
        if command == HELP_COMMAND:
            stream.markdown(HELP_TEXT)
            previous = last_metadata(context.history, self.participant)
            return TurnResult(metadata={**previous, "command": HELP_COMMAND} if previous else None)
        if command and command != ORG_COMMAND:
            logger.warning("Unknown command '%s', treating the turn as a prompt", command)
            command = None

        state: ConversationState | None = None
        try:
            state = await recover_state(context.history, self.client, self.participant, cancellation)

            if command == ORG_COMMAND:
                state = override_organization(state, request.prompt)
                stream.markdown(self._override_message(state))
                return TurnResult(metadata=state.to_metadata(command))

            if not state.org_id:
                state = await resolve_organization(state, self.picker, cancellation)

            query = (request.prompt or "").strip()
            if not query:
                raise ValidationError("A prompt is required.")

            state = await self._exchange(request, query, state, stream, cancellation)
            return TurnResult(metadata=state.to_metadata(command))

        except Cancelled:
            logger.info("Turn cancelled")
            return TurnResult(cancelled=True)
        except CopilotError as e:
            logger.warning("Turn failed (%s): %s", type(e).__name__, e.message)
            return TurnResult(
                metadata=state.to_metadata(command) if state else None,
                error_details=ChatErrorDetails(message=e.message, kind=type(e).__name__),
            )

    async def _exchange(
        self,
        request: TurnRequest,
        query: str,
        state: ConversationState,
        stream: ChatResponseStream,
        cancellation: CancellationToken | None,
    ) -> ConversationState:
        chat_request = ChatRequest(
            query=query,
            org_id=state.org_id,
            url=self._console_url(request, state.org_id),
            conversation_id=state.conversation_id,
        )
        logger.info(
            "Sending a request to Pulumi Copilot (org=%s, conversation=%s)",
            state.org_id, state.conversation_id or "(new)",
        )
        self._tap("outbound", "prompt", query, state)

        response = await self.client.send_prompt(chat_request, cancellation)
        logger.info(
            "Got a response from Pulumi Copilot (conversation=%s, %d messages)",
            response.conversation_id, len(response.messages),
        )

        state = state.with_conversation(response.conversation_id or state.conversation_id)
        self._dispatch(response, state, stream)
        return state

    def _dispatch(self, response: ChatResponse, state: ConversationState, stream: ChatResponseStream):
        """Render assistant messages in the order Copilot sent them."""
        for msg in response.messages:
            if msg.role != ROLE_ASSISTANT:
                continue

            if isinstance(msg, ResponseMessage):
                stream.markdown(msg.content)
                self._tap("inbound", msg.kind, msg.content, state)
            elif isinstance(msg, StatusMessage):
                stream.progress(msg.content)
                self._tap("inbound", msg.kind, msg.content, state)
            elif isinstance(msg, TraceMessage):
                logger.info("Copilot trace message: %s", msg.content)
                self._tap("inbound", msg.kind, msg.content, state)
            elif isinstance(msg, ProgramMessage):
                program = msg.content
                stream.markdown(f"```{program.language}\n{program.code}\n```")
                stream.button(ChatCommand(
                    command=CREATE_PROJECT_COMMAND_ID,
                    title="Create Project",
                    arguments=[template_url(response.conversation_id, program)],
                ))
                self._tap("inbound", msg.kind, program.code, state, language=program.language)

    def _console_url(self, request: TurnRequest, org_id: str) -> str:
        """A console page the user referenced, else the organization's home page."""
        for ref in request.references:
            if isinstance(ref.value, str) and ref.value.startswith(self.console_url + "/"):
                return ref.value
        return f"{self.console_url}/{org_id}"

    @staticmethod
    def _override_message(state: ConversationState) -> str:
        if not state.org_id:
            return (
                "Cleared the active organization. "
                "You will be asked to choose one with your next prompt."
            )
        org = state.user.find_organization(state.org_id)
        name = f" ({org.name})" if org and org.name and org.name != state.org_id else ""
        return (
            f"Now using the **{state.org_id}** organization{name}. "
            "Your next prompt starts a new conversation."
        )

    def _tap(self, direction: str, kind: str, content: str, state: ConversationState, language: str = ""):
        if self.wire is None:
            return
        self.wire.log(
            direction=direction,
            kind=kind,
            content=content,
            org_id=state.org_id or "",
            conversation_id=state.conversation_id or "",
            language=language,
        )

    # ------------------------------------------------------------------
    # Follow-ups
    # ------------------------------------------------------------------

    def provide_followups(self, result: TurnResult, context: ChatContext | None = None) -> list[ChatFollowup]:
        """
        Suggest an organization per membership while none is bound.
        Once one is bound there is nothing to suggest.
        """
        metadata = result.metadata
        if not metadata or metadata.get("orgId"):
            return []

        user = User.from_dict(metadata.get("user") or {})
        return [
            ChatFollowup(
                prompt=org.github_login,
                label=f"Use the {org.name or org.github_login} organization",
                command=ORG_COMMAND,
            )
            for org in user.organizations
        ]
