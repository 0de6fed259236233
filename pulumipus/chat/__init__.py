"""
Chat turn handling: state recovery, organization resolution and the handler.
"""
from pulumipus.chat.handler import CREATE_PROJECT_COMMAND_ID, Handler
from pulumipus.chat.state import ConversationState, recover_state
from pulumipus.chat.stream import ChatResponseStream, RecordingStream

__all__ = [
    "CREATE_PROJECT_COMMAND_ID",
    "Handler",
    "ConversationState",
    "recover_state",
    "ChatResponseStream",
    "RecordingStream",
]
