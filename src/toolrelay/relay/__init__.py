"""Conversation relay: one model turn plus the tool calls it requests."""

from toolrelay.relay.conversation import ConversationRelay, RelayResult, validate_messages
from toolrelay.relay.machine import RelayContext, RelayState, RelayStateMachine

__all__ = [
    "ConversationRelay",
    "RelayContext",
    "RelayResult",
    "RelayState",
    "RelayStateMachine",
    "validate_messages",
]
