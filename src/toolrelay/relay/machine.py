"""Relay state machine: states, context, transitions, guards.

Pure logic module. No IO (no provider calls, no tool calls).
``ConversationRelay`` performs the work; this module tracks where a
single request is and refuses transitions that make no sense.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from toolrelay.core.errors import RelayError
from toolrelay.providers.base import FinalAnswer, ToolRequest

if TYPE_CHECKING:
    from collections.abc import Sequence

    from toolrelay.providers.base import ModelTurn
    from toolrelay.tools.base import ToolCallResult, ToolDescriptor


class RelayState(enum.Enum):
    """States of one relay request."""

    START = "start"
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    AWAITING_CONTINUATION = "awaiting_continuation"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RelayContext:
    """Mutable state for one relay request.

    Created per request, mutated by the state machine as the relay
    completes each step.
    """

    messages: list[dict[str, Any]] = field(default_factory=list)
    continuation: bool = False

    state: RelayState = RelayState.START

    # Set while AWAITING_MODEL
    tools: list[ToolDescriptor] = field(default_factory=list)

    # Set by the gateway reply
    turn: ModelTurn | None = None

    # Set while EXECUTING_TOOLS, in emitted order
    tool_results: list[ToolCallResult] = field(default_factory=list)

    error: str | None = None


# FAILED can be reached from any non-terminal state (handled separately).
_VALID_TRANSITIONS: dict[RelayState, frozenset[RelayState]] = {
    RelayState.START: frozenset({RelayState.AWAITING_MODEL}),
    RelayState.AWAITING_MODEL: frozenset(
        {RelayState.DONE, RelayState.EXECUTING_TOOLS}
    ),
    RelayState.EXECUTING_TOOLS: frozenset({RelayState.AWAITING_CONTINUATION}),
    RelayState.AWAITING_CONTINUATION: frozenset(),
    RelayState.DONE: frozenset(),
    RelayState.FAILED: frozenset(),
}

_TERMINAL_STATES: frozenset[RelayState] = frozenset(
    {RelayState.DONE, RelayState.AWAITING_CONTINUATION, RelayState.FAILED}
)


class RelayStateMachine:
    """Manages relay state transitions with guard validation."""

    def __init__(self, context: RelayContext) -> None:
        self._ctx = context

    @property
    def context(self) -> RelayContext:
        return self._ctx

    @property
    def state(self) -> RelayState:
        return self._ctx.state

    @property
    def is_terminal(self) -> bool:
        """Whether the request has finished (answered, paused or failed)."""
        return self._ctx.state in _TERMINAL_STATES

    def can_transition(self, to: RelayState) -> bool:
        """Check if a transition is valid without raising."""
        if self._ctx.state in _TERMINAL_STATES:
            return False
        if to == RelayState.FAILED:
            return True
        if to not in _VALID_TRANSITIONS.get(self._ctx.state, frozenset()):
            return False
        return self._check_guard(to) is None

    def transition(self, to: RelayState) -> None:
        """Execute a state transition with guard validation.

        Raises:
            RelayError: If the transition is invalid or a guard
                condition is not met.
        """
        self._validate_transition(to)
        self._ctx.state = to

    def fail(self, error: str) -> None:
        """Transition to FAILED and record the error.

        Raises:
            RelayError: If already in a terminal state.
        """
        self.transition(RelayState.FAILED)
        self._ctx.error = error

    def record_turn(self, turn: ModelTurn) -> None:
        """Store the gateway reply; only valid while awaiting the model."""
        if self._ctx.state != RelayState.AWAITING_MODEL:
            msg = f"Cannot record a model turn in state {self._ctx.state.value}"
            raise RelayError(msg)
        self._ctx.turn = turn

    def record_tool_result(self, result: ToolCallResult) -> None:
        """Append one tool outcome; only valid while executing tools."""
        if self._ctx.state != RelayState.EXECUTING_TOOLS:
            msg = f"Cannot record a tool result in state {self._ctx.state.value}"
            raise RelayError(msg)
        self._ctx.tool_results.append(result)

    def valid_transitions(self) -> Sequence[RelayState]:
        """Return the list of currently valid transitions."""
        if self._ctx.state in _TERMINAL_STATES:
            return []
        candidates = list(_VALID_TRANSITIONS.get(self._ctx.state, frozenset()))
        candidates.append(RelayState.FAILED)
        return [t for t in candidates if self.can_transition(t)]

    # ── Internals ─────────────────────────────────────────────

    def _validate_transition(self, to: RelayState) -> None:
        current = self._ctx.state

        if current in _TERMINAL_STATES:
            msg = f"Cannot transition from terminal state {current.value}"
            raise RelayError(msg)

        if to == RelayState.FAILED:
            return

        if to not in _VALID_TRANSITIONS.get(current, frozenset()):
            msg = f"Invalid transition: {current.value} -> {to.value}"
            raise RelayError(msg)

        guard_error = self._check_guard(to)
        if guard_error is not None:
            raise RelayError(guard_error)

    def _check_guard(self, to: RelayState) -> str | None:
        """Return an error message if a guard condition fails, else None."""
        ctx = self._ctx

        if to == RelayState.AWAITING_MODEL:
            if not ctx.messages:
                return "Cannot call model: no messages"

        elif to == RelayState.DONE:
            if not isinstance(ctx.turn, FinalAnswer):
                return "Cannot finish: model did not return a final answer"

        elif to == RelayState.EXECUTING_TOOLS:
            if not isinstance(ctx.turn, ToolRequest):
                return "Cannot execute tools: model did not request any"

        elif to == RelayState.AWAITING_CONTINUATION and (
            not isinstance(ctx.turn, ToolRequest)
            or len(ctx.tool_results) != len(ctx.turn.calls)
        ):
            return "Cannot pause: not every requested tool has a result"

        return None
