"""Tests for the relay state machine: transitions and guards."""

from __future__ import annotations

import pytest

from tests.fixtures.gateways import final_answer, tool_request
from toolrelay.core.errors import RelayError
from toolrelay.relay.machine import RelayContext, RelayState, RelayStateMachine
from toolrelay.tools.base import ToolCallResult


def _machine(**ctx: object) -> RelayStateMachine:
    messages = ctx.pop("messages", [{"role": "user", "content": "hi"}])
    return RelayStateMachine(RelayContext(messages=messages, **ctx))  # type: ignore[arg-type]


def _awaiting_model(turn: object) -> RelayStateMachine:
    sm = _machine()
    sm.transition(RelayState.AWAITING_MODEL)
    sm.record_turn(turn)  # type: ignore[arg-type]
    return sm


class TestInitialState:
    def test_starts_at_start(self):
        sm = _machine()
        assert sm.state == RelayState.START
        assert not sm.is_terminal

    def test_valid_transitions_from_start(self):
        assert set(_machine().valid_transitions()) == {
            RelayState.AWAITING_MODEL,
            RelayState.FAILED,
        }


class TestHappyPaths:
    def test_final_answer_path(self):
        sm = _awaiting_model(final_answer())
        sm.transition(RelayState.DONE)
        assert sm.state == RelayState.DONE
        assert sm.is_terminal

    def test_tool_path(self):
        sm = _awaiting_model(tool_request(("c1", "search", {"q": "x"})))
        sm.transition(RelayState.EXECUTING_TOOLS)
        sm.record_tool_result(ToolCallResult(call_id="c1", name="search", result=1))
        sm.transition(RelayState.AWAITING_CONTINUATION)
        assert sm.is_terminal
        assert len(sm.context.tool_results) == 1


class TestGuards:
    def test_no_messages(self):
        sm = _machine(messages=[])
        assert not sm.can_transition(RelayState.AWAITING_MODEL)
        with pytest.raises(RelayError, match="no messages"):
            sm.transition(RelayState.AWAITING_MODEL)

    def test_done_requires_final_answer(self):
        sm = _awaiting_model(tool_request(("c1", "search", {})))
        with pytest.raises(RelayError, match="final answer"):
            sm.transition(RelayState.DONE)

    def test_tools_require_tool_request(self):
        sm = _awaiting_model(final_answer())
        with pytest.raises(RelayError, match="did not request"):
            sm.transition(RelayState.EXECUTING_TOOLS)

    def test_pause_requires_every_result(self):
        sm = _awaiting_model(tool_request(("c1", "a", {}), ("c2", "b", {})))
        sm.transition(RelayState.EXECUTING_TOOLS)
        sm.record_tool_result(ToolCallResult(call_id="c1", name="a", result=1))
        with pytest.raises(RelayError, match="every requested tool"):
            sm.transition(RelayState.AWAITING_CONTINUATION)

    def test_skip_state_rejected(self):
        with pytest.raises(RelayError, match="Invalid transition"):
            _machine().transition(RelayState.DONE)


class TestRecording:
    def test_turn_only_while_awaiting_model(self):
        with pytest.raises(RelayError):
            _machine().record_turn(final_answer())

    def test_result_only_while_executing(self):
        sm = _awaiting_model(final_answer())
        with pytest.raises(RelayError):
            sm.record_tool_result(ToolCallResult(call_id="c1", name="a"))


class TestFailure:
    def test_fail_from_any_non_terminal(self):
        for sm in (_machine(), _awaiting_model(final_answer())):
            sm.fail("boom")
            assert sm.state == RelayState.FAILED
            assert sm.context.error == "boom"

    def test_terminal_states_are_final(self):
        sm = _awaiting_model(final_answer())
        sm.transition(RelayState.DONE)
        assert sm.valid_transitions() == []
        with pytest.raises(RelayError, match="terminal"):
            sm.fail("late")
