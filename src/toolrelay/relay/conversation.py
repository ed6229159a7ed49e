"""Tool-calling conversation relay.

Alternates between a model gateway and a tool endpoint for exactly one
model turn per call. A turn that requests tools is answered with the
executed results and ``needsToolResponse``; the caller drives the next
turn through :meth:`ConversationRelay.continue_chat`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from toolrelay.core.errors import (
    InvalidInputError,
    ServiceUnavailableError,
    ToolServerError,
)
from toolrelay.providers.base import ToolRequest
from toolrelay.relay.machine import RelayContext, RelayState, RelayStateMachine
from toolrelay.tools.base import ToolCallResult
from toolrelay.tools.validation import check_arguments

if TYPE_CHECKING:
    from toolrelay.providers.base import ModelGateway
    from toolrelay.tools.base import ToolCallRequest, ToolDescriptor, ToolEndpoint

logger = logging.getLogger(__name__)

VALID_ROLES = frozenset({"system", "user", "assistant", "tool"})


@dataclass(frozen=True, slots=True)
class RelayResult:
    """What one relay call hands back to its caller."""

    response: dict[str, Any]
    tool_results: list[ToolCallResult] = field(default_factory=list)
    needs_tool_response: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"response": self.response}
        if self.needs_tool_response:
            data["toolResults"] = [r.to_dict() for r in self.tool_results]
        data["needsToolResponse"] = self.needs_tool_response
        return data


def validate_messages(messages: Any, roles: frozenset[str] = VALID_ROLES) -> None:
    """Reject conversations that cannot be sent to the provider.

    Raises:
        InvalidInputError: If ``messages`` is not a non-empty list of
            objects with a ``role`` in ``roles`` and a ``content`` key.
    """
    if not isinstance(messages, list) or not messages:
        msg = "Messages array is required"
        raise InvalidInputError(msg)
    for i, message in enumerate(messages):
        if not isinstance(message, dict):
            msg = f"Message {i} must be an object"
            raise InvalidInputError(msg)
        if message.get("role") not in roles:
            msg = f"Message {i} has an invalid role: {message.get('role')!r}"
            raise InvalidInputError(msg)
        if "content" not in message:
            msg = f"Message {i} is missing content"
            raise InvalidInputError(msg)


def _check_result_ids(requested: list[str], results: list[ToolCallResult]) -> None:
    """Every requested call needs exactly one result, and nothing else.

    Raises:
        InvalidInputError: On a duplicate, unknown or missing call id.
    """
    seen: set[str] = set()
    for r in results:
        if r.call_id in seen:
            msg = f"Duplicate tool result for call id: {r.call_id}"
            raise InvalidInputError(msg)
        seen.add(r.call_id)

    unknown = [r.call_id for r in results if r.call_id not in requested]
    if unknown:
        msg = f"Tool result for unknown call id(s): {', '.join(unknown)}"
        raise InvalidInputError(msg)
    missing = [cid for cid in requested if cid not in seen]
    if missing:
        msg = f"Missing tool result(s) for call id(s): {', '.join(missing)}"
        raise InvalidInputError(msg)


class ConversationRelay:
    """Brokers one model turn plus any tool calls it requests.

    Holds no per-request state: each call builds its own
    :class:`RelayStateMachine`, so one instance can serve concurrent
    requests.

    Args:
        gateway: Provider adapter the conversation is sent to.
        tools: Shared tool endpoint (may be disconnected).
        validate_arguments: Check model-supplied arguments against the
            tool's declared schema before dispatching.
    """

    def __init__(
        self,
        gateway: ModelGateway,
        tools: ToolEndpoint,
        *,
        validate_arguments: bool = True,
    ) -> None:
        self._gateway = gateway
        self._tools = tools
        self._validate_arguments = validate_arguments

    def clean_messages(self, messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Copy messages keeping only the keys the provider accepts."""
        fields = self._gateway.message_fields
        return [{k: v for k, v in m.items() if k in fields} for m in messages]

    async def chat(self, messages: Any) -> RelayResult:
        """Run a fresh turn over ``messages``.

        Raises:
            InvalidInputError: Malformed conversation (no network call made).
            ServiceUnavailableError: Tool endpoint unreachable after one
                reconnect attempt.
            ProviderError: The model call failed.
        """
        validate_messages(messages, self._gateway.message_roles)
        ctx = RelayContext(messages=self.clean_messages(messages))
        return await self._run(ctx)

    async def continue_chat(
        self,
        messages: Any,
        assistant_response: Any,
        tool_results: Any,
    ) -> RelayResult:
        """Feed tool results back to the model and run the next turn.

        ``assistant_response`` is the ``response`` of the previous relay
        output; ``tool_results`` its ``toolResults`` (dicts or
        :class:`ToolCallResult`). The conversation sent is the cleaned
        ``messages`` followed by the assistant tool request and the tool
        result message(s). Inputs are not mutated.
        """
        validate_messages(messages, self._gateway.message_roles)
        if not isinstance(tool_results, list) or not tool_results:
            msg = "Tool results array is required"
            raise InvalidInputError(msg)
        if not isinstance(assistant_response, dict):
            msg = "Assistant response is required"
            raise InvalidInputError(msg)

        results = [
            r if isinstance(r, ToolCallResult) else ToolCallResult.from_dict(r)
            for r in tool_results
        ]
        assistant = self._gateway.assistant_message(assistant_response)
        _check_result_ids(self._gateway.call_ids(assistant_response), results)
        conversation = [
            *self.clean_messages(messages),
            assistant,
            *self._gateway.tool_result_messages(results),
        ]
        ctx = RelayContext(messages=conversation, continuation=True)
        return await self._run(ctx)

    async def execute_tool_calls(
        self,
        calls: list[ToolCallRequest],
        descriptors: list[ToolDescriptor] | None = None,
    ) -> list[ToolCallResult]:
        """Execute calls sequentially in the given order.

        Each failure is captured as the call's ``error``; every call is
        attempted.
        """
        if descriptors is None:
            descriptors = self._tools.list_tools()
        by_name = {d.name: d for d in descriptors}
        return [await self._execute_one(call, by_name) for call in calls]

    # ── Internals ─────────────────────────────────────────────

    async def _run(self, ctx: RelayContext) -> RelayResult:
        sm = RelayStateMachine(ctx)
        try:
            await self._require_tools()
            ctx.tools = self._tools.list_tools()
            sm.transition(RelayState.AWAITING_MODEL)

            turn = await self._gateway.converse(ctx.messages, ctx.tools)
            sm.record_turn(turn)
            logger.info(
                "%s %s: %s (%d input, %d output tokens)",
                self._gateway.provider_id,
                "continuation" if ctx.continuation else "turn",
                turn.stop_reason,
                turn.usage.input_tokens,
                turn.usage.output_tokens,
            )

            if not isinstance(turn, ToolRequest):
                sm.transition(RelayState.DONE)
                return RelayResult(response=turn.response)

            sm.transition(RelayState.EXECUTING_TOOLS)
            for result in await self.execute_tool_calls(turn.calls, ctx.tools):
                sm.record_tool_result(result)
            sm.transition(RelayState.AWAITING_CONTINUATION)
        except Exception as exc:
            if not sm.is_terminal:
                sm.fail(str(exc))
            raise

        return RelayResult(
            response=turn.response,
            tool_results=list(ctx.tool_results),
            needs_tool_response=True,
        )

    async def _require_tools(self) -> None:
        if self._tools.is_ready():
            return
        logger.info("Tool endpoint not ready, reconnecting")
        if not await self._tools.ensure_ready():
            msg = "MCP server unavailable"
            raise ServiceUnavailableError(msg)

    async def _execute_one(
        self,
        call: ToolCallRequest,
        descriptors: dict[str, ToolDescriptor],
    ) -> ToolCallResult:
        logger.info("Tool call %s: %s", call.id, call.name)

        if self._validate_arguments:
            problem = check_arguments(call, descriptors)
            if problem is not None:
                logger.warning("Rejected tool call %s: %s", call.id, problem)
                return ToolCallResult(
                    call_id=call.id,
                    name=call.name,
                    arguments=call.arguments,
                    error=problem,
                )

        try:
            result = await self._tools.call_tool(call.name, call.arguments)
        except ToolServerError as exc:
            logger.warning("Tool %s failed: %s", call.name, exc)
            return ToolCallResult(
                call_id=call.id,
                name=call.name,
                arguments=call.arguments,
                error=str(exc),
            )
        return ToolCallResult(
            call_id=call.id,
            name=call.name,
            arguments=call.arguments,
            result=result,
        )
