"""Model gateway interface and data classes.

All provider adapters implement the ``ModelGateway`` protocol. A gateway
turns a conversation plus tool descriptors into a ``ModelTurn``: either a
``FinalAnswer`` or a ``ToolRequest``. Each provider also owns the shape of
its continuation messages (how an assistant tool request and the tool
results are fed back), so the relay never branches on provider.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from toolrelay.tools.base import ToolCallRequest, ToolCallResult, ToolDescriptor


@dataclass(frozen=True, slots=True)
class TokenUsage:
    """Token counts from a single model call."""

    input_tokens: int
    output_tokens: int

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass(frozen=True, slots=True)
class FinalAnswer:
    """The model produced a terminal response.

    ``content`` is the assistant content in provider shape; ``response`` is
    the full provider response as JSON-compatible data.
    """

    content: Any
    response: dict[str, Any]
    usage: TokenUsage = field(default_factory=lambda: TokenUsage(0, 0))
    stop_reason: str = "stop"


@dataclass(frozen=True, slots=True)
class ToolRequest:
    """The model wants tools invoked before it can continue."""

    calls: list[ToolCallRequest]
    content: Any
    response: dict[str, Any]
    usage: TokenUsage = field(default_factory=lambda: TokenUsage(0, 0))
    stop_reason: str = "tool_use"


ModelTurn = FinalAnswer | ToolRequest


@runtime_checkable
class ModelGateway(Protocol):
    """Protocol that all provider adapters must satisfy.

    Implementations are stateless apart from the SDK client; every call
    receives the full conversation.

    ``message_fields`` lists the message keys the provider accepts; the
    relay drops everything else before calling ``converse``.
    ``message_roles`` lists the roles it accepts; any other role is
    rejected as invalid input.
    """

    message_fields: frozenset[str]
    message_roles: frozenset[str]

    @property
    def provider_id(self) -> str:
        """Unique identifier for this provider (e.g. 'anthropic', 'openai')."""
        ...

    def to_provider_tools(
        self, descriptors: list[ToolDescriptor]
    ) -> list[dict[str, Any]]:
        """Map tool descriptors to the provider's tool declaration format.

        Pure: name, description and schema are preserved verbatim.
        """
        ...

    async def converse(
        self,
        messages: list[dict[str, Any]],
        tools: list[ToolDescriptor],
    ) -> ModelTurn:
        """Send a conversation and classify the reply.

        ``messages`` must already be reduced to ``role``/``content``.
        Raises ProviderError on failure; never retries.
        """
        ...

    def assistant_message(self, response: dict[str, Any]) -> dict[str, Any]:
        """Extract the assistant tool-request message from a prior response."""
        ...

    def call_ids(self, response: dict[str, Any]) -> list[str]:
        """Ids of the tool calls requested in a prior response, in order."""
        ...

    def tool_result_messages(
        self, results: list[ToolCallResult]
    ) -> list[dict[str, Any]]:
        """Build the message(s) that feed tool results back to the model."""
        ...

    async def health_check(self) -> bool:
        """Verify the provider is reachable and credentials are valid.

        Returns True if healthy, False otherwise. Must not raise.
        """
        ...


def result_text(result: ToolCallResult) -> str:
    """Render a tool result as the text a model sees."""
    import json

    if result.error is not None:
        return f"Error: {result.error}"
    return json.dumps(result.result)


def to_jsonable(response: Any) -> dict[str, Any]:
    """Dump an SDK response model to plain JSON-compatible data."""
    if isinstance(response, dict):
        return response
    dumped: dict[str, Any] = response.model_dump(mode="json", exclude_none=True)
    return dumped
