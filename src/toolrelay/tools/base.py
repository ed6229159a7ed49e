"""Tool endpoint protocol and data types.

Defines the ``ToolEndpoint`` protocol that both the MCP transport and the
in-memory endpoint satisfy, plus data classes for tool descriptors, tool
calls requested by a model, and their results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from toolrelay.core.errors import InvalidInputError


@dataclass(frozen=True, slots=True)
class ToolDescriptor:
    """A tool advertised by the tool server."""

    name: str
    description: str
    input_schema: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mcp(cls, tool: Any) -> ToolDescriptor:
        """Build from an ``mcp.types.Tool``."""
        return cls(
            name=tool.name,
            description=tool.description or "",
            input_schema=dict(tool.inputSchema or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        """Client-facing shape (camelCase schema key, as MCP reports it)."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass(frozen=True, slots=True)
class ToolCallRequest:
    """A tool invocation requested by a model.

    ``arguments`` is whatever the provider produced after JSON decoding;
    normally a dict, but a malformed payload is kept as-is so the relay
    can report it.
    """

    id: str
    name: str
    arguments: Any = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ToolCallResult:
    """Outcome of executing one ToolCallRequest.

    Exactly one of ``result`` / ``error`` is meaningful: ``error`` is set
    when the call failed, otherwise ``result`` holds the raw tool output.
    """

    call_id: str
    name: str
    arguments: Any = field(default_factory=dict)
    result: Any = None
    error: str | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "call_id": self.call_id,
            "name": self.name,
            "arguments": self.arguments,
        }
        if self.error is not None:
            data["error"] = self.error
        else:
            data["result"] = self.result
        return data

    @classmethod
    def from_dict(cls, data: Any) -> ToolCallResult:
        """Parse a client-supplied tool result.

        Accepts ``tool_use_id`` as an alias for ``call_id`` and ``input``
        as an alias for ``arguments``.

        Raises:
            InvalidInputError: If ``data`` is not an object or has no id.
        """
        if not isinstance(data, dict):
            msg = "Each tool result must be an object"
            raise InvalidInputError(msg)
        call_id = data.get("call_id") or data.get("tool_use_id")
        if not call_id or not isinstance(call_id, str):
            msg = "Each tool result requires a call_id"
            raise InvalidInputError(msg)
        error = data.get("error")
        return cls(
            call_id=call_id,
            name=str(data.get("name", "")),
            arguments=data.get("arguments", data.get("input", {})),
            result=data.get("result"),
            error=str(error) if error is not None else None,
        )


@runtime_checkable
class ToolEndpoint(Protocol):
    """Capability interface for a remote tool-execution service."""

    async def connect(self) -> bool:
        """Open a session and fetch the tool list. Never raises.

        Returns True on success; on failure stays disconnected.
        """
        ...

    def list_tools(self) -> list[ToolDescriptor]:
        """Return the last fetched tool list (empty before first connect)."""
        ...

    def is_ready(self) -> bool:
        """Whether a connect has succeeded and the session is open."""
        ...

    async def ensure_ready(self) -> bool:
        """Return True if ready, otherwise attempt a single reconnect."""
        ...

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        """Execute a tool and return its raw, JSON-compatible result.

        Raises:
            NotConnectedError: If called before a successful connect.
            ToolExecutionError: If the remote call fails.
        """
        ...

    async def close(self) -> None:
        """Release the session."""
        ...
