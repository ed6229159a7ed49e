"""In-process tool endpoint.

Registers plain async callables as tools and serves them through the same
:class:`~toolrelay.tools.base.ToolEndpoint` protocol as the MCP client.
Used as a test double and for running the relay without a tool server.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from toolrelay.core.errors import NotConnectedError, ToolExecutionError
from toolrelay.tools.base import ToolDescriptor

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    ToolHandler = Callable[..., Awaitable[Any]]


class InMemoryToolEndpoint:
    """Tool endpoint backed by a dict of registered handlers.

    ``available`` simulates reachability: while False, ``connect()`` fails
    exactly like an unreachable server would. ``connect_attempts`` and
    ``call_log`` record interactions for assertions.
    """

    def __init__(self, *, available: bool = True) -> None:
        self.available = available
        self._handlers: dict[str, ToolHandler] = {}
        self._descriptors: dict[str, ToolDescriptor] = {}
        self._tools: list[ToolDescriptor] = []
        self._connected = False
        self.connect_attempts = 0
        self.call_log: list[tuple[str, Any]] = []

    def register(
        self,
        name: str,
        handler: ToolHandler,
        *,
        description: str = "",
        input_schema: dict[str, Any] | None = None,
    ) -> None:
        """Register a tool.

        Raises:
            ValueError: If a tool with the same name is already registered.
        """
        if name in self._handlers:
            msg = f"Tool already registered: {name}"
            raise ValueError(msg)
        self._handlers[name] = handler
        self._descriptors[name] = ToolDescriptor(
            name=name,
            description=description,
            input_schema=input_schema or {"type": "object", "properties": {}},
        )

    def disconnect(self) -> None:
        """Drop the simulated session (the tool list is kept)."""
        self._connected = False

    # ── ToolEndpoint ─────────────────────────────────────────────

    async def connect(self) -> bool:
        self.connect_attempts += 1
        if not self.available:
            self._connected = False
            return False
        self._tools = list(self._descriptors.values())
        self._connected = True
        return True

    def list_tools(self) -> list[ToolDescriptor]:
        return list(self._tools)

    def is_ready(self) -> bool:
        return self._connected

    async def ensure_ready(self) -> bool:
        if self._connected:
            return True
        return await self.connect()

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        if not self._connected:
            raise NotConnectedError
        self.call_log.append((name, arguments))
        handler = self._handlers.get(name)
        if handler is None:
            raise ToolExecutionError(name, f"Tool not found: {name}")
        try:
            return await handler(**arguments)
        except Exception as exc:
            raise ToolExecutionError(name, str(exc)) from exc

    async def close(self) -> None:
        self._connected = False
