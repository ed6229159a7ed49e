"""MCP tool client over streamable HTTP.

The MCP SDK's transport and session are async context managers backed by
anyio task groups, which must be exited by the task that entered them. A
request handler that triggers a reconnect is not the task that will later
shut the session down, so the session lives in a dedicated runner task:
``connect()`` starts the runner and waits for it to report the tool list,
``close()`` signals it to leave its context managers.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client
from mcp.types import Implementation

from toolrelay.core.errors import NotConnectedError, ToolExecutionError
from toolrelay.tools.base import ToolDescriptor

logger = logging.getLogger(__name__)


class MCPToolClient:
    """Connection to a remote MCP tool server.

    Implements the :class:`~toolrelay.tools.base.ToolEndpoint` protocol.
    One instance is created per application and shared by all requests.
    """

    def __init__(
        self,
        url: str,
        *,
        client_name: str = "toolrelay",
        client_version: str = "0.1.0",
    ) -> None:
        self.url = url
        self._client_info = Implementation(name=client_name, version=client_version)
        self._session: ClientSession | None = None
        self._tools: list[ToolDescriptor] = []
        self._connected = False
        self._lock = asyncio.Lock()
        self._runner: asyncio.Task[None] | None = None
        self._stop: asyncio.Event | None = None

    # ── ToolEndpoint ─────────────────────────────────────────────

    async def connect(self) -> bool:
        async with self._lock:
            return await self._connect()

    def list_tools(self) -> list[ToolDescriptor]:
        return list(self._tools)

    def is_ready(self) -> bool:
        return self._connected and self._session is not None

    async def ensure_ready(self) -> bool:
        if self.is_ready():
            return True
        async with self._lock:
            # Another request may have reconnected while we waited.
            if self.is_ready():
                return True
            logger.info("MCP client not connected, attempting reconnect")
            return await self._connect()

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        session = self._session
        if not self._connected or session is None:
            raise NotConnectedError

        logger.info("Calling tool: %s", name)
        try:
            result = await session.call_tool(name, arguments)
        except Exception as e:
            logger.error("Tool call failed: %s: %s", name, e)
            raise ToolExecutionError(name, str(e)) from e
        return result.model_dump(mode="json", by_alias=True, exclude_none=True)

    async def close(self) -> None:
        async with self._lock:
            await self._shutdown()
        logger.debug("MCP client closed")

    # ── Internals ────────────────────────────────────────────────

    async def _connect(self) -> bool:
        """Replace any existing session with a fresh one. Caller holds the lock."""
        await self._shutdown()

        logger.info("Connecting to MCP server at %s...", self.url)
        loop = asyncio.get_running_loop()
        ready: asyncio.Future[list[ToolDescriptor]] = loop.create_future()
        self._stop = asyncio.Event()
        self._runner = asyncio.create_task(self._run_session(ready, self._stop))

        try:
            tools = await ready
        except Exception as e:
            logger.error("Failed to connect to MCP server at %s: %s", self.url, e)
            await self._shutdown()
            return False

        self._tools = tools
        self._connected = True
        logger.info("Connected to MCP server, %d tools available", len(tools))
        for tool in tools:
            logger.info("  - %s: %s", tool.name, tool.description)
        return True

    async def _run_session(
        self,
        ready: asyncio.Future[list[ToolDescriptor]],
        stop: asyncio.Event,
    ) -> None:
        """Own the transport and session for their whole lifetime."""
        try:
            async with (
                streamablehttp_client(self.url) as (read_stream, write_stream, _),
                ClientSession(
                    read_stream, write_stream, client_info=self._client_info
                ) as session,
            ):
                await session.initialize()
                listed = await session.list_tools()
                self._session = session
                ready.set_result([ToolDescriptor.from_mcp(t) for t in listed.tools])
                await stop.wait()
        except Exception as e:
            if not ready.done():
                ready.set_exception(e)
            else:
                logger.warning("MCP session ended unexpectedly: %s", e)
        finally:
            self._session = None
            self._connected = False
            if not ready.done():
                ready.set_exception(ConnectionError("MCP session closed"))

    async def _shutdown(self) -> None:
        """Stop the runner task, if any. Caller holds the lock."""
        runner, stop = self._runner, self._stop
        self._runner = None
        self._stop = None
        self._connected = False
        if runner is None or stop is None:
            return
        stop.set()
        if not runner.done():
            try:
                await runner
            except asyncio.CancelledError:
                logger.debug("MCP session runner cancelled during shutdown")
