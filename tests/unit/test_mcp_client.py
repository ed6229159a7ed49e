"""Tests for the MCP streamable-HTTP tool client (transport faked)."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import pytest

from toolrelay.core.errors import NotConnectedError, ToolExecutionError
from toolrelay.tools import mcp_client
from toolrelay.tools.mcp_client import MCPToolClient

_TOOLS = [
    SimpleNamespace(
        name="search",
        description="Search the index",
        inputSchema={"type": "object", "properties": {"q": {"type": "string"}}},
    )
]


class FakeServer:
    """Stands in for the remote MCP server: counts sessions, scripts calls."""

    def __init__(self, *, reachable: bool = True) -> None:
        self.reachable = reachable
        self.sessions_opened = 0
        self.sessions_closed = 0
        self.call_error: Exception | None = None
        self.calls: list[tuple[str, Any]] = []

    def transport(self, url: str) -> Any:
        server = self

        @asynccontextmanager
        async def _transport():  # type: ignore[no-untyped-def]
            if not server.reachable:
                msg = f"connection refused: {url}"
                raise OSError(msg)
            yield (MagicMock(), MagicMock(), MagicMock())

        return _transport()

    def session(self, read: Any, write: Any, client_info: Any = None) -> Any:
        return _FakeSession(self, client_info)


class _FakeSession:
    def __init__(self, server: FakeServer, client_info: Any) -> None:
        self._server = server
        self.client_info = client_info

    async def __aenter__(self) -> _FakeSession:
        self._server.sessions_opened += 1
        return self

    async def __aexit__(self, *exc: object) -> None:
        self._server.sessions_closed += 1

    async def initialize(self) -> None:
        await asyncio.sleep(0)

    async def list_tools(self) -> Any:
        return SimpleNamespace(tools=_TOOLS)

    async def call_tool(self, name: str, arguments: Any) -> Any:
        self._server.calls.append((name, arguments))
        if self._server.call_error is not None:
            raise self._server.call_error
        result = MagicMock()
        result.model_dump.return_value = {
            "content": [{"type": "text", "text": '{"hits": []}'}],
            "isError": False,
        }
        return result


@pytest.fixture
def server(monkeypatch) -> FakeServer:
    fake = FakeServer()
    monkeypatch.setattr(mcp_client, "streamablehttp_client", fake.transport)
    monkeypatch.setattr(mcp_client, "ClientSession", fake.session)
    return fake


@pytest.fixture
async def client(server):  # type: ignore[no-untyped-def]
    c = MCPToolClient("http://tools.test/mcp", client_name="test", client_version="9")
    yield c
    await c.close()


class TestConnect:
    async def test_not_ready_before_connect(self, client) -> None:
        assert client.is_ready() is False
        assert client.list_tools() == []

    async def test_connect_lists_tools(self, client, server) -> None:
        assert await client.connect() is True
        assert client.is_ready() is True
        assert [t.name for t in client.list_tools()] == ["search"]
        assert server.sessions_opened == 1

    async def test_unreachable_server(self, client, server) -> None:
        server.reachable = False
        assert await client.connect() is False
        assert client.is_ready() is False
        assert client.list_tools() == []

    async def test_reconnect_replaces_session(self, client, server) -> None:
        await client.connect()
        await client.connect()
        assert server.sessions_opened == 2
        assert server.sessions_closed == 1
        assert client.is_ready() is True

    async def test_close_tears_down_session(self, client, server) -> None:
        await client.connect()
        await client.close()
        assert client.is_ready() is False
        assert server.sessions_closed == 1


class TestEnsureReady:
    async def test_short_circuits_when_ready(self, client, server) -> None:
        await client.connect()
        assert await client.ensure_ready() is True
        assert server.sessions_opened == 1

    async def test_single_flight(self, client, server) -> None:
        results = await asyncio.gather(*(client.ensure_ready() for _ in range(5)))
        assert results == [True] * 5
        assert server.sessions_opened == 1

    async def test_still_unreachable(self, client, server) -> None:
        server.reachable = False
        assert await client.ensure_ready() is False

    async def test_recovers_once_server_is_back(self, client, server) -> None:
        server.reachable = False
        assert await client.connect() is False
        server.reachable = True
        assert await client.ensure_ready() is True


class TestCallTool:
    async def test_call_before_connect(self, client) -> None:
        with pytest.raises(NotConnectedError):
            await client.call_tool("search", {"q": "x"})

    async def test_call_returns_dumped_result(self, client, server) -> None:
        await client.connect()
        result = await client.call_tool("search", {"q": "x"})
        assert result["isError"] is False
        assert server.calls == [("search", {"q": "x"})]

    async def test_remote_failure_wrapped(self, client, server) -> None:
        await client.connect()
        server.call_error = RuntimeError("remote exploded")
        with pytest.raises(ToolExecutionError, match="remote exploded"):
            await client.call_tool("search", {"q": "x"})
        # A failed call does not drop the session
        assert client.is_ready() is True
