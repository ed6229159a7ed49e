"""Tests for tool endpoint base types."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from toolrelay.core.errors import InvalidInputError
from toolrelay.tools.base import (
    ToolCallRequest,
    ToolCallResult,
    ToolDescriptor,
    ToolEndpoint,
)
from toolrelay.tools.mcp_client import MCPToolClient
from toolrelay.tools.memory import InMemoryToolEndpoint

# ── Data class tests ────────────────────────────────────────────────


class TestToolDescriptor:
    def test_from_mcp(self) -> None:
        tool = SimpleNamespace(
            name="search",
            description="Search the index",
            inputSchema={"type": "object", "properties": {"q": {"type": "string"}}},
        )
        td = ToolDescriptor.from_mcp(tool)
        assert td.name == "search"
        assert td.description == "Search the index"
        assert td.input_schema["properties"]["q"] == {"type": "string"}

    def test_from_mcp_missing_description(self) -> None:
        tool = SimpleNamespace(name="x", description=None, inputSchema={})
        assert ToolDescriptor.from_mcp(tool).description == ""

    def test_to_dict_uses_camel_case_schema(self) -> None:
        td = ToolDescriptor(name="x", description="y", input_schema={"type": "object"})
        assert td.to_dict() == {
            "name": "x",
            "description": "y",
            "inputSchema": {"type": "object"},
        }

    def test_frozen(self) -> None:
        td = ToolDescriptor(name="x", description="y")
        with pytest.raises(AttributeError):
            td.name = "z"  # type: ignore[misc]


class TestToolCallRequest:
    def test_default_empty_args(self) -> None:
        assert ToolCallRequest(id="c1", name="search").arguments == {}


class TestToolCallResult:
    def test_success_to_dict(self) -> None:
        r = ToolCallResult(
            call_id="c1", name="search", arguments={"q": "x"}, result={"hits": []}
        )
        assert not r.is_error
        assert r.to_dict() == {
            "call_id": "c1",
            "name": "search",
            "arguments": {"q": "x"},
            "result": {"hits": []},
        }

    def test_error_to_dict_has_no_result(self) -> None:
        r = ToolCallResult(call_id="c1", name="search", error="boom")
        assert r.is_error
        data = r.to_dict()
        assert data["error"] == "boom"
        assert "result" not in data

    def test_from_dict_round_trip(self) -> None:
        r = ToolCallResult(call_id="c1", name="add", arguments={"a": 1}, result=2)
        assert ToolCallResult.from_dict(r.to_dict()) == r

    def test_from_dict_accepts_tool_use_id_alias(self) -> None:
        r = ToolCallResult.from_dict(
            {"tool_use_id": "toolu_1", "name": "search", "input": {"q": "x"}, "error": "nope"}
        )
        assert r.call_id == "toolu_1"
        assert r.arguments == {"q": "x"}
        assert r.error == "nope"

    def test_from_dict_requires_object(self) -> None:
        with pytest.raises(InvalidInputError):
            ToolCallResult.from_dict("c1")

    def test_from_dict_requires_id(self) -> None:
        with pytest.raises(InvalidInputError, match="call_id"):
            ToolCallResult.from_dict({"name": "search", "result": 1})


# ── Protocol conformance ────────────────────────────────────────────


class TestProtocolConformance:
    def test_memory_endpoint_satisfies_protocol(self) -> None:
        assert isinstance(InMemoryToolEndpoint(), ToolEndpoint)

    def test_mcp_client_satisfies_protocol(self) -> None:
        assert isinstance(MCPToolClient("http://localhost:1/mcp"), ToolEndpoint)

    def test_plain_object_does_not(self) -> None:
        assert not isinstance(object(), ToolEndpoint)
