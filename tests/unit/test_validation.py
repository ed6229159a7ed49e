"""Tests for pre-dispatch tool argument checks."""

from __future__ import annotations

from toolrelay.tools.base import ToolCallRequest, ToolDescriptor
from toolrelay.tools.validation import check_arguments

_DESCRIPTORS = {
    "search": ToolDescriptor(
        name="search",
        description="",
        input_schema={
            "type": "object",
            "properties": {"q": {"type": "string"}, "limit": {"type": "integer"}},
            "required": ["q"],
        },
    ),
    "ping": ToolDescriptor(name="ping", description="", input_schema={}),
}


class TestCheckArguments:
    def test_valid_call(self) -> None:
        call = ToolCallRequest(id="c1", name="search", arguments={"q": "x"})
        assert check_arguments(call, _DESCRIPTORS) is None

    def test_extra_properties_allowed(self) -> None:
        call = ToolCallRequest(id="c1", name="search", arguments={"q": "x", "foo": 1})
        assert check_arguments(call, _DESCRIPTORS) is None

    def test_no_required_list(self) -> None:
        call = ToolCallRequest(id="c1", name="ping", arguments={})
        assert check_arguments(call, _DESCRIPTORS) is None

    def test_unknown_tool(self) -> None:
        call = ToolCallRequest(id="c1", name="delete_all", arguments={})
        assert check_arguments(call, _DESCRIPTORS) == "Unknown tool: delete_all"

    def test_non_object_arguments(self) -> None:
        call = ToolCallRequest(id="c1", name="search", arguments='{"q": ')
        problem = check_arguments(call, _DESCRIPTORS)
        assert problem is not None
        assert "JSON object" in problem

    def test_missing_required(self) -> None:
        call = ToolCallRequest(id="c1", name="search", arguments={"limit": 3})
        problem = check_arguments(call, _DESCRIPTORS)
        assert problem == "Missing required argument(s) for search: q"
