"""Pre-dispatch checks on model-supplied tool arguments.

Deliberately shallow: only the parts of the declared input schema that
every MCP server fills in (object type, ``required``) are checked. Type
checking of individual properties is left to the tool server.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from toolrelay.tools.base import ToolCallRequest, ToolDescriptor


def check_arguments(
    call: ToolCallRequest,
    descriptors: dict[str, ToolDescriptor],
) -> str | None:
    """Return an error message if the call should not be dispatched, else None."""
    descriptor = descriptors.get(call.name)
    if descriptor is None:
        return f"Unknown tool: {call.name}"

    if not isinstance(call.arguments, dict):
        return f"Arguments for {call.name} must be a JSON object"

    required = descriptor.input_schema.get("required") or []
    missing = [key for key in required if key not in call.arguments]
    if missing:
        return f"Missing required argument(s) for {call.name}: {', '.join(missing)}"

    return None
