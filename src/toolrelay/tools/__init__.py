"""Tool endpoint clients.

Provides the ``ToolEndpoint`` protocol, the MCP streamable-HTTP client,
and an in-process endpoint with the same interface.
"""

from toolrelay.tools.base import (
    ToolCallRequest,
    ToolCallResult,
    ToolDescriptor,
    ToolEndpoint,
)
from toolrelay.tools.mcp_client import MCPToolClient
from toolrelay.tools.memory import InMemoryToolEndpoint

__all__ = [
    "InMemoryToolEndpoint",
    "MCPToolClient",
    "ToolCallRequest",
    "ToolCallResult",
    "ToolDescriptor",
    "ToolEndpoint",
]
