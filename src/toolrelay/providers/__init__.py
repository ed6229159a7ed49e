"""Model gateway adapters."""

from toolrelay.providers.base import (
    FinalAnswer,
    ModelGateway,
    ModelTurn,
    TokenUsage,
    ToolRequest,
)
from toolrelay.providers.factory import create_gateway

__all__ = [
    "FinalAnswer",
    "ModelGateway",
    "ModelTurn",
    "TokenUsage",
    "ToolRequest",
    "create_gateway",
]
