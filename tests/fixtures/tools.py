"""Ready-made in-memory tool endpoints."""

from __future__ import annotations

from typing import Any

from toolrelay.tools.memory import InMemoryToolEndpoint

SEARCH_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {"q": {"type": "string"}},
    "required": ["q"],
}


async def _search(q: str) -> dict[str, Any]:
    return {"hits": []}


async def _add(a: int, b: int) -> dict[str, Any]:
    return {"sum": a + b}


async def _explode(**kwargs: Any) -> Any:
    msg = "tool blew up"
    raise RuntimeError(msg)


def make_endpoint(*, available: bool = True) -> InMemoryToolEndpoint:
    """Endpoint with ``search``, ``add`` and an always-failing ``explode``."""
    endpoint = InMemoryToolEndpoint(available=available)
    endpoint.register(
        "search", _search, description="Search the index", input_schema=SEARCH_SCHEMA
    )
    endpoint.register(
        "add",
        _add,
        description="Add two integers",
        input_schema={
            "type": "object",
            "properties": {"a": {"type": "integer"}, "b": {"type": "integer"}},
            "required": ["a", "b"],
        },
    )
    endpoint.register("explode", _explode, description="Always fails")
    return endpoint
