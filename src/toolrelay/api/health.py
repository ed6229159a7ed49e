"""Health check endpoints."""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])

_START_TIME = time.monotonic()


def _tool_client_ready(request: Request) -> bool:
    tool_client = getattr(request.app.state, "tool_client", None)
    return tool_client is not None and tool_client.is_ready()


@router.get("/api/health")
async def health(request: Request) -> dict[str, Any]:
    """Basic health check -- always returns quickly."""
    return {
        "status": "ok",
        "mcpConnected": _tool_client_ready(request),
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/api/health/detailed")
async def health_detailed(request: Request) -> dict[str, Any]:
    """Detailed health check with component status."""
    from toolrelay import __version__

    checks: dict[str, Any] = {
        "status": "ok",
        "version": __version__,
        "uptime_seconds": round(time.monotonic() - _START_TIME, 1),
        "components": {},
    }

    # Database check
    try:
        db_factory = request.app.state.db_factory
        async with db_factory() as session:
            from sqlalchemy import text

            await session.execute(text("SELECT 1"))
        checks["components"]["database"] = {"status": "ok"}
    except Exception as e:
        checks["components"]["database"] = {"status": "error", "detail": str(e)}
        checks["status"] = "degraded"

    # Model provider
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is not None:
        healthy = await gateway.health_check()
        checks["components"]["provider"] = {
            "id": gateway.provider_id,
            "status": "ok" if healthy else "unhealthy",
        }
        if not healthy:
            checks["status"] = "degraded"

    # Tool server
    tool_client = getattr(request.app.state, "tool_client", None)
    if tool_client is not None:
        ready = tool_client.is_ready()
        checks["components"]["tool_server"] = {
            "status": "ok" if ready else "disconnected",
            "tools": len(tool_client.list_tools()),
        }
        if not ready:
            checks["status"] = "degraded"

    return checks
