"""FastAPI application factory for the toolrelay HTTP API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from toolrelay.config.schema import RelayConfig

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Set up DB, gateway and tool client on startup; tear down on shutdown.

    An unreachable tool server does not stop startup: the server comes up
    degraded and requests reconnect on demand.
    """
    from toolrelay.cli.app import _create_db, _setup_gateway, _setup_tool_client

    config: RelayConfig = app.state.config
    factory, engine = await _create_db(config)
    app.state.db_factory = factory
    app.state.engine = engine
    app.state.gateway = _setup_gateway(config)

    tool_client = _setup_tool_client(config)
    app.state.tool_client = tool_client
    if not await tool_client.connect():
        logger.warning("Starting without MCP connection (%s)", config.tool_server.url)

    yield

    await tool_client.close()
    await engine.dispose()


def create_app(config: RelayConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    from toolrelay import __version__
    from toolrelay.config.loader import load_config

    if config is None:
        config = load_config()

    app = FastAPI(
        title="toolrelay",
        description="LLM to MCP tool relay API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config

    from toolrelay.api.errors import install_error_handlers

    install_error_handlers(app)

    # ── Middleware (Starlette runs in reverse order of addition) ──
    from fastapi.middleware.cors import CORSMiddleware

    from toolrelay.api.middleware import IdentityMiddleware, RateLimitMiddleware

    # CORS (outermost: added first, runs last)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Rate limiting (runs after identity so user_id is available)
    app.add_middleware(
        RateLimitMiddleware,
        rate_limit=config.api.rate_limit,
        window=config.api.rate_limit_window,
    )

    # Identity (added last, runs first)
    app.add_middleware(IdentityMiddleware)

    # Routes
    from toolrelay.api.auth import router as auth_router
    from toolrelay.api.health import router as health_router
    from toolrelay.api.routes.chat import router as chat_router
    from toolrelay.api.routes.chats import router as chats_router

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(chat_router)
    app.include_router(chats_router)

    return app
