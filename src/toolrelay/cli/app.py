"""Main CLI application.

Click commands for the toolrelay server: serve, tools, init-db.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

from toolrelay import __version__
from toolrelay.config.loader import load_config
from toolrelay.core.errors import ConfigError, RelayError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

    from toolrelay.config.schema import RelayConfig
    from toolrelay.providers.base import ModelGateway
    from toolrelay.tools.mcp_client import MCPToolClient


# ── Helpers ──────────────────────────────────────────────────────


def _error(msg: str) -> None:
    """Print an error message to stderr and exit."""
    click.echo(f"Error: {msg}", err=True)
    sys.exit(1)


def _load_config(config_path: str | None) -> RelayConfig:
    """Load config with user-friendly error handling."""
    try:
        return load_config(path=config_path)
    except ConfigError as e:
        _error(str(e))
        raise  # unreachable, keeps mypy happy


async def _create_db(
    config: RelayConfig,
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Create async engine and sessionmaker from config, and the schema."""
    from sqlalchemy import event
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from toolrelay.memory.migrations import ensure_schema

    url = config.database.url
    if "~" in url:
        url = url.replace("~", str(Path.home()))

    # Ensure parent directory exists for sqlite
    if url.startswith("sqlite"):
        db_path = url.split("///")[-1] if "///" in url else ""
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    engine_kwargs: dict[str, object] = {}
    if url.startswith("sqlite"):
        if ":memory:" in url or "///" not in url:
            # In-memory SQLite needs StaticPool so all queries share
            # the same connection (and thus the same in-memory DB).
            from sqlalchemy.pool import StaticPool

            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        else:
            from sqlalchemy.pool import NullPool

            engine_kwargs["poolclass"] = NullPool
    else:
        engine_kwargs["pool_size"] = config.database.pool_size
        engine_kwargs["max_overflow"] = config.database.max_overflow
        engine_kwargs["pool_timeout"] = config.database.pool_timeout
        engine_kwargs["pool_recycle"] = config.database.pool_recycle
        engine_kwargs["pool_pre_ping"] = True

    engine = create_async_engine(url, **engine_kwargs)

    # Enable foreign keys for SQLite
    if url.startswith("sqlite"):

        @event.listens_for(engine.sync_engine, "connect")
        def _enable_fks(dbapi_conn, connection_record):  # type: ignore[no-untyped-def]
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    await ensure_schema(engine)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    return factory, engine


def _setup_gateway(config: RelayConfig) -> ModelGateway:
    """Instantiate the configured model gateway."""
    from toolrelay.providers.factory import create_gateway

    return create_gateway(config)


def _setup_tool_client(config: RelayConfig) -> MCPToolClient:
    """Create the (not yet connected) MCP client from config."""
    from toolrelay.tools.mcp_client import MCPToolClient

    return MCPToolClient(
        config.tool_server.url,
        client_name=config.tool_server.client_name,
        client_version=config.tool_server.client_version,
    )


# ── CLI group ────────────────────────────────────────────────────


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="toolrelay")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True),
    default=None,
    help="Path to config file.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None) -> None:
    """toolrelay - relay conversations between an LLM and MCP tools."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ── serve ────────────────────────────────────────────────────────


@cli.command()
@click.option("--host", default=None, help="Host to bind to (overrides config).")
@click.option(
    "--port", type=int, default=None, help="Port to bind to (overrides config)."
)
@click.option(
    "--reload", is_flag=True, default=False, help="Enable auto-reload for development."
)
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None, reload: bool) -> None:
    """Start the HTTP API server."""
    import uvicorn

    from toolrelay.api.app import create_app
    from toolrelay.core.log import setup_logging

    config = _load_config(ctx.obj["config_path"])
    setup_logging(config.logging)

    effective_host = host or config.api.host
    effective_port = port or config.api.port

    if not config.auth.jwt_secret:
        click.echo(
            "Warning: auth.jwt_secret is not set; sign-in will fail. "
            "Set TOOLRELAY_JWT_SECRET.",
            err=True,
        )
    click.echo(f"Tool server: {config.tool_server.url}")
    click.echo(f"Model: {config.model.provider}/{config.model.model_id}")

    app = create_app(config)
    uvicorn.run(
        app,
        host=effective_host,
        port=effective_port,
        reload=reload,
    )


# ── tools ────────────────────────────────────────────────────────


@cli.command()
@click.pass_context
def tools(ctx: click.Context) -> None:
    """Connect to the tool server and list its tools."""
    config = _load_config(ctx.obj["config_path"])
    try:
        connected = asyncio.run(_tools_async(config))
    except RelayError as e:
        _error(str(e))
        return
    if not connected:
        _error(f"Could not connect to tool server at {config.tool_server.url}")


async def _tools_async(config: RelayConfig) -> bool:
    """Async implementation for the tools command."""
    from toolrelay.cli.display import render_tools

    client = _setup_tool_client(config)
    try:
        if not await client.connect():
            return False
        render_tools(client.list_tools(), url=config.tool_server.url)
    finally:
        await client.close()
    return True


# ── init-db ──────────────────────────────────────────────────────


@cli.command("init-db")
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Create the database schema."""
    config = _load_config(ctx.obj["config_path"])
    asyncio.run(_init_db_async(config))
    click.echo(f"Database ready: {config.database.url}")


async def _init_db_async(config: RelayConfig) -> None:
    _factory, engine = await _create_db(config)
    await engine.dispose()
