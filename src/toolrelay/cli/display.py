"""Rich rendering for CLI output."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from collections.abc import Sequence

    from toolrelay.tools.base import ToolDescriptor

_DESCRIPTION_LEN = 80


def _required(descriptor: ToolDescriptor) -> str:
    required = descriptor.input_schema.get("required") or []
    return ", ".join(str(r) for r in required) or "-"


def render_tools(
    tools: Sequence[ToolDescriptor],
    *,
    url: str,
    console: Console | None = None,
) -> None:
    """Print the tool server's tools as a table."""
    console = console or Console()
    if not tools:
        console.print(f"[yellow]{url} advertises no tools.[/yellow]")
        return

    table = Table(title=f"Tools at {url}")
    table.add_column("Name", style="bold cyan")
    table.add_column("Description")
    table.add_column("Required")
    for tool in tools:
        description = tool.description
        if len(description) > _DESCRIPTION_LEN:
            description = description[:_DESCRIPTION_LEN].rstrip() + " ..."
        table.add_row(tool.name, description, _required(tool))
    console.print(table)
