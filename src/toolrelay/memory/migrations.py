"""Schema setup on startup.

Creates any missing tables. Columns added after a table was first created
are patched in for SQLite, which ``create_all`` does not alter.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from toolrelay.memory.models import Base

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

# table -> [(column, DDL type and default)]
_ADDED_COLUMNS: dict[str, list[tuple[str, str]]] = {
    "chats": [("updated_at", "DATETIME")],
}


async def ensure_schema(engine: AsyncEngine) -> None:
    """Create missing tables and apply pending column additions."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

        if engine.dialect.name != "sqlite":
            return

        for table, columns in _ADDED_COLUMNS.items():
            rows = await conn.exec_driver_sql(f"PRAGMA table_info({table})")
            existing = {row[1] for row in rows}
            for name, ddl in columns:
                if name not in existing:
                    logger.info("Adding %r column to %s table", name, table)
                    await conn.exec_driver_sql(
                        f"ALTER TABLE {table} ADD COLUMN {name} {ddl}"
                    )
