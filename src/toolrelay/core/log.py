"""Logging setup driven by the ``[logging]`` config section."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from toolrelay.config.schema import LoggingConfig

_TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class JSONLineFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def setup_logging(config: LoggingConfig) -> None:
    """Configure the root logger from config.

    Safe to call more than once; previously installed handlers are replaced.
    """
    formatter: logging.Formatter = (
        JSONLineFormatter() if config.structured else logging.Formatter(_TEXT_FORMAT)
    )

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.file:
        path = Path(config.file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=config.level.upper(),
        handlers=handlers,
        force=True,
    )
