"""Tests for logging setup."""

from __future__ import annotations

import json
import logging

import pytest

from toolrelay.config.schema import LoggingConfig
from toolrelay.core.log import JSONLineFormatter, setup_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


class TestJSONLineFormatter:
    def test_fields(self) -> None:
        record = logging.LogRecord(
            "toolrelay.relay", logging.WARNING, __file__, 1, "tool %s failed", ("x",), None
        )
        payload = json.loads(JSONLineFormatter().format(record))
        assert payload["level"] == "WARNING"
        assert payload["logger"] == "toolrelay.relay"
        assert payload["message"] == "tool x failed"
        assert payload["ts"].endswith("+00:00")

    def test_exception(self) -> None:
        try:
            msg = "boom"
            raise ValueError(msg)
        except ValueError:
            import sys

            record = logging.LogRecord(
                "t", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )
        payload = json.loads(JSONLineFormatter().format(record))
        assert "ValueError: boom" in payload["exc_info"]


class TestSetupLogging:
    def test_level(self) -> None:
        setup_logging(LoggingConfig(level="debug"))
        assert logging.getLogger().level == logging.DEBUG

    def test_file_handler(self, tmp_path) -> None:
        path = tmp_path / "logs" / "relay.log"
        setup_logging(LoggingConfig(file=str(path), structured=True))
        logging.getLogger("toolrelay.test").info("hello")
        for handler in logging.getLogger().handlers:
            handler.flush()
        line = path.read_text().strip().splitlines()[-1]
        assert json.loads(line)["message"] == "hello"

    def test_repeat_calls_replace_handlers(self) -> None:
        setup_logging(LoggingConfig())
        setup_logging(LoggingConfig())
        assert len(logging.getLogger().handlers) == 1
