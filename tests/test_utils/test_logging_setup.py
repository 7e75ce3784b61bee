"""Tests for fleet_planner/utils/logging.py."""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager

from fleet_planner.config import LoggingConfig
from fleet_planner.utils.logging import _JsonFormatter, configure_logging


@contextmanager
def _preserved_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    try:
        yield root
    finally:
        for handler in root.handlers:
            if handler not in handlers:
                handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)


class TestConfigureLogging:
    def test_level_and_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "fleet.log"
        with _preserved_root_logger() as root:
            configure_logging(LoggingConfig(level="debug", log_file=str(log_file)))
            assert root.level == logging.DEBUG
            assert any(isinstance(h, logging.FileHandler) for h in root.handlers)
            logging.getLogger("fleet_planner.test").info("hello")
            for handler in root.handlers:
                handler.flush()
        assert "hello" in log_file.read_text(encoding="utf-8")

    def test_no_file_handler_when_log_file_blank(self):
        with _preserved_root_logger() as root:
            configure_logging(LoggingConfig(log_file=""))
            assert not any(isinstance(h, logging.FileHandler) for h in root.handlers)


class TestJsonFormatter:
    def test_emits_one_json_object_with_extras(self):
        record = logging.LogRecord(
            "fleet_planner.engine", logging.INFO, __file__, 1,
            "scored %s", ("KMRL-001",), None,
        )
        record.trainset_id = "ts-1"
        payload = json.loads(_JsonFormatter().format(record))
        assert payload["level"] == "INFO"
        assert payload["logger"] == "fleet_planner.engine"
        assert payload["msg"] == "scored KMRL-001"
        assert payload["trainset_id"] == "ts-1"
