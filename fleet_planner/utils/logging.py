"""
Root logger setup for the fleet planner CLI.

Library modules only ever do ``logger = logging.getLogger(__name__)``. The
CLI calls ``configure_logging(config.logging)`` once per invocation, which
replaces whatever handlers the root logger had.

Two line formats are available, selected by ``[logging] json_format``::

    2026-10-19T06:00:00Z [INFO] fleet_planner.pipeline.schedule: Scheduled 6 trainsets
    {"ts": "2026-10-19T06:00:00Z", "level": "INFO", "logger": "...", "msg": "..."}

Values passed through ``extra={...}`` appear as top-level keys in JSON mode.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from fleet_planner.config import LoggingConfig

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Keys every LogRecord carries; anything else was supplied via ``extra=``.
_BUILTIN_KEYS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class _UtcFormatter(logging.Formatter):
    converter = time.gmtime


class _JsonFormatter(_UtcFormatter):
    """Serialise each record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": self.formatTime(record, TIMESTAMP_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _BUILTIN_KEYS and not key.startswith("_")
        )
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _formatter_for(config: "LoggingConfig") -> logging.Formatter:
    if config.json_format:
        return _JsonFormatter()
    return _UtcFormatter(TEXT_FORMAT, datefmt=TIMESTAMP_FORMAT)


def configure_logging(config: "LoggingConfig") -> None:
    """Point the root logger at stdout, and at ``config.log_file`` if set.

    Args:
        config: The ``[logging]`` section of ``AppConfig``. Unknown level
            names fall back to INFO.
    """
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if config.log_file:
        path = Path(config.log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    formatter = _formatter_for(config)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)

    logging.basicConfig(level=level, handlers=handlers, force=True)
