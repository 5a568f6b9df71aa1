"""
Logging setup for the MedCompare engine.

``configure_logging(config, command)`` is called once per CLI invocation. It
routes every record through a filter that stamps the running command, so a
shared log file shows which ``medcompare`` command produced each line::

    2026-02-24T15:00:00Z WARNING [compare] medcompare.engine: select failed [missing_context]: ...

Engine modules use ``logging.getLogger(__name__)`` only; library code never
configures handlers.

JSON format (``json_format = true`` under ``[logging]``) emits one object
per line with the engine context fields that are set on the record::

    {"ts": "...", "level": "WARNING", "logger": "medcompare.engine",
     "command": "compare", "operation": "select", "error_kind": "missing_context",
     "msg": "..."}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from medcompare.config import LoggingConfig

LOG_FORMAT = "%(asctime)s %(levelname)s [%(command)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Structured fields the engine attaches via ``extra=``.
CONTEXT_FIELDS = ("command", "operation", "error_kind", "medication")

_QUIET_LOGGERS = ("httpx", "httpcore")


class _CommandContextFilter(logging.Filter):
    """Stamp the running CLI command onto every record passing a handler."""

    def __init__(self, command: Optional[str]) -> None:
        super().__init__()
        self.command = command or "-"

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "command"):
            record.command = self.command
        return True


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
                LOG_DATE_FORMAT
            ),
            "level": record.levelname,
            "logger": record.name,
        }
        payload.update(
            {name: getattr(record, name) for name in CONTEXT_FIELDS if hasattr(record, name)}
        )
        payload["msg"] = record.getMessage()
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


def configure_logging(config: "LoggingConfig", command: Optional[str] = None) -> None:
    """Configure the root logger from a ``LoggingConfig`` instance.

    Args:
        config:  Logging configuration section from ``AppConfig``.
        command: Name of the CLI command being run; tagged on every record.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)
    formatter = (
        _JsonFormatter()
        if config.json_format
        else logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    )
    context = _CommandContextFilter(command)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(context)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
