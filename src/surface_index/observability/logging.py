"""Structured JSON logging with run correlation."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import sys
from typing import Any, TextIO

import orjson

from surface_index.observability.context import get_run_context


# Attributes every LogRecord carries; anything else was passed via ``extra``.
_RESERVED_RECORD_KEYS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


def _clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class JsonFormatter(logging.Formatter):
    """One JSON object per record.

    Every record carries the run context (``run_id`` plus whatever
    ``set_run_context`` added) and the emitting component, the last part of
    the logger name. Word sets passed via ``extra`` are rendered sorted and
    capped at ``MAX_EXTRA_ITEMS``.
    """

    MAX_MESSAGE_LEN = 2000
    MAX_EXTRA_ITEMS = 50
    MAX_EXTRA_TEXT = 500

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "component": record.name.rpartition(".")[2],
            "message": _clip(record.getMessage(), self.MAX_MESSAGE_LEN),
            **get_run_context(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_RECORD_KEYS and not key.startswith("_"):
                entry[key] = self._extra_value(value)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        # Paths and other stray objects fall back to str().
        return orjson.dumps(entry, default=str).decode("utf-8")

    def _extra_value(self, value: Any) -> Any:
        if isinstance(value, (set, frozenset)):
            items = sorted(value, key=str)
            if len(items) > self.MAX_EXTRA_ITEMS:
                return items[: self.MAX_EXTRA_ITEMS] + ["..."]
            return items
        if isinstance(value, str):
            return _clip(value, self.MAX_EXTRA_TEXT)
        return value


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    *,
    logger_levels: dict[str, str] | None = None,
    stream: TextIO | None = None,
) -> None:
    """Configure root logger with structured JSON output and per-logger overrides.

    Args:
        level: Root log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Emit structured JSON logs when True
        logger_levels: Per-logger level overrides (logger name -> level string)
        stream: Destination of the records, stdout when omitted
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))

    root.addHandler(handler)

    for logger_name, logger_level in (logger_levels or {}).items():
        resolved = getattr(logging, logger_level.upper(), logging.INFO)
        logging.getLogger(logger_name).setLevel(resolved)
