"""Root logger setup for the record tools.

``LOG_FORMAT=json`` switches stderr output to one JSON object per line;
anything else keeps the plain text layout. ``LOG_LEVEL`` picks the level.
Both formats carry the ``record_path`` and ``operation`` values that the
file-mutation helpers pass through ``extra``.
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Dict

from . import settings as _settings

RECORD_CONTEXT_FIELDS = ("record_path", "operation")
TEXT_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def record_context(record: logging.LogRecord) -> Dict[str, str]:
    context: Dict[str, str] = {}
    for attr in RECORD_CONTEXT_FIELDS:
        value = getattr(record, attr, None)
        if value:
            context[attr] = str(value)
    return context


class _TextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = record_context(record)
        if not context:
            return line
        suffix = " ".join(f"{key}={value}" for key, value in context.items())
        head, sep, tail = line.partition("\n")
        return f"{head} ({suffix}){sep}{tail}"


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(record_context(record))
        if record.exc_info and record.exc_info[1] is not None:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def build_formatter(fmt: str) -> logging.Formatter:
    if fmt == "json":
        return _JsonFormatter()
    return _TextFormatter(TEXT_FORMAT)


def configure_logging() -> None:
    """Send every record tool log line to stderr through a single handler."""
    level = getattr(logging, _settings.log_level(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(build_formatter(_settings.log_format()))
    root.addHandler(stream)
