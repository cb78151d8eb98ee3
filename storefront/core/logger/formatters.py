"""
Formatters: JSON lines for the file handler, plain text for the console.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

# Attributes passed via ``extra=`` that are lifted into the JSON record
_CONTEXT_KEYS = ("submission_id", "sequence_id", "step", "blob", "error")


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.pathname}:{record.lineno}",
        }
        entry.update(
            (key, getattr(record, key))
            for key in _CONTEXT_KEYS
            if getattr(record, key, None) is not None
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class PlainConsoleFormatter(logging.Formatter):
    """``time | LEVEL | logger | message`` for a terminal."""

    FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    DATEFMT = "%Y-%m-%d %H:%M:%S"

    def __init__(self) -> None:
        super().__init__(fmt=self.FORMAT, datefmt=self.DATEFMT)
