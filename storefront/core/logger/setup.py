"""
Logger setup: console and rotating JSON file handlers on the project root logger.
"""
from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import List, Optional

from storefront.core.logger.config import LoggerConfig
from storefront.core.logger.formatters import JsonFormatter, PlainConsoleFormatter


def _handlers(config: LoggerConfig) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if config.console:
        console = logging.StreamHandler()
        console.setFormatter(PlainConsoleFormatter())
        handlers.append(console)

    log_dir = (config.log_dir or "").strip()
    if config.file_rotating and log_dir:
        try:
            os.makedirs(log_dir, exist_ok=True)
            file_handler = RotatingFileHandler(
                os.path.join(log_dir, f"{config.log_file_basename}.log"),
                maxBytes=config.max_bytes,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
        except OSError as exc:
            logging.getLogger(__name__).warning("File logging disabled, %s is not writable (%s)", log_dir, exc)
        else:
            file_handler.setFormatter(JsonFormatter())
            handlers.append(file_handler)
    return handlers


def configure(config: Optional[LoggerConfig] = None) -> LoggerConfig:
    """
    Configure the project root logger from ``config`` (LOG_* env vars when None).

    Call once at startup. Calling again replaces the handlers instead of
    adding a second set, so tests can reconfigure freely.
    """
    config = config or LoggerConfig.from_env()
    level = getattr(logging, config.level.upper(), logging.INFO)

    root = logging.getLogger(config.root_name or "storefront")
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in _handlers(config):
        handler.setLevel(level)
        root.addHandler(handler)
    root.propagate = False
    return config
