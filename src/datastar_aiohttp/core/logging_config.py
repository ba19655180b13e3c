"""Logging configuration for datastar-aiohttp processes.

Library modules only create loggers (``logging.getLogger(__name__)``); the
CLI and embedding applications call ``configure_logging`` once at startup.

Usage:
    from datastar_aiohttp.core.logging_config import configure_logging

    configure_logging(level="DEBUG", format="json")

Environment Variables:
    DATASTAR_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    DATASTAR_LOG_FORMAT: Output format ("text" or "json")
    DATASTAR_LOG_FILE: Optional log file path
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime
from typing import Any, Literal

TEXT_FORMAT = "%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers that are too chatty at DEBUG for stream tracing
NOISY_LOGGERS = ("aiohttp.access", "asyncio")

# LogRecord attributes that are not user-supplied extras
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys() | {"message", "taskName"}
)

_configured = False


class JsonFormatter(logging.Formatter):
    """One JSON object per record.

    {"timestamp": ..., "level": "INFO", "logger": "datastar_aiohttp.server.session",
     "message": "...", "extra": {...}}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra = {k: v for k, v in record.__dict__.items() if k not in _STANDARD_ATTRS}
        if extra:
            log_data["extra"] = extra

        return json.dumps(log_data, default=str)


def configure_logging(
    level: str | None = None,
    format: Literal["text", "json"] | None = None,
    file_path: str | None = None,
    force: bool = False,
) -> None:
    """Configure the root logger.

    Subsequent calls are ignored unless ``force=True``. Arguments take
    priority over the ``DATASTAR_LOG_*`` environment variables.

    Args:
        level: Log level name. Defaults to DATASTAR_LOG_LEVEL or "INFO".
        format: "text" or "json". Defaults to DATASTAR_LOG_FORMAT or "text".
        file_path: Also log to this file. Defaults to DATASTAR_LOG_FILE.
        force: Reconfigure even if already configured.
    """
    global _configured
    if _configured and not force:
        return

    level = level or os.environ.get("DATASTAR_LOG_LEVEL", "INFO")
    format = format or os.environ.get("DATASTAR_LOG_FORMAT", "text")  # type: ignore
    file_path = file_path or os.environ.get("DATASTAR_LOG_FILE")

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    if format == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if file_path:
        file_handler = logging.FileHandler(file_path)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True
