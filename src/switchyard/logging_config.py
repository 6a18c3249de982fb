"""Centralized logging configuration for Switchyard.

Supports console (text or JSON) output and an optional log file.

Usage:
    from switchyard.logging_config import configure_logging

    # Configure once at application startup
    configure_logging(level="DEBUG", format="json")

Environment Variables:
    SWITCHYARD_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    SWITCHYARD_LOG_FORMAT: Output format ("text" or "json")
    SWITCHYARD_LOG_FILE: Optional log file path
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime
from typing import Any, Literal

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
TEXT_FORMAT_WITH_MS = "%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Track if logging has been configured
_configured = False

_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging.

    Outputs one JSON object per line:
    {
        "timestamp": "2026-01-08T14:30:00.123456",
        "level": "INFO",
        "logger": "switchyard.gateway.router",
        "message": "Received request: POST /openrouter/chat/completions",
        "extra": {...}
    }
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
    include_ms: bool = True,
    force: bool = False,
) -> None:
    """Configure logging for the application.

    This should be called once at application startup. Subsequent calls
    are ignored unless force=True.

    Args:
        level: Log level. Defaults to SWITCHYARD_LOG_LEVEL or "INFO".
        format: Output format. Defaults to SWITCHYARD_LOG_FORMAT or "text".
        file_path: Optional file path. Defaults to SWITCHYARD_LOG_FILE.
        include_ms: Include milliseconds in timestamp.
        force: Force reconfiguration even if already configured.

    Raises:
        ValueError: If the level or format is not recognised.
    """
    global _configured
    if _configured and not force:
        return

    level = (level or os.environ.get("SWITCHYARD_LOG_LEVEL", "INFO")).upper()
    format = format or os.environ.get("SWITCHYARD_LOG_FORMAT", "text")  # type: ignore
    file_path = file_path or os.environ.get("SWITCHYARD_LOG_FILE")

    if level not in VALID_LEVELS:
        raise ValueError(f"Invalid log level: {level}")
    if format not in ("text", "json"):
        raise ValueError(f"Invalid log format: {format}")

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level))
    root_logger.handlers.clear()

    if format == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        fmt = TEXT_FORMAT_WITH_MS if include_ms else TEXT_FORMAT
        formatter = logging.Formatter(fmt, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if file_path:
        file_handler = logging.FileHandler(file_path)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Quiet noisy loggers
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)

    _configured = True
