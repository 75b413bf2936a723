"""Structured logging configuration for raritygen.

Configurable via environment variables:
- LOG_LEVEL: Set log level (DEBUG, INFO, WARNING, ERROR). Default: INFO
- LOG_FORMAT: Set format ('text' or 'json'). Default: text

Usage:
    from raritygen.logging_config import configure_logging
    configure_logging()  # Call once before the first ranking run
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime
from typing import Any, ClassVar

ROOT_LOGGER_NAME = "raritygen"

LEVELS: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "taskName",
    "shortname",
}


def _location(record: logging.LogRecord) -> str | None:
    """``file:line`` for DEBUG and ERROR-or-worse records, else None."""
    if record.levelno == logging.DEBUG or record.levelno >= logging.ERROR:
        return f"{record.filename}:{record.lineno}"
    return None


class JSONFormatter(logging.Formatter):
    """One JSON object per record.

    Fields passed through ``extra=`` are nested under "extra" so they cannot
    collide with the fixed keys.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        location = _location(record)
        if location:
            entry["source"] = location
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        extra = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}
        if extra:
            entry["extra"] = extra
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """``TIME LEVEL [logger] message``, logger names relative to raritygen.

    DEBUG and ERROR lines end with ``(file:line)``. With colors on, the whole
    line is tinted by level.
    """

    COLORS: ClassVar[dict[int, str]] = {
        logging.DEBUG: "36",
        logging.INFO: "32",
        logging.WARNING: "33",
        logging.ERROR: "31",
        logging.CRITICAL: "1;31",
    }

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__("%(asctime)s %(levelname)-8s [%(shortname)s] %(message)s")
        self.use_colors = use_colors and sys.stderr.isatty()

    def formatMessage(self, record: logging.LogRecord) -> str:
        record.shortname = record.name.removeprefix(f"{ROOT_LOGGER_NAME}.")
        line = super().formatMessage(record)
        location = _location(record)
        if location:
            line = f"{line} ({location})"
        if self.use_colors:
            line = f"\033[{self.COLORS.get(record.levelno, '0')}m{line}\033[0m"
        return line


def parse_log_level(value: str | int | None, default: int = logging.INFO) -> int:
    """Resolve a level name (case-insensitive) or number to a logging constant.

    Unknown names fall back to ``default``.
    """
    if value is None:
        return default
    if isinstance(value, int):
        return value
    return LEVELS.get(value.strip().upper(), default)


def get_log_level() -> int:
    """Get log level from the LOG_LEVEL environment variable.

    Returns:
        Logging level constant (e.g., logging.INFO).
    """
    return parse_log_level(os.environ.get("LOG_LEVEL", "INFO"))


def get_log_format() -> str:
    """Get log format from the LOG_FORMAT environment variable.

    Returns:
        Format string ('text' or 'json').
    """
    format_name = os.environ.get("LOG_FORMAT", "text").lower()
    if format_name not in ("text", "json"):
        return "text"
    return format_name


def configure_logging(
    level: int | str | None = None,
    format_type: str | None = None,
    use_colors: bool = True,
) -> None:
    """Configure the raritygen logger namespace.

    Args:
        level: Log level as a logging constant or a name such as "debug".
               If None, reads from LOG_LEVEL env var.
        format_type: Output format ('text' or 'json').
                     If None, reads from LOG_FORMAT env var.
        use_colors: Whether to use colors in text format (only if stderr is TTY).
    """
    resolved_level = get_log_level() if level is None else parse_log_level(level)
    if format_type is None:
        format_type = get_log_format()

    handler = logging.StreamHandler(sys.stderr)
    if format_type == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter(use_colors=use_colors))

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(resolved_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False

    root_logger.debug(
        "Logging configured: level=%s, format=%s",
        logging.getLevelName(resolved_level),
        format_type,
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the raritygen namespace.

    Args:
        name: Module name (typically __name__).

    Returns:
        Logger instance.
    """
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
