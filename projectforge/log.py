"""Structured logging for Project Forge."""

import logging
import sys
from typing import Any

from .config import LOG_LEVEL

ROOT_LOGGER = "projectforge"


def _format_value(value: Any) -> str:
    text = str(value)
    if not text or any(ch.isspace() for ch in text) or "=" in text:
        return '"' + text.replace('"', '\\"') + '"'
    return text


class StructuredFormatter(logging.Formatter):
    """Renders records as key=value pairs; values with spaces are quoted."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(getattr(record, "context", {}))
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return " ".join(f"{k}={_format_value(v)}" for k, v in log_data.items())


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        root.addHandler(handler)
        root.setLevel(getattr(logging, LOG_LEVEL.upper(), logging.INFO))
        root.propagate = False
    return root


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the shared ``projectforge`` handler.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger whose records propagate to the one structured stdout handler
    """
    _configure_root()
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def log_with_context(logger: logging.Logger, level: int, msg: str, **kwargs: Any) -> None:
    """Log with context fields such as stage, phase or criterion; None fields are dropped."""
    context = {k: v for k, v in kwargs.items() if v is not None}
    logger.log(level, msg, extra={"context": context})
