from __future__ import annotations

import logging
import time
from logging.config import dictConfig
from typing import Any, Dict, Iterable, Sequence

from settings import get_settings

CONTEXT_KEYS = (
    "location",
    "limit",
    "status",
    "reason",
    "generation",
    "failed_count",
    "record_count",
    "window_end",
    "elapsed_ms",
)

SERVER_FORMAT = "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s"
# The watch command draws to stdout; warnings go to stderr without timestamps.
CONSOLE_FORMAT = "%(levelname)s: %(message)s"

_configured = False


class ContextualFormatter(logging.Formatter):
    """Append known ``extra=`` attributes as ``key=value`` pairs.

    Timestamps are rendered in UTC so they line up with aggregate window ends.
    """

    converter = time.gmtime

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._extra_keys: Sequence[str] = tuple(extra_keys or CONTEXT_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = [
            f"{key}={getattr(record, key)}"
            for key in self._extra_keys
            if getattr(record, key, None) is not None
        ]
        if not context:
            return message
        return f"{message} | {' '.join(context)}"


def build_logging_config(level: str | int, console: bool = False) -> Dict[str, Any]:
    """Return the ``dictConfig`` mapping for the server or the CLI console."""
    handler = {
        "class": "logging.StreamHandler",
        "level": level,
        "formatter": "contextual",
    }
    # uvicorn installs its own handlers unless its loggers are routed here.
    loggers = {} if console else {
        "uvicorn": {"handlers": ["default"], "level": level, "propagate": False},
        "uvicorn.access": {"handlers": ["default"], "level": "WARNING", "propagate": False},
    }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "contextual": {
                "()": "logging_config.ContextualFormatter",
                "fmt": CONSOLE_FORMAT if console else SERVER_FORMAT,
                "datefmt": "%Y-%m-%dT%H:%M:%S",
                "extra_keys": list(CONTEXT_KEYS),
            }
        },
        "handlers": {"default": handler},
        "loggers": loggers,
        "root": {"handlers": ["default"], "level": level},
    }


def configure_logging(level: str | int | None = None, console: bool = False) -> None:
    """Configure process-wide logging once; later calls are no-ops."""
    global _configured
    if _configured:
        return

    log_level = level if level is not None else get_settings().log_level
    dictConfig(build_logging_config(log_level, console=console))
    _configured = True
