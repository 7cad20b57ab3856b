from __future__ import annotations

import logging
import time
from logging.config import dictConfig
from typing import Any, Dict, Iterable, Sequence

from settings import get_settings

CONTEXT_KEYS = (
    "sensor",
    "cluster",
    "range_key",
    "row_count",
    "reason",
    "path",
    "status",
    "elapsed_ms",
)

_FORMAT = "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Loggers that would otherwise install their own handlers or flood the output.
_QUIET_LOGGERS: Dict[str, str] = {
    "sqlalchemy.engine": "WARNING",
    "httpx": "WARNING",
}
_FRAMEWORK_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

_configured = False


class ContextualFormatter(logging.Formatter):
    """Appends selected ``extra=`` values to the message as ``key=value`` pairs."""

    converter = time.gmtime

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        context_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._context_keys: Sequence[str] = tuple(context_keys or CONTEXT_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        pairs: list[str] = []
        for key in self._context_keys:
            value = getattr(record, key, None)
            if value is None:
                continue
            pairs.append(f"{key}={_render(value)}")
        if pairs:
            return f"{message} | {' '.join(pairs)}"
        return message


def _render(value: Any) -> str:
    text = str(value)
    if not text or any(char.isspace() for char in text):
        return f'"{text}"'
    return text


def build_logging_config(level: str | int) -> Dict[str, Any]:
    loggers: Dict[str, Dict[str, Any]] = {
        name: {"level": quiet_level} for name, quiet_level in _QUIET_LOGGERS.items()
    }
    for name in _FRAMEWORK_LOGGERS:
        loggers[name] = {"handlers": [], "propagate": True}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "contextual": {
                "()": "logging_config.ContextualFormatter",
                "fmt": _FORMAT,
                "datefmt": _DATE_FORMAT,
                "style": "%",
                "context_keys": list(CONTEXT_KEYS),
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "contextual",
            }
        },
        "loggers": loggers,
        "root": {"handlers": ["default"], "level": level},
    }


def configure_logging(level: str | int | None = None) -> None:
    """Install the contextual formatter on the root logger once per process."""
    global _configured
    if _configured:
        return

    dictConfig(build_logging_config(level if level is not None else get_settings().log_level))
    _configured = True
