from __future__ import annotations

import logging
from enum import Enum
from logging.config import dictConfig
from typing import Any, Dict, Iterable, Iterator, Sequence

from settings import get_settings

# ``extra`` keys rendered after the message, in this order.
CONTEXT_KEYS = (
    "sensor_type_id",
    "sensor_id",
    "timestamp",
    "error_code",
    "error_count",
    "result_count",
    "index",
    "count",
    "path",
    "reason",
)

_LOG_FORMAT = "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

_configured = False


class ContextualFormatter(logging.Formatter):
    """Formatter that appends ``key=value`` pairs for known ``extra`` keys."""

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
        context = " ".join(self._context(record))
        return f"{message} | {context}" if context else message

    def _context(self, record: logging.LogRecord) -> Iterator[str]:
        for key in self._extra_keys:
            value = getattr(record, key, None)
            if value is not None:
                yield f"{key}={_format_value(value)}"


def _format_value(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (list, tuple, set)):
        return ",".join(_format_value(item) for item in value)
    return str(value)


def build_logging_config(level: str | int) -> Dict[str, Any]:
    """``dictConfig`` schema: one stderr handler on the root logger."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "contextual": {
                "()": ContextualFormatter,
                "fmt": _LOG_FORMAT,
                "datefmt": _DATE_FORMAT,
                "extra_keys": list(CONTEXT_KEYS),
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "contextual",
            }
        },
        "root": {"handlers": ["default"], "level": level},
    }


def configure_logging(level: str | int | None = None, force: bool = False) -> None:
    """Configure application-wide logging once; ``force`` reapplies it."""
    global _configured
    if _configured and not force:
        return

    dictConfig(build_logging_config(level if level is not None else get_settings().log_level))
    _configured = True
