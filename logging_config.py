from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any, Dict, Iterable, Tuple

from settings import get_settings

LOG_FORMAT = "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Fields passed through ``extra=`` by the services, in display order.
CONTEXT_KEYS: Tuple[str, ...] = (
    "sensor_id",
    "period",
    "hours",
    "strategy",
    "reason",
    "bucket_count",
    "anomaly_count",
    "reading_count",
    "z_threshold",
)

_QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "httpx")

_configured = False


class ContextualFormatter(logging.Formatter):
    """Append ``key=value`` pairs for known ``extra`` fields to each record."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self.extra_keys: Tuple[str, ...] = tuple(extra_keys or CONTEXT_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = " ".join(
            f"{key}={getattr(record, key)}"
            for key in self.extra_keys
            if getattr(record, key, None) is not None
        )
        return f"{message} | {context}" if context else message


def build_logging_config(level: str | int) -> Dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "contextual": {
                "()": ContextualFormatter,
                "fmt": LOG_FORMAT,
                "datefmt": DATE_FORMAT,
                "extra_keys": CONTEXT_KEYS,
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "contextual",
                "level": level,
            }
        },
        "loggers": {name: {"level": "WARNING"} for name in _QUIET_LOGGERS},
        "root": {"handlers": ["console"], "level": level},
    }


def configure_logging(level: str | int | None = None, *, force: bool = False) -> None:
    """Install the console handler once per process unless ``force`` is set."""
    global _configured
    if _configured and not force:
        return
    dictConfig(build_logging_config(level if level is not None else get_settings().log_level))
    _configured = True
