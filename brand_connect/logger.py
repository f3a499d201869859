"""
Structured JSON Logging.

Every marketplace component receives a ``StructuredLogger`` through its
constructor.  Output is one JSON object per line on stdout and in a
rotating log file, so booking, approval and session events can be
grepped or shipped as-is.

Log line shape::

    {"timestamp": "...", "level": "INFO", "logger_name": "services",
     "message": "Booking b-1 confirmed", "event": "BOOKING_TRANSITION",
     "context": {"booking_id": "b-1", "actor_id": "u-7"}}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Optional, TextIO

if TYPE_CHECKING:
    from brand_connect.config import AppConfig

# Scalar context survives as-is; anything else is stringified.
_JSON_SCALARS = (str, int, float, bool, type(None))

_RESERVED_ATTRS: frozenset[str] = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}


class JSONFormatter(logging.Formatter):
    """Render a ``LogRecord`` as a single-line JSON object.

    An ``event`` key passed through ``extra`` is lifted to the top level
    so log consumers can filter on it; every other caller-supplied key is
    grouped under ``context``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger_name": record.name,
            "message": record.getMessage(),
        }

        context: dict[str, object] = {}
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            if key == "event":
                entry["event"] = str(value)
                continue
            context[key] = value if isinstance(value, _JSON_SCALARS) else str(value)
        if context:
            entry["context"] = context

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            entry["exception"] = record.exc_text

        return json.dumps(entry, ensure_ascii=False)


class StructuredLogger:
    """Injectable wrapper around a named ``logging.Logger``.

    Handlers are attached once per logger name, so building several
    ``StructuredLogger`` objects for the same name is harmless.  File
    settings come from the explicit arguments, then *config*, then the
    process-wide ``AppConfig``.
    """

    def __init__(
        self,
        name: str = "brand_connect",
        level: int = logging.INFO,
        stream: Optional[TextIO] = None,
        log_file: Optional[str] = None,
        config: Optional[AppConfig] = None,
    ) -> None:
        self._logger: logging.Logger = logging.getLogger(name)
        self._logger.setLevel(level)
        if self._logger.handlers:
            return

        if config is None:
            from brand_connect.config import get_config
            config = get_config()

        formatter = JSONFormatter()
        console = logging.StreamHandler(stream or sys.stdout)
        console.setFormatter(formatter)
        self._logger.addHandler(console)

        target = Path(log_file or config.LOG_FILE)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            rotating = RotatingFileHandler(
                filename=str(target),
                maxBytes=config.LOG_MAX_BYTES,
                backupCount=config.LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
        except OSError as exc:
            self._logger.warning(
                "Log file %s unavailable (%s); logging to console only",
                target,
                exc,
            )
            return
        rotating.setFormatter(formatter)
        self._logger.addHandler(rotating)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def debug(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.error(msg, *args, **kwargs)

    def critical(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.critical(msg, *args, **kwargs)


def get_logger(name: str = "brand_connect", config: Optional[AppConfig] = None) -> StructuredLogger:
    """Return a ``StructuredLogger`` named *name*."""
    return StructuredLogger(name=name, config=config)
