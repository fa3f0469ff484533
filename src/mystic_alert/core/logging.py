"""
Mystic Alert Structured Logging

All package modules log through get_logger(__name__), which attaches one
shared stderr handler. Context passed with ``extra=`` (item ids, filter
names, feed state) is rendered as trailing ``key=value`` pairs in text
mode and as top-level fields in JSON mode.

Usage:
    from mystic_alert.core.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Alert dispatched", extra={"item_id": item.id})
"""

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Optional

from .config import get_settings

# Attributes every LogRecord carries; anything else came in through extra=
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime"}

_PACKAGE = "mystic_alert"


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Fields attached to a record through ``extra=``."""
    return {k: v for k, v in record.__dict__.items() if k not in _STANDARD_ATTRS}


class MysticFormatter(logging.Formatter):
    """
    Text or JSON log lines.

    Text: ``2026-01-15T12:30:00+00:00 [WARNING] [listener] message key=value``
    """

    def __init__(self, json_output: bool = False) -> None:
        super().__init__()
        self.json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, timezone.utc).isoformat(
            timespec="seconds"
        )
        context = record_context(record)
        error = (
            "".join(traceback.format_exception(*record.exc_info)) if record.exc_info else None
        )

        if self.json_output:
            entry: dict[str, Any] = {
                "timestamp": stamp,
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
                **context,
            }
            if error:
                entry["exception"] = error
            return json.dumps(entry, default=str)

        component = record.name.rsplit(".", 1)[-1]
        line = f"{stamp} [{record.levelname}] [{component}] {record.getMessage()}"
        if context:
            line += " " + " ".join(f"{k}={v}" for k, v in context.items())
        if error:
            line += "\n" + error.rstrip("\n")
        return line


_loggers: dict[str, logging.Logger] = {}
_handler: Optional[logging.Handler] = None
_level_override: Optional[int] = None


def _shared_handler() -> logging.Handler:
    global _handler
    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(MysticFormatter(json_output=get_settings().log_json))
    return _handler


def get_logger(name: str) -> logging.Logger:
    """
    Get a package logger.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger writing to the shared handler at the configured level
    """
    logger = _loggers.get(name)
    if logger is None:
        logger = logging.getLogger(name)
        level = _level_override
        logger.setLevel(level if level is not None else get_settings().log_level_int)
        logger.addHandler(_shared_handler())
        logger.propagate = False
        _loggers[name] = logger
    return logger


def set_log_level(level: int) -> None:
    """Change the level of every package logger, including ones created later."""
    global _level_override
    _level_override = level
    for logger in _loggers.values():
        logger.setLevel(level)


def configure_logging(
    level: Optional[int] = None,
    json_output: Optional[bool] = None,
) -> None:
    """
    Apply CLI overrides on top of the environment settings.

    Args:
        level: New level for all package loggers
        json_output: Switch the shared handler to JSON (True) or text (False)
    """
    if level is not None:
        set_log_level(level)
    if json_output is not None:
        _shared_handler().setFormatter(MysticFormatter(json_output=json_output))


def reset_logging() -> None:
    """
    Hand package log records to the root logger (for pytest's caplog).

    Every mystic_alert logger gets propagate=True, level NOTSET and loses
    the shared handler. Loggers stay cached.
    """
    global _handler, _level_override

    for name, logger in list(logging.Logger.manager.loggerDict.items()):
        # loggerDict also holds PlaceHolder objects
        if not isinstance(logger, logging.Logger):
            continue
        if name == _PACKAGE or name.startswith(_PACKAGE + "."):
            logger.propagate = True
            logger.setLevel(logging.NOTSET)
            if _handler is not None:
                logger.removeHandler(_handler)

    _handler = None
    _level_override = None
