"""Logging setup for the ``runback`` logger hierarchy."""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Callable, Optional, Union

LOGGER_NAME = "runback"

Sink = Callable[[str, str], None]


class LogLevel(IntEnum):
    NONE = 0
    ERROR = 1
    WARN = 2
    INFO = 3
    DEBUG = 4


_LOGGING_LEVELS = {
    LogLevel.NONE: logging.CRITICAL + 10,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.WARN: logging.WARNING,
    LogLevel.INFO: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
}

_LEVEL_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "error",
}


def parse_level(level: Union[LogLevel, str, int]) -> LogLevel:
    """Accept a ``LogLevel``, its name (``"warn"``/``"WARNING"`` both work) or value."""
    if isinstance(level, LogLevel):
        return level
    if isinstance(level, int):
        return LogLevel(level)
    name = level.strip().upper()
    if name == "WARNING":
        name = "WARN"
    try:
        return LogLevel[name]
    except KeyError:
        raise ValueError(f"Unknown log level: {level}") from None


class SinkHandler(logging.Handler):
    """Forward ``(level_name, message)`` pairs to a user supplied callable."""

    def __init__(self, sink: Sink):
        super().__init__()
        self.sink = sink

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = _LEVEL_NAMES.get(record.levelno, record.levelname.lower())
            self.sink(level, self.format(record))
        except Exception:
            self.handleError(record)


def set_level(level: Union[LogLevel, str, int]) -> None:
    logging.getLogger(LOGGER_NAME).setLevel(_LOGGING_LEVELS[parse_level(level)])


def configure_logging(
    level: Union[LogLevel, str, int] = LogLevel.INFO, sink: Optional[Sink] = None
) -> logging.Logger:
    """Set the ``runback`` logger level and optionally route records to ``sink``.

    Calling it again with a new sink replaces the previous sink handler.
    """
    logger = logging.getLogger(LOGGER_NAME)
    set_level(level)
    if sink is not None:
        for handler in [h for h in logger.handlers if isinstance(h, SinkHandler)]:
            logger.removeHandler(handler)
        logger.addHandler(SinkHandler(sink))
    return logger
