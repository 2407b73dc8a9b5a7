"""Application logging to standard output and a timestamped file."""

from __future__ import annotations

import contextvars
import json
import logging
import os
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import IO, Any, Dict, Iterator, Optional

from fabriclog.config import LoggerConfig

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "dpanic": logging.CRITICAL,
    "panic": logging.CRITICAL,
    "fatal": logging.CRITICAL,
}

_LEVEL_NAMES = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "FATAL",
}

_current: contextvars.ContextVar[Optional["AppLogger"]] = contextvars.ContextVar(
    "fabriclog_logger", default=None
)


class _ConsoleFormatter(logging.Formatter):
    """Tab separated lines: time, level, caller, message and fields."""

    def format(self, record: logging.LogRecord) -> str:
        when = datetime.fromtimestamp(record.created).strftime("%Y-%m-%dT%H:%M:%S.%f")
        level = _LEVEL_NAMES.get(record.levelno, record.levelname)
        text = f"{when}\t{level}\t{record.filename}:{record.lineno}\t{record.getMessage()}"
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


class AppLogger:
    """A logger that carries structured fields and owns the log file."""

    def __init__(self, logger: logging.Logger, stream: Optional[IO[str]] = None) -> None:
        self.logger = logger
        self._stream = stream
        self._fields: Dict[str, Any] = {}

    def _log(self, level: int, msg: str, fields: Dict[str, Any]) -> None:
        if not self.logger.isEnabledFor(level):
            return
        merged = {**self._fields, **fields}
        if merged:
            msg = f"{msg}\t{json.dumps(merged, default=str, ensure_ascii=False)}"
        self.logger.log(level, msg, stacklevel=3)

    def debug(self, msg: str, **kwargs: Any) -> None:
        """Log at debug level."""
        self._log(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        """Log at info level."""
        self._log(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        """Log at warning level."""
        self._log(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        """Log at error level."""
        self._log(logging.ERROR, msg, kwargs)

    def bind(self, **kwargs: Any) -> "AppLogger":
        """Return a logger that adds these fields to every entry."""
        child = AppLogger(self.logger, self._stream)
        child._fields = {**self._fields, **kwargs}
        return child

    def close(self) -> None:
        """Stop writing to the log file and close it."""
        if self._stream is None:
            return
        for handler in list(self.logger.handlers):
            if getattr(handler, "stream", None) is self._stream:
                self.logger.removeHandler(handler)
        try:
            self._stream.close()
        except OSError as exc:
            print("failed to close application logger:", exc)


def _parse_level(text: str) -> int:
    for name, level in _LEVELS.items():
        if text in (name, name.upper()):
            return level
    raise ValueError(f"unmarshall log level: unrecognized level: {text!r}")


def new_logger(config: LoggerConfig) -> AppLogger:
    """Create a logger writing to stdout and to a new file in the configured folder."""
    level = _parse_level(config.level)
    os.makedirs(config.folder, exist_ok=True)

    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S.%f")
    path = os.path.join(config.folder, f"{timestamp}.log")
    log_file = open(path, "a", encoding="utf-8")

    formatter = _ConsoleFormatter()
    logger = logging.Logger("fabriclog", level)
    for handler in (logging.StreamHandler(sys.stdout), logging.StreamHandler(log_file)):
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return AppLogger(logger, log_file)


def from_context() -> AppLogger:
    """Return the logger of the current request, or raise RuntimeError."""
    logger = _current.get()
    if logger is None:
        raise RuntimeError("no logger in context")
    return logger


@contextmanager
def use_logger(logger: AppLogger) -> Iterator[AppLogger]:
    """Make the logger current for the duration of the block."""
    token = _current.set(logger)
    try:
        yield logger
    finally:
        _current.reset(token)