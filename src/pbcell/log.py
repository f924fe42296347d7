"""Logging sink used by the status-code layer.

The geometry engine itself never logs. :mod:`pbcell.boundary` reports every
failure through the ``pbcell`` logger configured here, which always has
exactly one sink installed:

- standard error (the default),
- standard output,
- a file,
- a user callback ``callback(level, message)``,
- nothing at all (:func:`log_silent`).

Installing a sink replaces the previous one. The level filter is independent
of the sink and defaults to :attr:`LogLevel.WARNING`.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Callable

import logging
import os
import sys

from .errors import InvalidArgumentError


LOG = logging.getLogger('pbcell')
LOG.propagate = False

_FORMAT = '%(name)s %(levelname)s: %(message)s'


class LogLevel(IntEnum):
    """Verbosity levels, ordered from quiet to verbose."""

    NONE = -1
    ERROR = 0
    WARNING = 1
    INFO = 2
    DEBUG = 3


_TO_LOGGING = {
    LogLevel.NONE: logging.CRITICAL + 10,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.INFO: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
}


def _from_logging(levelno: int) -> LogLevel:
    if levelno >= logging.ERROR:
        return LogLevel.ERROR
    if levelno >= logging.WARNING:
        return LogLevel.WARNING
    if levelno >= logging.INFO:
        return LogLevel.INFO
    return LogLevel.DEBUG


class _CallbackHandler(logging.Handler):
    """Forward records to ``callback(level, message)``."""

    def __init__(self, callback: Callable[[LogLevel, str], None]) -> None:
        super().__init__()
        self.callback = callback

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.callback(_from_logging(record.levelno), record.getMessage())
        except Exception:
            self.handleError(record)


class _StandardStreamHandler(logging.StreamHandler):
    """Write to sys.stdout or sys.stderr as they are when a record is emitted."""

    def __init__(self, name: str) -> None:
        logging.Handler.__init__(self)
        self._name = name

    @property
    def stream(self):  # type: ignore[override]
        return getattr(sys, self._name)


_handler: logging.Handler | None = None


def _install(handler: logging.Handler) -> None:
    global _handler
    if not isinstance(handler, (logging.NullHandler, _CallbackHandler)):
        handler.setFormatter(logging.Formatter(_FORMAT))
    if _handler is not None:
        LOG.removeHandler(_handler)
        _handler.close()
    LOG.addHandler(handler)
    _handler = handler


def loglevel() -> LogLevel:
    """Return the current level."""
    current = LOG.level
    for level, value in _TO_LOGGING.items():
        if value == current:
            return level
    return _from_logging(current)


def set_loglevel(level: LogLevel | int | str) -> None:
    """Set the level; accepts a LogLevel, its integer value or its name.

    Raises:
        InvalidArgumentError: If the level is unknown.
    """
    try:
        if isinstance(level, str):
            parsed = LogLevel[level.strip().upper()]
        else:
            parsed = LogLevel(level)
    except (KeyError, ValueError) as e:
        raise InvalidArgumentError(f'unknown log level: {level!r}') from e
    LOG.setLevel(_TO_LOGGING[parsed])


def log_to_file(path: str | os.PathLike[str]) -> None:
    """Append log messages to ``path``."""
    _install(logging.FileHandler(os.fspath(path), mode='a', encoding='utf-8'))


def log_to_stdout() -> None:
    _install(_StandardStreamHandler('stdout'))


def log_to_stderr() -> None:
    _install(_StandardStreamHandler('stderr'))


def log_silent() -> None:
    """Drop every message, whatever the level."""
    _install(logging.NullHandler())


def log_callback(callback: Callable[[LogLevel, str], None]) -> None:
    """Send messages to ``callback(level, message)``.

    Raises:
        InvalidArgumentError: If callback is not callable.
    """
    if not callable(callback):
        raise InvalidArgumentError('log callback must be callable')
    _install(_CallbackHandler(callback))


log_to_stderr()
set_loglevel(LogLevel.WARNING)
