"""
Logging configuration for pipconverge.

Every log record carries the package being converged as
``%(package)s`` (``pip[requests]``, or ``-`` outside a convergence
call). The controller sets it with :func:`package_context`; a filter
on each handler copies it onto the record.

Console level precedence:
    --debug / --verbose / --quiet  >  PIPCONVERGE_LOG_LEVEL  >  WARNING

The shell runner logs every command it spawns on ``COMMAND_LOGGER``.
That trace is only let through when tracing is on, which by default
means some handler is at DEBUG.

PIPCONVERGE_LOG_FILE adds a file handler; PIPCONVERGE_LOG_FILE_LEVEL
sets its threshold independently of the console.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

LOG_LEVEL_ENV = "PIPCONVERGE_LOG_LEVEL"
LOG_FILE_ENV = "PIPCONVERGE_LOG_FILE"
LOG_FILE_LEVEL_ENV = "PIPCONVERGE_LOG_FILE_LEVEL"

COMMAND_LOGGER = "pipconverge.adapters.shell"

NO_PACKAGE = "-"

_current_package: ContextVar[str] = ContextVar("pipconverge_package", default=NO_PACKAGE)

# Console: the higher the level, the terser the line.
_CONSOLE_DEBUG = "%(asctime)s %(levelname)-5s %(package)s %(name)s:%(lineno)d: %(message)s"
_CONSOLE_INFO = "%(asctime)s %(package)s: %(message)s"
_CONSOLE_PLAIN = "%(message)s"
_CONSOLE_DATEFMT = "%H:%M:%S"

_FILE_FORMAT = "%(asctime)s %(levelname)-5s [%(package)s] %(name)s: %(message)s"


class PackageContextFilter(logging.Filter):
    """Stamp each record with the package currently being converged."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.package = _current_package.get()
        return True


@contextmanager
def package_context(package: object) -> Iterator[None]:
    """Attribute every record logged inside the block to ``package``."""
    token = _current_package.set(str(package))
    try:
        yield
    finally:
        _current_package.reset(token)


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    trace_commands: bool | None = None,
) -> None:
    """Install console (and optional file) handlers on the root logger.

    Args:
        level: Console level name.
        log_file: Optional path of a log file.
        log_file_level: File threshold; defaults to ``level``.
        trace_commands: Let the spawned-command trace through. None
            turns it on when any handler is at DEBUG.
    """
    console_level = _parse_level(level)
    context = PackageContextFilter()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.addFilter(context)
    console.setFormatter(_console_formatter(console_level))
    handlers: list[logging.Handler] = [console]

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.addFilter(context)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        handlers.append(file_handler)

    root = logging.getLogger()
    for old in root.handlers[:]:
        root.removeHandler(old)
    for handler in handlers:
        root.addHandler(handler)

    lowest = min(h.level for h in handlers)
    root.setLevel(lowest)

    if trace_commands is None:
        trace_commands = lowest <= logging.DEBUG
    logging.getLogger(COMMAND_LOGGER).setLevel(
        logging.NOTSET if trace_commands else logging.WARNING
    )


def _console_formatter(level: int) -> logging.Formatter:
    if level <= logging.DEBUG:
        return logging.Formatter(_CONSOLE_DEBUG, datefmt=_CONSOLE_DATEFMT)
    if level <= logging.INFO:
        return logging.Formatter(_CONSOLE_INFO, datefmt=_CONSOLE_DATEFMT)
    return logging.Formatter(_CONSOLE_PLAIN)


def _parse_level(level: str | None) -> int:
    """Level name to number; unknown or empty names mean WARNING."""
    if not level:
        return logging.WARNING
    return logging.getLevelNamesMapping().get(level.upper(), logging.WARNING)
