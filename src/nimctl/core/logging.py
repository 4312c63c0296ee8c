"""Diagnostic logging for nimctl.

Diagnostics always go to stderr. Stdout carries command output and the
tailed log and event lines, which must stay pipeable.
"""

import logging
import sys
from enum import Enum
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "nimctl"

# Kubernetes client chatter, shown only when debugging.
_LIBRARY_LOGGERS = ("kubernetes", "urllib3")


class LogLevel(str, Enum):
    """Log level enumeration."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    def to_logging(self) -> int:
        return logging.getLevelName(self.value.upper())


def level_for_flags(verbose: int, quiet: bool, default: LogLevel) -> LogLevel:
    """Map -v/-vv/-q onto a level. The flags win over the configured default."""
    if verbose >= 2:
        return LogLevel.DEBUG
    if verbose == 1:
        return LogLevel.INFO
    if quiet:
        return LogLevel.ERROR
    return default


def setup_logging(level: LogLevel = LogLevel.WARNING, color: bool = True) -> logging.Logger:
    """Route nimctl diagnostics to stderr at ``level``.

    Calling it again replaces the previous handler.
    """
    if color:
        handler: logging.Handler = RichHandler(
            console=Console(stderr=True),
            show_time=False,
            show_path=level is LogLevel.DEBUG,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.to_logging())

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level.to_logging())

    library_level = logging.DEBUG if level is LogLevel.DEBUG else logging.WARNING
    for name in _LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``nimctl`` hierarchy for a module name."""
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def _render(value: Any) -> str:
    text = str(value)
    return repr(text) if not text or " " in text else text


class StructuredLogger:
    """Logger that appends ``key=value`` context to each message.

    Context is only rendered for enabled levels, so per-line debug calls in
    the tail loop cost little when debugging is off.
    """

    def __init__(self, name: str, **context: Any):
        self._logger = get_logger(name)
        self._context = context

    def bind(self, **kwargs: Any) -> "StructuredLogger":
        """Create a new logger with additional context."""
        return StructuredLogger(self._logger.name, **{**self._context, **kwargs})

    def _log(self, level: int, message: str, kwargs: dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        context = {**self._context, **kwargs}
        if context:
            message = f"{message} " + " ".join(f"{k}={_render(v)}" for k, v in context.items())
        self._logger.log(level, message)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, kwargs)
