"""
Log sinks for span records.

Spans that are not exported to Cloud Trace degrade to structured log entries;
these classes decide where those entries go.
"""

from typing import Callable, Dict, List, Any
import logging

from .backends.interfaces import Logger
from .models import LogEntry

logger = logging.getLogger(__name__)

_LEVELS: Dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "NOTICE": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class LoggerFunc(Logger):
    """Adapts a plain callable taking a ``LogEntry`` into a ``Logger``."""

    def __init__(self, func: Callable[[LogEntry], Any]):
        self.func = func

    def log(self, entry: LogEntry) -> None:
        self.func(entry)


class MultiLogger(Logger):
    """
    Fans out every entry to several loggers.

    Each logger receives each entry exactly once. A failing logger does not
    prevent the remaining ones from receiving the entry.
    """

    def __init__(self, *loggers: Logger):
        self.loggers: List[Logger] = [as_logger(item) for item in loggers]
        self.logger = logging.getLogger(self.__class__.__name__)

    def log(self, entry: LogEntry) -> None:
        for target in self.loggers:
            try:
                target.log(entry)
            except Exception as e:
                self.logger.error(f"Logger {target!r} failed to write entry: {e}")

    def close(self) -> None:
        for target in self.loggers:
            try:
                target.close()
            except Exception as e:
                self.logger.error(f"Logger {target!r} failed to close: {e}")


class StdlibLogger(Logger):
    """
    Writes entries to a standard library ``logging.Logger``.

    The payload's ``message`` becomes the log message; the remaining payload
    keys, the labels and the trace id are passed through ``extra`` so that
    formatters can render them.
    """

    def __init__(self, target: logging.Logger):
        self.target = target

    def log(self, entry: LogEntry) -> None:
        level = _LEVELS.get(entry.severity.upper(), logging.INFO)
        if not self.target.isEnabledFor(level):
            return

        fields = {key: value for key, value in entry.payload.items() if key != "message"}
        message = entry.message or ""
        if fields:
            rendered = " ".join(f"{key}={value}" for key, value in sorted(fields.items()))
            message = f"{message} {rendered}".strip()

        extra = {
            "payload": dict(entry.payload),
            "labels": dict(entry.labels),
            "trace_id": entry.trace_id,
        }
        self.target.log(level, message, extra=extra)


def wrap(target: logging.Logger) -> StdlibLogger:
    """
    Wrap a standard library logger as a span log sink.

    Args:
        target: Logger that receives the entries

    Returns:
        A ``Logger`` writing to ``target``
    """
    return StdlibLogger(target)


def as_logger(target: Any) -> Logger:
    """Coerce loggers, stdlib loggers and callables into a ``Logger``."""
    if isinstance(target, Logger):
        return target
    if isinstance(target, logging.Logger):
        return StdlibLogger(target)
    if callable(target):
        return LoggerFunc(target)
    raise TypeError(f"Cannot use {type(target).__name__} as a span logger")
