"""Adapters that route SQL tracing and ZooKeeper output into the package logger."""

from __future__ import annotations

import dataclasses
import enum
import sys
from datetime import datetime, timedelta
from pathlib import PurePath
from typing import Any, Callable, Optional

from imtools import mcontext
from imtools.logger import zdebug, zerror, zinfo, zwarn

_MICROSECOND = timedelta(microseconds=1)


class SqlLogLevel(enum.IntEnum):
    """Verbosity of SQL tracing."""

    SILENT = 1
    ERROR = 2
    WARN = 3
    INFO = 4


class RecordNotFoundError(LookupError):
    """Raised by a query that found no matching record."""

    def __init__(self, message: str = "record not found") -> None:
        super().__init__(message)


def _is_record_not_found(err: BaseException) -> bool:
    seen: set[int] = set()
    current: Optional[BaseException] = err
    while current is not None and id(current) not in seen:
        if isinstance(current, RecordNotFoundError):
            return True
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return False


def _trim_decimal(value: float, digits: int) -> str:
    text = f"{value:.{digits}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _format_duration(d: timedelta) -> str:
    """Format a duration compactly, e.g. ``200ms``, ``1.5s`` or ``1h2m3s``."""
    us = d // _MICROSECOND
    if us == 0:
        return "0s"
    sign = "-" if us < 0 else ""
    us = abs(us)
    if us < 1_000:
        return f"{sign}{us}µs"
    if us < 1_000_000:
        return f"{sign}{_trim_decimal(us / 1_000, 3)}ms"
    hours, rest = divmod(us, 3_600_000_000)
    minutes, rest = divmod(rest, 60_000_000)
    seconds = _trim_decimal(rest / 1_000_000, 6) + "s"
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}"
    if minutes:
        return f"{sign}{minutes}m{seconds}"
    return f"{sign}{seconds}"


def _elapsed_ms(elapsed: timedelta) -> str:
    return f"{elapsed / _MICROSECOND / 1_000:f}(ms)"


def _caller_location(depth: int) -> str:
    frame = sys._getframe(depth + 1)
    trimmed = "/".join(PurePath(frame.f_code.co_filename).parts[-2:])
    return f"{trimmed}:{frame.f_lineno}"


@dataclasses.dataclass
class SqlLogger:
    """Logs SQL statements, errors and slow queries through the package logger."""

    log_level: SqlLogLevel
    ignore_record_not_found_error: bool
    slow_threshold: timedelta

    def log_mode(self, log_level: SqlLogLevel) -> "SqlLogger":
        """Return a copy of this logger with a different level."""
        return dataclasses.replace(self, log_level=log_level)

    def info(self, ctx: Optional[mcontext.Context], msg: str, *args: Any) -> None:
        zinfo(ctx, msg, "args", list(args))

    def warn(self, ctx: Optional[mcontext.Context], msg: str, *args: Any) -> None:
        zwarn(ctx, msg, None, "args", list(args))

    def error(self, ctx: Optional[mcontext.Context], msg: str, *args: Any) -> None:
        """Log at error level; a leading exception argument becomes the logged error."""
        err: Optional[BaseException] = None
        start = 0
        if args and isinstance(args[0], BaseException):
            err = args[0]
            start = 1
        kv: list[Any] = []
        for i, value in enumerate(args[start:], start=start):
            kv += [f"args[{i}]", value]
        zerror(ctx, msg, err, *kv)

    def trace(
        self,
        ctx: Optional[mcontext.Context],
        begin: datetime,
        fc: Callable[[], tuple[str, int]],
        err: Optional[BaseException],
    ) -> None:
        """Log one executed statement according to the level, its error and duration.

        ``fc`` returns the SQL text and the affected row count (-1 when unknown)
        and is only called when something is logged.
        """
        if self.log_level <= SqlLogLevel.SILENT:
            return
        elapsed = datetime.now(begin.tzinfo) - begin
        location = _caller_location(1)

        if (
            err is not None
            and self.log_level >= SqlLogLevel.ERROR
            and (not _is_record_not_found(err) or not self.ignore_record_not_found_error)
        ):
            sql, rows = fc()
            kv: list[Any] = ["gorm", location, "elapsed time", _elapsed_ms(elapsed)]
            if rows != -1:
                kv += ["rows", rows]
            kv += ["sql", sql]
            zerror(ctx, "sql exec detail", err, *kv)
        elif (
            elapsed > self.slow_threshold
            and self.slow_threshold != timedelta(0)
            and self.log_level >= SqlLogLevel.WARN
        ):
            sql, rows = fc()
            slow_log = f"SLOW SQL >= {_format_duration(self.slow_threshold)}"
            kv = [
                "gorm",
                location,
                "slow sql",
                slow_log,
                "elapsed time",
                _elapsed_ms(elapsed),
            ]
            if rows != -1:
                kv += ["rows", rows]
            kv += ["sql", sql]
            zwarn(ctx, "sql exec detail", None, *kv)
        elif self.log_level == SqlLogLevel.INFO:
            sql, rows = fc()
            kv = ["gorm", location, "elapsed time", _elapsed_ms(elapsed)]
            if rows != -1:
                kv += ["rows", rows]
            kv += ["sql", sql]
            zdebug(ctx, "sql exec detail", *kv)


class ZkLogger:
    """Forwards ZooKeeper client output to the package logger at info level."""

    def printf(self, format: str, *args: Any) -> None:
        text = format % args if args else format
        zinfo(mcontext.Context(), "zookeeper output", "msg", text)