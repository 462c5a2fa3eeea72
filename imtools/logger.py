"""Structured logging with console or JSON output, context fields and rotating files."""

from __future__ import annotations

import abc
import copy
import enum
import json
import os
import sys
import threading
import traceback
from datetime import datetime, timedelta
from pathlib import PurePath
from typing import Any, Iterable, Optional, TextIO

from imtools import mcontext
from imtools.colors import capital_color_string, level_color
from imtools.rotatelogs import RotateLogs


class Level(enum.IntEnum):
    """Configured verbosity levels."""

    FATAL = 0
    PANIC = 1
    ERROR = 2
    WARN = 3
    INFO = 4
    DEBUG = 5
    DEBUG_WITH_SQL = 6


class _Severity(enum.IntEnum):
    DEBUG = -1
    INFO = 0
    WARN = 1
    ERROR = 2
    DPANIC = 3
    PANIC = 4
    FATAL = 5

    @property
    def label(self) -> str:
        return self.name.lower()


_LEVEL_TO_SEVERITY = {
    Level.DEBUG_WITH_SQL: _Severity.DEBUG,
    Level.DEBUG: _Severity.DEBUG,
    Level.INFO: _Severity.INFO,
    Level.WARN: _Severity.WARN,
    Level.ERROR: _Severity.ERROR,
    Level.PANIC: _Severity.PANIC,
    Level.FATAL: _Severity.FATAL,
}

CALL_DEPTH = 2
_ROTATE_COUNT = 1
_HOURS_PER_DAY = 24
_LOG_PATH = "./logs/"
_VERSION = "undefined version"
_IS_SIMPLIFY = False

_MESSAGE_WIDTH = 50
_CALLER_WIDTH = 50
_PID_WIDTH = 15
_MODULE_WIDTH = 25
_VERSION_WIDTH = 30


class LogFormatter(abc.ABC):
    """A value that supplies its own compact form for simplified logs."""

    @abc.abstractmethod
    def format(self) -> Any:
        """Return the value to log in place of this object."""


def align_message(msg: str) -> str:
    """Left-align a message and pad it to 50 characters."""
    return f"{str(msg):<{_MESSAGE_WIDTH}}"


def _pad(s: str, width: int) -> str:
    return s.ljust(width)


def _pairs(args: Iterable[Any]) -> list[tuple[str, Any]]:
    """Group alternating keys and values; a dangling key is kept as "ignored"."""
    out: list[tuple[str, Any]] = []
    it = iter(args)
    for key in it:
        try:
            value = next(it)
        except StopIteration:
            out.append(("ignored", key))
            break
        out.append((key if isinstance(key, str) else str(key), value))
    return out


def _json(value: Any) -> str:
    return json.dumps(value, default=str, ensure_ascii=False)


def _json_object(pairs: Iterable[tuple[str, Any]], spaced: bool) -> str:
    sep = ": " if spaced else ":"
    joiner = ", " if spaced else ","
    return "{" + joiner.join(f"{_json(k)}{sep}{_json(v)}" for k, v in pairs) + "}"


def _timestamp(now: datetime) -> str:
    return f"{now:%Y-%m-%d %H:%M:%S}.{now.microsecond // 1000:03d}"


class StructuredLogger:
    """A leveled logger that writes key/value records to stdout and rotating files."""

    def __init__(
        self,
        logger_prefix_name: str,
        module_name: str,
        sdk_type: str,
        platform_name: str,
        log_level: int,
        is_stdout: bool,
        is_json: bool,
        log_location: str,
        rotate_count: int,
        rotation_time: int,
        module_version: str,
        is_simplify: bool,
        stream: Optional[TextIO] = None,
    ) -> None:
        try:
            self._severity = _LEVEL_TO_SEVERITY[Level(int(log_level))]
        except ValueError:
            self._severity = _Severity.INFO
        self._logger_prefix_name = logger_prefix_name
        self._module_name = module_name
        self._sdk_type = sdk_type
        self._platform_name = platform_name
        self._is_stdout = is_stdout
        self._is_json = is_json
        self._rotation_time = timedelta(hours=rotation_time)
        self._module_version = module_version
        self._is_simplify = is_simplify
        self._stream = stream
        self._align = True
        self._name = ""
        self._fields: list[tuple[str, Any]] = []
        self._call_depth = 0
        self._lock = threading.Lock()
        self._writer: Optional[RotateLogs] = (
            self._open_writer(log_location, rotate_count) if log_location else None
        )

    def _open_writer(self, log_location: str, rotate_count: int) -> RotateLogs:
        if self._rotation_time % timedelta(hours=_HOURS_PER_DAY) == timedelta(0):
            suffix = ".%Y-%m-%d"
        elif self._rotation_time % timedelta(hours=1) == timedelta(0):
            suffix = ".%Y-%m-%d_%H"
        else:
            suffix = ".%Y-%m-%d_%H_%M_%S"
        path = log_location + os.sep + self._logger_prefix_name + suffix
        return RotateLogs(
            path, rotation_count=rotate_count, rotation_time=self._rotation_time
        )

    def debug(self, ctx: Optional[mcontext.Context], msg: str, *args: Any) -> None:
        if self._severity > _Severity.DEBUG:
            return
        self._log(_Severity.DEBUG, ctx, msg, list(args))

    def info(self, ctx: Optional[mcontext.Context], msg: str, *args: Any) -> None:
        if self._severity > _Severity.INFO:
            return
        self._log(_Severity.INFO, ctx, msg, list(args))

    def warn(
        self,
        ctx: Optional[mcontext.Context],
        msg: str,
        err: Optional[BaseException],
        *args: Any,
    ) -> None:
        if self._severity > _Severity.WARN:
            return
        kv = list(args)
        if err is not None:
            kv += ["error", str(err)]
        self._log(_Severity.WARN, ctx, msg, kv)

    def error(
        self,
        ctx: Optional[mcontext.Context],
        msg: str,
        err: Optional[BaseException],
        *args: Any,
    ) -> None:
        if self._severity > _Severity.ERROR:
            return
        kv = list(args)
        if err is not None:
            kv += ["error", str(err)]
        self._log(_Severity.ERROR, ctx, msg, kv)

    def panic(self, ctx: Optional[mcontext.Context], msg: str, r: Any, *args: Any) -> None:
        """Log a recovered failure with its stack at error level."""
        if self._severity > _Severity.PANIC:
            return
        if isinstance(r, BaseException) and r.__traceback__ is not None:
            stack = "".join(traceback.format_exception(type(r), r, r.__traceback__))
        else:
            stack = "".join(traceback.format_stack())
        kv = list(args)
        if isinstance(r, BaseException):
            kv += ["error", str(r)]
        else:
            kv += ["recover", r]
        kv += ["stacktrace", stack]
        self._log(_Severity.ERROR, ctx, msg, kv)

    def with_values(self, *args: Any) -> "StructuredLogger":
        """Return a logger that adds these key/value pairs to every record."""
        dup = copy.copy(self)
        dup._fields = self._fields + _pairs(args)
        return dup

    def with_name(self, name: str) -> "StructuredLogger":
        """Return a logger whose name has ``name`` appended."""
        dup = copy.copy(self)
        dup._name = f"{self._name}.{name}" if self._name else name
        return dup

    def with_call_depth(self, depth: int) -> "StructuredLogger":
        """Return a logger that reports a caller ``depth`` frames further out."""
        dup = copy.copy(self)
        dup._call_depth = self._call_depth + depth
        return dup

    def close(self) -> None:
        """Close the log file, if any."""
        if self._writer is not None:
            self._writer.close()

    def _log(
        self,
        severity: _Severity,
        ctx: Optional[mcontext.Context],
        msg: str,
        kv: list[Any],
    ) -> None:
        if severity < self._severity:
            return
        frame = sys._getframe(1)
        for _ in range(self._call_depth):
            if frame.f_back is None:
                break
            frame = frame.f_back
        trimmed = "/".join(PurePath(frame.f_code.co_filename).parts[-2:])
        caller = f"{trimmed}:{frame.f_lineno}"

        kv = self._kv_append(ctx, kv)
        fields = self._fields + _pairs(kv)
        text = align_message(msg) if self._align else str(msg)
        line = self._render(severity, datetime.now(), caller, text, fields)
        self._emit(line)

    def _render(
        self,
        severity: _Severity,
        now: datetime,
        caller: str,
        msg: str,
        fields: list[tuple[str, Any]],
    ) -> str:
        ts = _timestamp(now)
        if self._is_json:
            pairs: list[tuple[str, Any]] = [("level", severity.name), ("time", ts)]
            if self._name:
                pairs.append(("logger", self._name))
            pairs += [
                ("caller", caller),
                ("msg", msg),
                ("PID", os.getpid()),
                ("version", self._module_version),
            ]
            return _json_object(pairs + fields, spaced=False)

        parts = [ts, *self._level_parts(severity)]
        if self._name:
            parts.append(self._name)
        parts += self._caller_parts(caller)
        parts.append(msg)
        line = "\t".join(parts)
        if fields:
            line += "\t" + _json_object(fields, spaced=True)
        return line

    def _level_parts(self, severity: _Severity) -> list[str]:
        color = level_color(severity.label)

        def paint(s: str) -> str:
            return color.add(s) if color is not None else s

        parts = [
            capital_color_string(severity.label),
            paint(_pad(f"[PID:{os.getpid()}]", _PID_WIDTH)),
        ]
        if self._module_name:
            parts.append(paint(_pad(self._module_name, _MODULE_WIDTH)))
        if self._module_version:
            parts.append(_pad(f"[{self._module_version}]", _VERSION_WIDTH))
        return parts

    def _caller_parts(self, caller: str) -> list[str]:
        parts = []
        if self._sdk_type and self._platform_name:
            parts.append(_pad(f"[{self._sdk_type}/{self._platform_name}]", _CALLER_WIDTH))
        parts.append(_pad(f"[{caller}]", _CALLER_WIDTH))
        return parts

    def _emit(self, line: str) -> None:
        with self._lock:
            if self._writer is not None:
                self._writer.write((line + "\n").encode("utf-8"))
            if self._is_stdout:
                out = self._stream if self._stream is not None else sys.stdout
                out.write(line + "\n")
                out.flush()

    def _kv_append(self, ctx: Optional[mcontext.Context], kv: list[Any]) -> list[Any]:
        if ctx is None:
            return kv
        if self._is_simplify:
            if len(kv) % 2 == 0:
                kv = [
                    item.format() if i % 2 and isinstance(item, LogFormatter) else item
                    for i, item in enumerate(kv)
                ]
            else:
                zerror(ctx, "keysAndValues length is not even", None)

        prefix: list[Any] = []
        for key, value in (
            (mcontext.REMOTE_ADDR, mcontext.get_remote_addr(ctx)),
            (mcontext.OP_USER_PLATFORM, mcontext.get_op_user_platform(ctx)),
            (mcontext.TRIGGER_ID, mcontext.get_trigger_id(ctx)),
            (mcontext.CONN_ID, mcontext.get_conn_id(ctx)),
            (mcontext.OPERATION_ID, mcontext.get_operation_id(ctx)),
            (mcontext.OP_USER_ID, mcontext.get_op_user_id(ctx)),
        ):
            if value:
                prefix += [key, value]
        return prefix + kv


_pkg_logger: Optional[StructuredLogger] = None
_os_stdout: Optional[StructuredLogger] = None


def init_logger_from_config(
    logger_prefix_name: str,
    module_name: str,
    sdk_type: str,
    platform_name: str,
    log_level: int,
    is_stdout: bool,
    is_json: bool,
    log_location: str,
    rotate_count: int,
    rotation_time: int,
    module_version: str,
    is_simplify: bool,
) -> None:
    """Configure the package-wide logger used by the z* functions."""
    global _pkg_logger
    lg = StructuredLogger(
        logger_prefix_name,
        module_name,
        sdk_type,
        platform_name,
        log_level,
        is_stdout,
        is_json,
        log_location,
        rotate_count,
        rotation_time,
        module_version,
        is_simplify,
    )
    pkg = lg.with_call_depth(CALL_DEPTH)
    if is_json:
        pkg = pkg.with_name(module_name)
    _pkg_logger = pkg


def init_console_logger(
    module_name: str, log_level: int, is_json: bool, module_version: str
) -> None:
    """Configure the stdout-only logger used by cinfo."""
    global _os_stdout
    lg = StructuredLogger(
        "", module_name, "", "", log_level, True, is_json, "", 0, 0,
        module_version, False,
    )
    lg._align = False
    console = lg.with_call_depth(CALL_DEPTH)
    if is_json:
        console = console.with_name(module_name)
    _os_stdout = console


def _package_logger() -> StructuredLogger:
    if _pkg_logger is None:
        init_logger_from_config(
            "DefaultLogger",
            "DefaultLoggerModule",
            "",
            "",
            Level.DEBUG,
            True,
            False,
            _LOG_PATH,
            _ROTATE_COUNT,
            _HOURS_PER_DAY,
            _VERSION,
            _IS_SIMPLIFY,
        )
    assert _pkg_logger is not None
    return _pkg_logger


def zdebug(ctx: Optional[mcontext.Context], msg: str, *args: Any) -> None:
    _package_logger().debug(ctx, msg, *args)


def zinfo(ctx: Optional[mcontext.Context], msg: str, *args: Any) -> None:
    _package_logger().info(ctx, msg, *args)


def zwarn(
    ctx: Optional[mcontext.Context], msg: str, err: Optional[BaseException], *args: Any
) -> None:
    _package_logger().warn(ctx, msg, err, *args)


def zerror(
    ctx: Optional[mcontext.Context], msg: str, err: Optional[BaseException], *args: Any
) -> None:
    _package_logger().error(ctx, msg, err, *args)


def zpanic(ctx: Optional[mcontext.Context], msg: str, err: Any, *args: Any) -> None:
    _package_logger().panic(ctx, msg, err, *args)


def cinfo(ctx: Optional[mcontext.Context], msg: str, *args: Any) -> None:
    """Log to the console logger; does nothing until init_console_logger is called."""
    if _os_stdout is None:
        return
    _os_stdout.info(ctx, msg, *args)


def sdk_log(
    ctx: Optional[mcontext.Context],
    log_level: int,
    file: str,
    line: int,
    msg: str,
    err: Optional[BaseException],
    keys_and_values: Iterable[Any],
) -> None:
    """Log a record from an external SDK, tagging it with its native file and line."""
    kv = ["native_caller", f"[{file}:{line}]", *keys_and_values]
    if log_level == Level.DEBUG_WITH_SQL:
        zdebug(ctx, msg, *kv)
    elif log_level == Level.INFO:
        zinfo(ctx, msg, *kv)
    elif log_level == Level.WARN:
        zwarn(ctx, msg, err, *kv)
    elif log_level == Level.ERROR:
        zerror(ctx, msg, err, *kv)