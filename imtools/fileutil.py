"""File name generation from strftime patterns and log file creation."""

from __future__ import annotations

import os
import re
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import BinaryIO, Callable, Union

Clock = Callable[[], datetime]

_DAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)
_MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

# Truncation is measured from the first instant of year 1, so every
# rotation period lines up with the same boundaries regardless of platform.
_ZERO_TIME = datetime(1, 1, 1)


def _hour12(dt: datetime) -> int:
    return dt.hour % 12 or 12


def _yday0(dt: datetime) -> int:
    return dt.timetuple().tm_yday - 1


def _utc_offset(dt: datetime) -> str:
    offset = dt.utcoffset() or timedelta(0)
    sign = "-" if offset < timedelta(0) else "+"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{sign}{minutes // 60:02d}{minutes % 60:02d}"


_DIRECTIVES: dict[str, Callable[[datetime], str]] = {
    "A": lambda dt: _DAY_NAMES[dt.weekday()],
    "a": lambda dt: _DAY_NAMES[dt.weekday()][:3],
    "B": lambda dt: _MONTH_NAMES[dt.month - 1],
    "b": lambda dt: _MONTH_NAMES[dt.month - 1][:3],
    "h": lambda dt: _MONTH_NAMES[dt.month - 1][:3],
    "C": lambda dt: f"{dt.year // 100:02d}",
    "c": lambda dt: (
        f"{_DAY_NAMES[dt.weekday()][:3]} {_MONTH_NAMES[dt.month - 1][:3]} "
        f"{dt.day:2d} {dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} {dt.year:04d}"
    ),
    "D": lambda dt: f"{dt.month:02d}/{dt.day:02d}/{dt.year % 100:02d}",
    "d": lambda dt: f"{dt.day:02d}",
    "e": lambda dt: f"{dt.day:2d}",
    "F": lambda dt: f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}",
    "H": lambda dt: f"{dt.hour:02d}",
    "I": lambda dt: f"{_hour12(dt):02d}",
    "j": lambda dt: f"{_yday0(dt) + 1:03d}",
    "k": lambda dt: f"{dt.hour:2d}",
    "l": lambda dt: f"{_hour12(dt):2d}",
    "M": lambda dt: f"{dt.minute:02d}",
    "m": lambda dt: f"{dt.month:02d}",
    "n": lambda dt: "\n",
    "p": lambda dt: "AM" if dt.hour < 12 else "PM",
    "R": lambda dt: f"{dt.hour:02d}:{dt.minute:02d}",
    "r": lambda dt: (
        f"{_hour12(dt):02d}:{dt.minute:02d}:{dt.second:02d} "
        f"{'AM' if dt.hour < 12 else 'PM'}"
    ),
    "S": lambda dt: f"{dt.second:02d}",
    "T": lambda dt: f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}",
    "t": lambda dt: "\t",
    "U": lambda dt: f"{(_yday0(dt) + 7 - (dt.weekday() + 1) % 7) // 7:02d}",
    "u": lambda dt: str(dt.weekday() + 1),
    "V": lambda dt: f"{dt.isocalendar()[1]:02d}",
    "v": lambda dt: f"{dt.day:2d}-{_MONTH_NAMES[dt.month - 1][:3]}-{dt.year:04d}",
    "W": lambda dt: f"{(_yday0(dt) + 7 - dt.weekday()) // 7:02d}",
    "w": lambda dt: str((dt.weekday() + 1) % 7),
    "X": lambda dt: f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}",
    "x": lambda dt: f"{dt.month:02d}/{dt.day:02d}/{dt.year % 100:02d}",
    "Y": lambda dt: f"{dt.year:04d}",
    "y": lambda dt: f"{dt.year % 100:02d}",
    "Z": lambda dt: dt.tzname() or "",
    "z": _utc_offset,
    "%": lambda dt: "%",
}

_TOKEN_RE = re.compile(r"(%.?)", re.DOTALL)

_Token = Union[str, Callable[[datetime], str]]


@lru_cache(maxsize=128)
def _compile_pattern(pattern: str) -> tuple[_Token, ...]:
    """Split a strftime pattern into literals and directive formatters."""
    tokens: list[_Token] = []
    for piece in _TOKEN_RE.split(pattern):
        if not piece:
            continue
        if not piece.startswith("%"):
            tokens.append(piece)
            continue
        if len(piece) == 1:
            raise ValueError(f"stray % at end of pattern {pattern!r}")
        directive = _DIRECTIVES.get(piece[1])
        if directive is None:
            raise ValueError(f"unknown time format specification {piece!r}")
        tokens.append(directive)
    return tuple(tokens)


def _render(pattern: str, moment: datetime) -> str:
    return "".join(
        token if isinstance(token, str) else token(moment)
        for token in _compile_pattern(pattern)
    )


def generate_fn(pattern: str, clock: Clock, rotation_time: timedelta) -> str:
    """Build a file name from the pattern and the clock's time truncated to the rotation period.

    Truncation is applied to the wall-clock reading, so daily rotation starts
    at local midnight whatever time zone the clock reports in.
    """
    wall = clock().replace(tzinfo=None)
    if rotation_time > timedelta(0):
        wall -= (wall - _ZERO_TIME) % rotation_time
    return _render(pattern, wall.replace(tzinfo=timezone.utc))


def create_file(filename: Union[str, os.PathLike]) -> BinaryIO:
    """Open a file for appending, creating it and its parent directories as needed."""
    filename = os.fspath(filename)
    dirname = os.path.dirname(filename) or "."
    try:
        os.makedirs(dirname, mode=0o755, exist_ok=True)
    except OSError as exc:
        raise OSError(f"failed to create directory {dirname}: {exc}") from exc
    try:
        fd = os.open(filename, os.O_CREAT | os.O_APPEND | os.O_WRONLY, 0o644)
    except OSError as exc:
        raise OSError(f"failed to open file {filename}: {exc}") from exc
    return os.fdopen(fd, "ab", buffering=0)