"""ANSI colours for log level labels."""

from __future__ import annotations

import enum
from typing import Optional


class Color(enum.IntEnum):
    """ANSI foreground colour codes."""

    BLACK = 30
    RED = 31
    GREEN = 32
    YELLOW = 33
    BLUE = 34
    MAGENTA = 35
    CYAN = 36
    WHITE = 37

    def add(self, s: str) -> str:
        """Wrap ``s`` in this colour's escape sequence and a reset."""
        return f"\x1b[{int(self)}m{s}\x1b[0m"


_LEVEL_TO_COLOR = {
    "debug": Color.WHITE,
    "info": Color.BLUE,
    "warn": Color.YELLOW,
    "error": Color.RED,
    "dpanic": Color.RED,
    "panic": Color.RED,
    "fatal": Color.RED,
}


def _key(level: str) -> str:
    return str(level).lower()


def level_color(level: str) -> Optional[Color]:
    """Return the colour used for a level name, or None for an unknown level."""
    return _LEVEL_TO_COLOR.get(_key(level))


def capital_color_string(level: str) -> str:
    """Return the upper-case level name in its colour, or "" for an unknown level."""
    color = level_color(level)
    if color is None:
        return ""
    return color.add(_key(level).upper())


def lowercase_color_string(level: str) -> str:
    """Return the lower-case level name in its colour, or "" for an unknown level."""
    color = level_color(level)
    if color is None:
        return ""
    return color.add(_key(level))