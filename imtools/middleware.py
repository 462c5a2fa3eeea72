"""Interceptor chaining, nil-container filling and error trace formatting."""

from __future__ import annotations

import collections.abc
import dataclasses
import traceback
import types
import typing
from typing import Any, Callable, Union

Handler = Callable[[Any, Any], Any]
Interceptor = Callable[[Any, Any, Any, Handler], Any]

_LIST_TYPES = (list, collections.abc.Sequence, collections.abc.MutableSequence)
_DICT_TYPES = (dict, collections.abc.Mapping, collections.abc.MutableMapping)

_LIST_NAMES = frozenset({"list", "List", "Sequence", "MutableSequence"})
_DICT_NAMES = frozenset({"dict", "Dict", "Mapping", "MutableMapping"})


def intercept_chain(*args: Interceptor) -> Interceptor:
    """Combine interceptors into one; the first given runs outermost.

    Each interceptor is called as ``interceptor(ctx, req, info, handler)``.
    """
    interceptors = tuple(args)

    def chained(ctx: Any, req: Any, info: Any, handler: Handler) -> Any:
        def link(interceptor: Interceptor, nxt: Handler) -> Handler:
            return lambda c, r: interceptor(c, r, info, nxt)

        current = handler
        for interceptor in reversed(interceptors):
            current = link(interceptor, current)
        return current(ctx, req)

    return chained


def _split_top_level(text: str, sep: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in text:
        if ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
        if ch == sep and depth == 0:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    parts.append("".join(current).strip())
    return parts


def _short_name(text: str) -> str:
    return text.split("[", 1)[0].strip().rsplit(".", 1)[-1]


def _unwrap_optional_text(text: str) -> tuple[str, bool]:
    text = text.strip()
    head = _short_name(text)
    if head == "Optional" and text.endswith("]"):
        return text[text.index("[") + 1 : -1].strip(), True
    if head == "Union" and text.endswith("]"):
        args = _split_top_level(text[text.index("[") + 1 : -1], ",")
    else:
        args = _split_top_level(text, "|")
    rest = [a for a in args if a not in ("None", "NoneType")]
    if len(rest) == 1 and len(rest) < len(args):
        return rest[0], True
    return text, False


def _unwrap_optional(tp: Any) -> tuple[Any, bool]:
    if isinstance(tp, str):
        return _unwrap_optional_text(tp)
    origin = typing.get_origin(tp)
    if origin is Union or origin is types.UnionType:
        args = typing.get_args(tp)
        rest = [a for a in args if a is not type(None)]
        if len(rest) == 1 and len(rest) < len(args):
            return rest[0], True
    return tp, False


def _empty_for(tp: Any) -> Any:
    if isinstance(tp, str):
        name = _short_name(tp)
        if name in _LIST_NAMES:
            return []
        if name in _DICT_NAMES:
            return {}
        return None
    base = typing.get_origin(tp) or tp
    if base in _LIST_TYPES:
        return []
    if base in _DICT_TYPES:
        return {}
    return None


def _fill(value: Any, tp: Any) -> Any:
    inner, optional = _unwrap_optional(tp)
    if value is None:
        return None if optional else _empty_for(inner)
    _walk(value)
    return value


def _walk(obj: Any) -> None:
    if not dataclasses.is_dataclass(obj) or isinstance(obj, type):
        return
    for f in dataclasses.fields(obj):
        if f.name.startswith("_"):
            continue
        value = getattr(obj, f.name)
        filled = _fill(value, f.type)
        if filled is not value:
            setattr(obj, f.name, filled)


def replace_nil(data: Any) -> None:
    """Fill None list and dict fields of a dataclass tree in place.

    Fields typed as lists become ``[]`` and as dicts ``{}``; Optional fields
    stay None, fields with a leading underscore are left alone, and nested
    dataclasses are visited recursively.
    """
    _walk(data)


def simplify_func_name(full_func_name: str) -> str:
    """Reduce a qualified function name to its last component."""
    last = full_func_name.split("/")[-1]
    parts = last.split(".")
    return parts[-1] if len(parts) > 1 else last


def format_error(err: BaseException) -> BaseException:
    """Return an error whose message includes the call path of ``err``'s traceback.

    Errors without a traceback are returned unchanged.
    """
    tb = err.__traceback__
    if tb is None:
        return err
    call_path = [
        f"{simplify_func_name(frame.name)} ({frame.filename}:{frame.lineno})"
        for frame in traceback.extract_tb(tb)
    ]
    formatted = Exception(f"Error: {err} | Error trace: " + " -> ".join(call_path))
    formatted.__cause__ = err
    return formatted