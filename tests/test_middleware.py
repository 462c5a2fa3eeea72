import dataclasses
from dataclasses import dataclass, field
from typing import Any, Optional

import pytest

from imtools.middleware import (
    format_error,
    intercept_chain,
    replace_nil,
    simplify_func_name,
)


@dataclass
class C:
    pass


@dataclass
class B:
    d: Optional[C] = None
    e: list[int] = None  # type: ignore[assignment]


@dataclass
class A:
    b: Optional[B] = None
    bb: B = field(default_factory=B)
    bs: list[Optional[B]] = None  # type: ignore[assignment]
    c: list[int] = None  # type: ignore[assignment]
    d: dict[str, str] = None  # type: ignore[assignment]
    e: Any = None
    f: Optional[int] = None


@dataclass
class D:
    _sb: str = ""
    _nt: list[C] = field(default_factory=list)
    _ssb: Optional[A] = None


def test_replace_nil_empty_struct():
    a = A()
    replace_nil(a)
    assert dataclasses.asdict(a) == {
        "b": None,
        "bb": {"d": None, "e": []},
        "bs": [],
        "c": [],
        "d": {},
        "e": None,
        "f": None,
    }


def test_replace_nil_populated_struct_unchanged():
    c = A(
        b=None,
        bb=B(d=C(), e=[1, 2, 5, 3, 6]),
        c=[1, 1, 1],
        d={"a": "A", "b": "B"},
        e={1: 11, 2: 22},
        f=5,
    )
    replace_nil(c)
    assert c.bb.d == C()
    assert c.bb.e == [1, 2, 5, 3, 6]
    assert c.c == [1, 1, 1]
    assert c.d == {"a": "A", "b": "B"}
    assert c.e == {1: 11, 2: 22}
    assert c.f == 5
    assert c.b is None
    assert c.bs == []


def test_replace_nil_skips_private_fields():
    inner = A()
    dd = D(_sb="fhldsa", _nt=[], _ssb=inner)
    replace_nil(dd)
    assert dd._ssb.c is None
    assert dd._ssb.d is None
    assert dd._sb == "fhldsa"


def test_replace_nil_follows_set_optional_and_any():
    a = A(b=B(), e=B())
    replace_nil(a)
    assert a.b.e == []
    assert a.e.e == []


def test_replace_nil_ignores_non_dataclasses():
    data = {"x": None}
    replace_nil(data)
    assert data == {"x": None}


def test_intercept_chain_order():
    calls = []

    def make(name):
        def interceptor(ctx, req, info, handler):
            calls.append(f"{name}-before:{info}")
            resp = handler(ctx, req + [name])
            calls.append(f"{name}-after")
            return resp
        return interceptor

    def handler(ctx, req):
        calls.append("handler")
        return (ctx, req)

    chained = intercept_chain(make("a"), make("b"))
    result = chained("ctx", [], "info", handler)
    assert result == ("ctx", ["a", "b"])
    assert calls == ["a-before:info", "b-before:info", "handler", "b-after", "a-after"]


def test_intercept_chain_empty_calls_handler():
    chained = intercept_chain()
    assert chained("ctx", 3, None, lambda ctx, req: req * 2) == 6


def test_intercept_chain_can_short_circuit():
    def stop(ctx, req, info, handler):
        return "blocked"

    def handler(ctx, req):
        raise AssertionError("handler must not run")

    assert intercept_chain(stop)("ctx", None, None, handler) == "blocked"


@pytest.mark.parametrize(
    "name, expected",
    [
        ("pkg/sub/mw.FormatError", "FormatError"),
        ("pkg/sub/mw.(*Type).Method", "Method"),
        ("plain", "plain"),
        ("Outer.inner", "inner"),
    ],
)
def test_simplify_func_name(name, expected):
    assert simplify_func_name(name) == expected


def _raise_boom():
    raise ValueError("boom")


def test_format_error_includes_trace():
    try:
        _raise_boom()
    except ValueError as exc:
        caught = exc
    formatted = format_error(caught)
    text = str(formatted)
    assert text.startswith("Error: boom | Error trace: ")
    assert "_raise_boom (" in text
    assert "test_format_error_includes_trace (" in text
    assert text.index("test_format_error_includes_trace") < text.index("_raise_boom")
    assert formatted.__cause__ is caught


def test_format_error_without_traceback_unchanged():
    err = ValueError("plain")
    assert format_error(err) is err