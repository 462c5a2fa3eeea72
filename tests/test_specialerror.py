import pytest

from imtools import specialerror
from imtools.specialerror import CodeError, ErrorCodeRegistry


def test_code_error_returned_as_is():
    registry = ErrorCodeRegistry()
    err = CodeError(1001, "args")
    assert registry.err_code(err) is err


def test_unknown_error_maps_to_none():
    registry = ErrorCodeRegistry()
    assert registry.err_code(RuntimeError("x")) is None


def test_add_replace_matches_identity_only():
    registry = ErrorCodeRegistry()
    target = KeyError("missing")
    code_err = CodeError(1004, "not found")
    registry.add_replace(target, code_err)
    assert registry.err_code(target) is code_err
    assert registry.err_code(KeyError("missing")) is None


def test_first_matching_handler_wins():
    registry = ErrorCodeRegistry()
    first = CodeError(1, "first")
    second = CodeError(2, "second")
    registry.add_handler(lambda err: None)
    registry.add_handler(lambda err: first if isinstance(err, ValueError) else None)
    registry.add_handler(lambda err: second)
    assert registry.err_code(ValueError()) is first
    assert registry.err_code(TypeError()) is second


def test_nil_handler_rejected():
    registry = ErrorCodeRegistry()
    with pytest.raises(ValueError, match="nil handler"):
        registry.add_handler(None)


def test_module_level_registry():
    target = OSError("sentinel")
    code_err = CodeError(1500, "io")
    specialerror.add_replace(target, code_err)
    assert specialerror.err_code(target) is code_err
    with pytest.raises(ValueError):
        specialerror.add_err_handler(None)


def test_module_level_handler():
    class _Marker(Exception):
        pass

    code_err = CodeError(1600, "marker")
    specialerror.add_err_handler(lambda err: code_err if isinstance(err, _Marker) else None)
    assert specialerror.err_code(_Marker()) is code_err


def test_code_error_str_includes_detail():
    err = CodeError(7, "bad", detail="more")
    assert err.code == 7
    assert str(err) == "bad: more"
    assert str(CodeError(7, "bad")) == "bad"