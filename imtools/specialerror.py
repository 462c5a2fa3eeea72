"""Mapping of arbitrary exceptions to coded errors."""

from __future__ import annotations

from typing import Callable, Optional


class CodeError(Exception):
    """An error that carries a numeric code."""

    def __init__(self, code: int, msg: str = "", detail: str = "") -> None:
        super().__init__(msg)
        self.code = code
        self.msg = msg
        self.detail = detail

    def __str__(self) -> str:
        return f"{self.msg}: {self.detail}" if self.detail else self.msg

    def __repr__(self) -> str:
        return f"CodeError(code={self.code!r}, msg={self.msg!r}, detail={self.detail!r})"


ErrHandler = Callable[[BaseException], Optional[CodeError]]


class ErrorCodeRegistry:
    """An ordered list of handlers that turn exceptions into coded errors."""

    def __init__(self) -> None:
        self._handlers: list[ErrHandler] = []

    def add_handler(self, handler: Optional[ErrHandler]) -> None:
        """Register a handler; handlers are tried in registration order."""
        if handler is None:
            raise ValueError("nil handler")
        self._handlers.append(handler)

    def add_replace(self, target: BaseException, code_err: CodeError) -> None:
        """Map the exact exception object ``target`` to ``code_err``."""

        def handler(err: BaseException) -> Optional[CodeError]:
            return code_err if err is target else None

        self.add_handler(handler)

    def err_code(self, err: BaseException) -> Optional[CodeError]:
        """Return the coded error for ``err``, or None if nothing matches."""
        if isinstance(err, CodeError):
            return err
        for handler in self._handlers:
            code_err = handler(err)
            if code_err is not None:
                return code_err
        return None


_default = ErrorCodeRegistry()


def add_err_handler(handler: Optional[ErrHandler]) -> None:
    _default.add_handler(handler)


def add_replace(target: BaseException, code_err: CodeError) -> None:
    _default.add_replace(target, code_err)


def err_code(err: BaseException) -> Optional[CodeError]:
    return _default.err_code(err)