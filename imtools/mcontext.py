"""Request metadata carried in an immutable context object."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

OPERATION_ID = "operationID"
OP_USER_ID = "opUserID"
OP_USER_PLATFORM = "platform"
CONN_ID = "connID"
TRIGGER_ID = "triggerID"
REMOTE_ADDR = "remoteAddr"

_MUST_INFO_KEYS = (OPERATION_ID, OP_USER_ID, OP_USER_PLATFORM, CONN_ID)


class MissingContextError(ValueError):
    """Raised when a context lacks a value that the caller requires."""


class Context:
    """An immutable key/value context; every change yields a new context."""

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Mapping[Any, Any]] = None) -> None:
        self._values: dict[Any, Any] = dict(values or {})

    def with_value(self, key: Any, value: Any) -> "Context":
        """Return a new context holding ``value`` under ``key``."""
        child = Context(self._values)
        child._values[key] = value
        return child

    def value(self, key: Any) -> Any:
        """Return the value stored under ``key``, or None."""
        return self._values.get(key)

    def __repr__(self) -> str:
        return f"Context({self._values!r})"


@dataclass(frozen=True)
class ContextInfo:
    """The standard request fields read from a context."""

    operation_id: str
    op_user_id: str
    platform: str
    conn_id: str


def with_op_user_id(ctx: Context, op_user_id: str) -> Context:
    return ctx.with_value(OP_USER_ID, op_user_id)


def with_op_user_platform(ctx: Context, platform: str) -> Context:
    return ctx.with_value(OP_USER_PLATFORM, platform)


def with_trigger_id(ctx: Context, trigger_id: str) -> Context:
    return ctx.with_value(TRIGGER_ID, trigger_id)


def new_ctx(operation_id: str) -> Context:
    """Return a fresh context carrying only the operation ID."""
    return set_operation_id(Context(), operation_id)


def set_operation_id(ctx: Context, operation_id: str) -> Context:
    return ctx.with_value(OPERATION_ID, operation_id)


def set_op_user_id(ctx: Context, op_user_id: str) -> Context:
    return ctx.with_value(OP_USER_ID, op_user_id)


def set_conn_id(ctx: Context, conn_id: str) -> Context:
    return ctx.with_value(CONN_ID, conn_id)


def _get_str(ctx: Context, key: str) -> str:
    value = ctx.value(key)
    return value if isinstance(value, str) else ""


def get_operation_id(ctx: Context) -> str:
    return _get_str(ctx, OPERATION_ID)


def get_op_user_id(ctx: Context) -> str:
    return _get_str(ctx, OP_USER_ID)


def get_conn_id(ctx: Context) -> str:
    return _get_str(ctx, CONN_ID)


def get_trigger_id(ctx: Context) -> str:
    return _get_str(ctx, TRIGGER_ID)


def get_op_user_platform(ctx: Context) -> str:
    return _get_str(ctx, OP_USER_PLATFORM)


def get_remote_addr(ctx: Context) -> str:
    return _get_str(ctx, REMOTE_ADDR)


def _require_str(ctx: Context, key: str, label: str) -> str:
    value = ctx.value(key)
    if not isinstance(value, str):
        raise MissingContextError(f"ctx missing {label}")
    return value


def get_must_ctx_info(ctx: Context) -> ContextInfo:
    """Read the request fields; operation ID, user ID and platform are required."""
    return ContextInfo(
        operation_id=_require_str(ctx, OPERATION_ID, "operationID"),
        op_user_id=_require_str(ctx, OP_USER_ID, "opUserID"),
        platform=_require_str(ctx, OP_USER_PLATFORM, "platform"),
        conn_id=get_conn_id(ctx),
    )


def get_ctx_infos(ctx: Context) -> ContextInfo:
    """Read the request fields; only the operation ID is required."""
    return ContextInfo(
        operation_id=_require_str(ctx, OPERATION_ID, "operationID"),
        op_user_id=get_op_user_id(ctx),
        platform=get_op_user_platform(ctx),
        conn_id=get_conn_id(ctx),
    )


def with_must_info_ctx(values: Iterable[str]) -> Context:
    """Build a context from values in the order operation ID, user ID, platform, connection ID."""
    values = list(values)
    if len(values) > len(_MUST_INFO_KEYS):
        raise ValueError(
            f"at most {len(_MUST_INFO_KEYS)} values are accepted, got {len(values)}"
        )
    ctx = Context()
    for key, value in zip(_MUST_INFO_KEYS, values):
        ctx = ctx.with_value(key, value)
    return ctx