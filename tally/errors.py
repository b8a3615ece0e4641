"""
tally.errors
------------

A small, consistent error system for the counter/record unit.

Design goals
------------
- One root `TallyError` with a machine-friendly `code` and optional `data`.
- Concrete subclasses for the few things that can go wrong: authorization,
  state invariants, storage/codec failures, malformed messages, config.
- Safe JSON representation (`to_dict`) suitable for logs and CLI output.
- `retryable` is a hint only; nothing in this package retries.

This module uses only stdlib so every other module can import it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class ErrorCode(str, Enum):
    INTERNAL = "CORE/INTERNAL"
    CONFIG = "CONFIG/INVALID"

    # Authorization
    UNAUTHORIZED = "AUTH/UNAUTHORIZED"

    # State / invariants
    STATE_INVARIANT = "STATE/INVARIANT"
    KEYSPACE_EXHAUSTED = "STATE/KEYSPACE_EXHAUSTED"

    # Storage & codec
    STORAGE = "STORAGE/FAILURE"
    STORAGE_NOT_FOUND = "STORAGE/NOT_FOUND"

    # Messages
    MSG_INVALID = "MSG/INVALID"


@dataclass(eq=False)
class TallyError(Exception):
    """
    Root error for tally components.

    Attributes
    ----------
    code: str
        Machine-stable error code (see ErrorCode).
    message: str
        Human hint suitable for logs.
    data: dict
        Optional machine data (keys, identities, namespaces). JSON-serializable.
    retryable: bool
        Whether the operation may succeed on retry without changing inputs.
    cause: Optional[BaseException]
        Wrapped original exception; not part of equality.
    """

    code: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    retryable: bool = False
    cause: Optional[BaseException] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        super().__init__(f"{_code_str(self.code)}: {self.message}")

    def with_cause(self, exc: BaseException) -> "TallyError":
        """Copy of this error, same class and fields, with `exc` as the cause."""
        cls = type(self)
        clone = cls.__new__(cls)
        clone.__dict__.update(self.__dict__)
        clone.args = self.args
        clone.data = dict(self.data)
        clone.cause = exc
        return clone

    def to_dict(self, include_cause: bool = False) -> Dict[str, Any]:
        """JSON-safe shape suitable for logs and CLI output."""
        out: Dict[str, Any] = {
            "code": _code_str(self.code),
            "message": self.message,
            "data": _jsonmap(self.data),
            "retryable": self.retryable,
        }
        if include_cause and self.cause is not None:
            out["cause"] = {
                "type": type(self.cause).__name__,
                "message": str(self.cause),
            }
        return out

    def __str__(self) -> str:
        parts = [f"{_code_str(self.code)}: {self.message}"]
        if self.data:
            preview = ", ".join(f"{k}={_preview(v)}" for k, v in self.data.items())
            parts.append(f"[{preview}]")
        return " ".join(parts)


class InternalError(TallyError):
    def __init__(self, message: str = "internal error", **data: Any) -> None:
        super().__init__(code=ErrorCode.INTERNAL, message=message, data=_jsonmap(data))


class ConfigError(TallyError):
    def __init__(self, message: str = "invalid configuration", **data: Any) -> None:
        super().__init__(code=ErrorCode.CONFIG, message=message, data=_jsonmap(data))


class Unauthorized(TallyError):
    """The caller is not allowed to perform this command (caller != owner)."""

    def __init__(self, caller: str, owner: str, action: str = "reset") -> None:
        super().__init__(
            code=ErrorCode.UNAUTHORIZED,
            message="unauthorized",
            data={"caller": caller, "owner": owner, "action": action},
        )


class StateInvariantError(TallyError):
    """
    Store-level inconsistency. A correct store can never produce this; seeing it
    means the KV backend did not honour a write.
    """

    def __init__(self, message: str = "state invariant broken", **data: Any) -> None:
        super().__init__(
            code=ErrorCode.STATE_INVARIANT, message=message, data=_jsonmap(data)
        )


class KeySpaceExhausted(StateInvariantError):
    def __init__(self, last_key: int) -> None:
        super().__init__(message="record key space exhausted", last_key=last_key)
        self.code = ErrorCode.KEYSPACE_EXHAUSTED


class StorageFailure(TallyError):
    """
    Underlying key-value store or codec failure. Surfaced verbatim; the host
    owns any retry policy.
    """

    def __init__(
        self,
        message: str = "storage failure",
        *,
        cause: Optional[BaseException] = None,
        **data: Any,
    ) -> None:
        super().__init__(
            code=ErrorCode.STORAGE,
            message=message,
            data=_jsonmap(data),
            retryable=False,
            cause=cause,
        )


class NotInitialized(StorageFailure):
    def __init__(self, namespace: str) -> None:
        super().__init__(message="not initialized", namespace=namespace, op="load")
        self.code = ErrorCode.STORAGE_NOT_FOUND


class MessageError(TallyError):
    def __init__(self, message: str = "invalid message", **data: Any) -> None:
        super().__init__(
            code=ErrorCode.MSG_INVALID, message=message, data=_jsonmap(data)
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def ensure_tally_error(exc: BaseException) -> TallyError:
    """Coerce unknown exceptions to InternalError with cause attached."""
    return exc if isinstance(exc, TallyError) else InternalError().with_cause(exc)


def _code_str(code: Any) -> str:
    return code.value if isinstance(code, Enum) else str(code)


def _jsonmap(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: _coerce_json(v) for k, v in data.items()}


def _coerce_json(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str, list, dict)):
        return v
    if isinstance(v, (bytes, bytearray)):
        return v.hex()
    return str(v)


def _preview(v: Any, limit: int = 96) -> str:
    s = str(_coerce_json(v))
    return s if len(s) <= limit else s[:limit] + "…"


# Exit codes used by the CLI; 2 stays with click for usage errors
EXIT_CODES = {
    ErrorCode.UNAUTHORIZED: 3,
}


__all__ = [
    "ErrorCode",
    "TallyError",
    "InternalError",
    "ConfigError",
    "Unauthorized",
    "StateInvariantError",
    "KeySpaceExhausted",
    "StorageFailure",
    "NotInitialized",
    "MessageError",
    "ensure_tally_error",
    "EXIT_CODES",
]
