"""
tally.contract.state — persisted data model.

Two records live in the store:

    CounterState  {count: i32, owner: Identity}   singleton, namespace "state"
    Record        {number: i32}                   u32-keyed, namespace "record"

Integer widths are enforced here as type constraints. Arithmetic on the
counter wraps at 32 bits (`wrap_i32`), which is the documented behavior for
Increment past 2**31 - 1.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..errors import MessageError

I32_MIN = -(1 << 31)
I32_MAX = (1 << 31) - 1
U32_MAX = (1 << 32) - 1

Identity = str


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def in_i32(v: Any) -> bool:
    return _is_int(v) and I32_MIN <= v <= I32_MAX


def in_u32(v: Any) -> bool:
    return _is_int(v) and 0 <= v <= U32_MAX


def wrap_i32(n: int) -> int:
    """Two's-complement wrap of an arbitrary int into the i32 range."""
    return ((n - I32_MIN) % (1 << 32)) + I32_MIN


def check_i32(v: Any, field: str) -> int:
    if not in_i32(v):
        raise MessageError(f"{field} must be a signed 32-bit integer", field=field, value=repr(v))
    return int(v)


def check_u32(v: Any, field: str) -> int:
    if not in_u32(v):
        raise MessageError(f"{field} must be an unsigned 32-bit integer", field=field, value=repr(v))
    return int(v)


def check_identity(v: Any, field: str = "sender") -> Identity:
    if not isinstance(v, str) or not v:
        raise MessageError(f"{field} must be a non-empty string identity", field=field, value=repr(v))
    return v


@dataclass(frozen=True)
class CounterState:
    count: int
    owner: Identity

    def __post_init__(self) -> None:
        if not in_i32(self.count):
            raise ValueError(f"count out of i32 range: {self.count!r}")
        if not isinstance(self.owner, str):
            raise ValueError(f"owner must be str, got {type(self.owner).__name__}")


@dataclass(frozen=True)
class Record:
    number: int = 0

    def __post_init__(self) -> None:
        if not in_i32(self.number):
            raise ValueError(f"number out of i32 range: {self.number!r}")


@dataclass(frozen=True)
class RecordSeq:
    """High-water mark for the `monotonic` key policy: the next key to hand out."""

    next: int

    def __post_init__(self) -> None:
        if not (_is_int(self.next) and 0 <= self.next <= U32_MAX + 1):
            raise ValueError(f"next out of range: {self.next!r}")


DEFAULT_RECORD = Record(number=0)

__all__ = [
    "I32_MIN",
    "I32_MAX",
    "U32_MAX",
    "Identity",
    "in_i32",
    "in_u32",
    "wrap_i32",
    "check_i32",
    "check_u32",
    "check_identity",
    "CounterState",
    "Record",
    "RecordSeq",
    "DEFAULT_RECORD",
]
