from __future__ import annotations

"""
Storage protocols and key layout
================================

Everything the contract needs from a backend is four reads and three writes:

    get(key) / has(key) / iter_prefix(prefix) / close()
    put(key, value) / delete(key) / batch()

`iter_prefix` must yield pairs in ascending byte order of the key. That
single requirement is what makes "largest record key" a cheap question.

Key layout
----------
Each namespace owns the byte range that starts with ``<name>:``. Parts after
the separator carry a uvarint length so that no part can run into the next:

    Prefix("state").key()                == b"state:"
    Prefix("record").key(be_u32(256))    == b"record:" b"\\x04" b"\\x00\\x00\\x01\\x00"

Record keys are fixed-width big-endian u32, so byte order and numeric order
agree. `strip` undoes `key` for the single-part case.
"""

from typing import (Iterator, Optional, Protocol, Tuple, Union,
                    runtime_checkable)

BytesLike = Union[bytes, bytearray, memoryview]

NS_SEP = b":"
U32_MAX = (1 << 32) - 1


# ---------------------------------------------------------------------------
# Namespaces
# ---------------------------------------------------------------------------


class Prefix:
    """Namespace ``<name>:`` plus a builder for keys inside it."""

    __slots__ = ("_raw",)

    def __init__(self, ns: Union[BytesLike, str]) -> None:
        name = ns.encode("ascii") if isinstance(ns, str) else bytes(ns)
        if not name:
            raise ValueError("namespace must be non-empty")
        if NS_SEP in name:
            raise ValueError(f"namespace must not contain {NS_SEP!r}")
        self._raw = name + NS_SEP

    @property
    def raw(self) -> bytes:
        return self._raw

    @property
    def name(self) -> str:
        return self._raw[:-1].decode("ascii", errors="replace")

    def key(self, *parts: Union[BytesLike, str]) -> bytes:
        buf = bytearray(self._raw)
        for part in parts:
            data = part.encode("utf-8") if isinstance(part, str) else _as_bytes(part)
            buf += _encode_uvarint(len(data))
            buf += data
        return bytes(buf)

    def strip(self, key: bytes) -> bytes:
        """Payload of a single-part key built by `key()`; ValueError otherwise."""
        if not key.startswith(self._raw):
            raise ValueError(f"{key!r} is outside namespace {self.name!r}")
        body = key[len(self._raw):]
        size, used = _decode_uvarint(body)
        payload = body[used:]
        if len(payload) != size:
            raise ValueError(f"{key!r} is not a single-part key")
        return payload

    def __repr__(self) -> str:
        return f"Prefix({self.name!r})"


def _as_bytes(part: object) -> bytes:
    if isinstance(part, (bytes, bytearray, memoryview)):
        return bytes(part)
    raise TypeError(f"key parts must be bytes or str, got {type(part).__name__}")


def _encode_uvarint(n: int) -> bytes:
    if n < 0:
        raise ValueError("length must be non-negative")
    out = bytearray()
    while n >= 0x80:
        out.append((n & 0x7F) | 0x80)
        n >>= 7
    out.append(n)
    return bytes(out)


def _decode_uvarint(buf: bytes) -> Tuple[int, int]:
    value = shift = 0
    for used, byte in enumerate(buf, start=1):
        value |= (byte & 0x7F) << shift
        if byte < 0x80:
            return value, used
        shift += 7
    raise ValueError("truncated length prefix")


def be_u32(n: int) -> bytes:
    if not 0 <= n <= U32_MAX:
        raise ValueError(f"{n} does not fit in u32")
    return n.to_bytes(4, "big")


def from_be_u32(raw: bytes) -> int:
    if len(raw) != 4:
        raise ValueError(f"u32 key must be 4 bytes, got {len(raw)}")
    return int.from_bytes(raw, "big")


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class ReadOnlyKV(Protocol):
    def get(self, key: bytes) -> Optional[bytes]:
        """Value at `key`, or None."""
        ...

    def has(self, key: bytes) -> bool: ...

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        """(key, value) pairs under `prefix`, ascending by key bytes."""
        ...

    def close(self) -> None: ...


@runtime_checkable
class Batch(Protocol):
    """
    Staged writes used as a context manager: a clean exit applies them all,
    an exception discards them all.
    """

    def put(self, key: bytes, value: bytes) -> None: ...
    def delete(self, key: bytes) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...
    def __enter__(self) -> "Batch": ...
    def __exit__(self, exc_type, exc, tb) -> Optional[bool]: ...


@runtime_checkable
class KV(ReadOnlyKV, Protocol):
    def put(self, key: bytes, value: bytes) -> None:
        """Insert or overwrite."""
        ...

    def delete(self, key: bytes) -> None:
        """Remove `key`; absent keys are ignored."""
        ...

    def batch(self) -> Batch: ...


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def iter_keys(kv: ReadOnlyKV, prefix: bytes) -> Iterator[bytes]:
    return (k for k, _ in kv.iter_prefix(prefix))


__all__ = [
    "ReadOnlyKV",
    "KV",
    "Batch",
    "Prefix",
    "NS_SEP",
    "U32_MAX",
    "be_u32",
    "from_be_u32",
    "iter_keys",
]
