from __future__ import annotations

"""
In-memory ordered KV
====================

Implements the `KV` / `ReadOnlyKV` / `Batch` protocols from `tally.db.kv`
over a dict plus a sorted key index, for local runs and tests.

- Ordering is lexicographic on raw bytes (same as SQLite memcmp).
- Prefix scans bisect into the sorted index; cost is O(log n + matches).
- Batches stage writes and apply them on commit; nothing is visible
  until then.
"""

import bisect
from typing import Dict, Iterator, List, Optional, Tuple

from .kv import KV, Batch


def _b(x: bytes | bytearray | memoryview, *, name: str) -> bytes:
    if not isinstance(x, (bytes, bytearray, memoryview)):
        raise TypeError(f"{name} must be bytes-like, got {type(x).__name__}")
    return bytes(x)


class MemoryBatch(Batch):
    __slots__ = ("_kv", "_ops", "_open")

    def __init__(self, kv: "MemoryKV") -> None:
        self._kv = kv
        self._ops: List[Tuple[bytes, Optional[bytes]]] = []
        self._open = False

    def __enter__(self) -> "MemoryBatch":
        if self._open:
            raise RuntimeError("batch already open (nested batches not supported)")
        self._open = True
        return self

    def put(self, key: bytes, value: bytes) -> None:
        if not self._open:
            raise RuntimeError("batch not open")
        self._ops.append((_b(key, name="key"), _b(value, name="value")))

    def delete(self, key: bytes) -> None:
        if not self._open:
            raise RuntimeError("batch not open")
        self._ops.append((_b(key, name="key"), None))

    def commit(self) -> None:
        if not self._open:
            return
        for k, v in self._ops:
            if v is None:
                self._kv.delete(k)
            else:
                self._kv.put(k, v)
        self._ops.clear()
        self._open = False

    def rollback(self) -> None:
        self._ops.clear()
        self._open = False

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return None


class MemoryKV(KV):
    """Ordered in-memory KV. Not thread-safe; one invocation at a time."""

    __slots__ = ("_data", "_keys")

    def __init__(self) -> None:
        self._data: Dict[bytes, bytes] = {}
        self._keys: List[bytes] = []

    # --- ReadOnlyKV ---

    def get(self, key: bytes) -> Optional[bytes]:
        return self._data.get(_b(key, name="key"))

    def has(self, key: bytes) -> bool:
        return _b(key, name="key") in self._data

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        prefix = _b(prefix, name="prefix")
        # Snapshot the matching keys so callers may write while iterating.
        start = bisect.bisect_left(self._keys, prefix)
        matched: List[bytes] = []
        for k in self._keys[start:]:
            if not k.startswith(prefix):
                break
            matched.append(k)
        for k in matched:
            v = self._data.get(k)
            if v is not None:
                yield k, v

    def close(self) -> None:
        pass

    # --- KV ---

    def put(self, key: bytes, value: bytes) -> None:
        k = _b(key, name="key")
        v = _b(value, name="value")
        if k not in self._data:
            bisect.insort(self._keys, k)
        self._data[k] = v

    def delete(self, key: bytes) -> None:
        k = _b(key, name="key")
        if self._data.pop(k, None) is not None:
            i = bisect.bisect_left(self._keys, k)
            del self._keys[i]

    def batch(self) -> Batch:
        return MemoryBatch(self)

    # --- introspection (tests/tooling) ---

    def __len__(self) -> int:
        return len(self._data)

    def snapshot(self) -> Dict[bytes, bytes]:
        return dict(self._data)


__all__ = ["MemoryKV", "MemoryBatch"]
