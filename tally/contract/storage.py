"""
tally.contract.storage — typed views over a KV namespace.

    Item(namespace, cls)    one value stored at Prefix(namespace).key()
    U32Map(namespace, cls)  values keyed by u32, stored at
                            Prefix(namespace).key(be_u32(k))

Every operation takes the store handle explicitly. Backend and codec errors
are wrapped in StorageFailure (with `op`, `namespace` and the original
exception as `cause`); tally errors pass through untouched.

Scans (`keys`, `range`) materialize their results: callers delete while
walking and the record collection is expected to stay small.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Generic, Iterator, List, Optional, Tuple, Type, TypeVar

from ..db.kv import KV, Prefix, ReadOnlyKV, be_u32, from_be_u32, iter_keys
from ..encoding import dumps_record, loads_record
from ..errors import NotInitialized, StorageFailure, TallyError
from .state import check_u32

T = TypeVar("T")


@contextmanager
def _storage_op(op: str, namespace: str, key: Optional[int] = None) -> Iterator[None]:
    try:
        yield
    except TallyError:
        raise
    except Exception as e:
        data = {"op": op, "namespace": namespace}
        if key is not None:
            data["key"] = key
        raise StorageFailure(f"{op} failed: {e}", cause=e, **data) from e


class Item(Generic[T]):
    """A single value in its own namespace."""

    def __init__(self, namespace: str, cls: Type[T]) -> None:
        self.prefix = Prefix(namespace)
        self.namespace = namespace
        self.cls = cls
        self._key = self.prefix.key()

    def may_load(self, store: ReadOnlyKV) -> Optional[T]:
        with _storage_op("load", self.namespace):
            raw = store.get(self._key)
            return None if raw is None else loads_record(raw, self.cls)

    def load(self, store: ReadOnlyKV) -> T:
        value = self.may_load(store)
        if value is None:
            raise NotInitialized(self.namespace)
        return value

    def save(self, store: KV, value: T) -> None:
        with _storage_op("save", self.namespace):
            store.put(self._key, dumps_record(value))

    def update(self, store: KV, fn: Callable[[T], T]) -> T:
        """Load, apply `fn`, save. An exception from `fn` aborts without writing."""
        new = fn(self.load(store))
        self.save(store, new)
        return new


class U32Map(Generic[T]):
    """Values keyed by unsigned 32-bit integers, iterated in numeric order."""

    def __init__(self, namespace: str, cls: Type[T]) -> None:
        self.prefix = Prefix(namespace)
        self.namespace = namespace
        self.cls = cls

    def key_bytes(self, key: int) -> bytes:
        return self.prefix.key(be_u32(check_u32(key, "key")))

    def decode_key(self, raw_key: bytes) -> int:
        return from_be_u32(self.prefix.strip(raw_key))

    def save(self, store: KV, key: int, value: T) -> None:
        kb = self.key_bytes(key)
        with _storage_op("save", self.namespace, key):
            store.put(kb, dumps_record(value))

    def may_load(self, store: ReadOnlyKV, key: int) -> Optional[T]:
        kb = self.key_bytes(key)
        with _storage_op("load", self.namespace, key):
            raw = store.get(kb)
            return None if raw is None else loads_record(raw, self.cls)

    def has(self, store: ReadOnlyKV, key: int) -> bool:
        kb = self.key_bytes(key)
        with _storage_op("has", self.namespace, key):
            return store.has(kb)

    def remove(self, store: KV, key: int) -> None:
        kb = self.key_bytes(key)
        with _storage_op("remove", self.namespace, key):
            store.delete(kb)

    def keys(self, store: ReadOnlyKV) -> List[int]:
        """All keys, ascending."""
        with _storage_op("keys", self.namespace):
            return [self.decode_key(k) for k in iter_keys(store, self.prefix.raw)]

    def range(self, store: ReadOnlyKV) -> List[Tuple[int, T]]:
        """All (key, value) pairs, ascending by key."""
        with _storage_op("range", self.namespace):
            return [
                (self.decode_key(k), loads_record(v, self.cls))
                for k, v in store.iter_prefix(self.prefix.raw)
            ]


__all__ = ["Item", "U32Map"]
