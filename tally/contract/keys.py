"""
tally.contract.keys — next-key derivation for the record collection.

The next key is derived from the live collection: scan every key in
ascending order; an empty collection yields 0, otherwise the last (largest)
key plus one. The scan is O(live records) per allocation.

Two policies decide what happens after the record holding the largest key
is removed:

    reuse      the next Add gets that key value again (derived purely from
               the current maximum)
    monotonic  a high-water mark persisted in "record_seq" keeps growing, so a
               key value is never handed out twice for the collection's life

With no deletions both policies allocate 0, 1, 2, ... in call order.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from ..db.kv import KV, ReadOnlyKV
from ..errors import ConfigError, KeySpaceExhausted
from .state import U32_MAX, Record, RecordSeq
from .storage import Item, U32Map

SEQ: Item[RecordSeq] = Item("record_seq", RecordSeq)


class KeyPolicy(str, Enum):
    REUSE = "reuse"
    MONOTONIC = "monotonic"

    @classmethod
    def parse(cls, value: Union[str, "KeyPolicy"]) -> "KeyPolicy":
        if isinstance(value, KeyPolicy):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigError("unknown key policy", value=value) from None


@dataclass(frozen=True)
class Allocation:
    key: int
    was_empty: bool


class KeyAllocator:
    def __init__(
        self,
        records: U32Map[Record],
        policy: Union[str, KeyPolicy] = KeyPolicy.REUSE,
    ) -> None:
        self.records = records
        self.policy = KeyPolicy.parse(policy)

    def allocate(self, store: ReadOnlyKV) -> Allocation:
        keys = self.records.keys(store)
        candidate = keys[-1] + 1 if keys else 0
        if self.policy is KeyPolicy.MONOTONIC:
            seq = SEQ.may_load(store)
            if seq is not None:
                candidate = max(candidate, seq.next)
        if candidate > U32_MAX:
            raise KeySpaceExhausted(last_key=candidate - 1)
        return Allocation(key=candidate, was_empty=not keys)

    def next_key(self, store: ReadOnlyKV) -> int:
        return self.allocate(store).key

    def note_allocated(self, store: KV, key: int) -> None:
        if self.policy is KeyPolicy.MONOTONIC:
            SEQ.save(store, RecordSeq(next=key + 1))


__all__ = ["KeyPolicy", "KeyAllocator", "Allocation", "SEQ"]
