"""
tally.contract.records — CRUD over the auto-keyed record collection.

Records are `{number: i32}` values at u32 keys. Keys come from the
KeyAllocator; deletion is by key or by value; lookups of a missing key
return the default record `{number: 0}` rather than failing.
"""

from __future__ import annotations

from typing import List, Optional, Tuple, Union

from ..config import TallyConfig, load_config
from ..db.kv import KV, ReadOnlyKV
from ..errors import StateInvariantError
from .keys import Allocation, KeyAllocator, KeyPolicy
from .state import DEFAULT_RECORD, Record, check_i32, check_u32
from .storage import U32Map

RECORDS: U32Map[Record] = U32Map("record", Record)


class RecordStore:
    def __init__(
        self,
        policy: Union[str, KeyPolicy] = KeyPolicy.REUSE,
        records: U32Map[Record] = RECORDS,
    ) -> None:
        self.records = records
        self.allocator = KeyAllocator(records, policy)

    @classmethod
    def from_config(cls, cfg: Optional[TallyConfig] = None) -> "RecordStore":
        cfg = cfg or load_config()
        return cls(policy=cfg.key_policy)

    @property
    def policy(self) -> KeyPolicy:
        return self.allocator.policy

    # --- commands ---

    def insert(self, store: KV, number: int) -> Allocation:
        """Store Record(number) at a freshly allocated key."""
        record = Record(number=check_i32(number, "number"))
        alloc = self.allocator.allocate(store)
        self.records.save(store, alloc.key, record)
        self.allocator.note_allocated(store, alloc.key)
        return alloc

    def add(self, store: KV, number: int) -> int:
        return self.insert(store, number).key

    def remove_by_index(self, store: KV, key: int) -> None:
        """Delete the record at `key`; absent keys are a no-op."""
        key = check_u32(key, "index")
        self.records.remove(store, key)
        if self.records.has(store, key):
            raise StateInvariantError(
                "record still present after deletion",
                namespace=self.records.namespace,
                key=key,
            )

    def remove_by_value(self, store: KV, number: int) -> List[int]:
        """Delete every record whose number equals `number`; returns removed keys."""
        number = check_i32(number, "number")
        doomed = [k for k, rec in self.records.range(store) if rec.number == number]
        for k in doomed:
            self.records.remove(store, k)
        return doomed

    # --- reads ---

    def get_by_index(self, store: ReadOnlyKV, key: int) -> Record:
        found = self.records.may_load(store, check_u32(key, "index"))
        return found if found is not None else DEFAULT_RECORD

    def count(self, store: ReadOnlyKV) -> int:
        return len(self.records.keys(store))

    def items(self, store: ReadOnlyKV) -> List[Tuple[int, Record]]:
        return self.records.range(store)


__all__ = ["RECORDS", "RecordStore"]
