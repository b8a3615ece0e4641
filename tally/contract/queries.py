"""tally.contract.queries — read-only projections; no side effects, no auth."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

from ..db.kv import ReadOnlyKV
from .records import RecordStore
from .state import Record, wrap_i32


@dataclass(frozen=True)
class CountResponse:
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class QueryService:
    def __init__(self, records: RecordStore) -> None:
        self.records = records

    def get_count(self, store: ReadOnlyKV) -> CountResponse:
        # The wire type is i32; a collection past 2**31 - 1 records wraps.
        return CountResponse(count=wrap_i32(self.records.count(store)))

    def get_record(self, store: ReadOnlyKV, index: int) -> Record:
        return self.records.get_by_index(store, index)


__all__ = ["CountResponse", "QueryService"]
