from __future__ import annotations

import pytest

from tally.contract.records import RECORDS, RecordStore
from tally.contract.state import DEFAULT_RECORD, Record
from tally.db import MemoryKV
from tally.errors import MessageError, StateInvariantError, StorageFailure


class StickyKV(MemoryKV):
    """Backend that silently ignores deletions."""

    def delete(self, key: bytes) -> None:
        pass


def test_add_then_get(kv, records) -> None:
    k = records.add(kv, 42)
    assert records.get_by_index(kv, k) == Record(42)
    assert records.count(kv) == 1


def test_get_missing_returns_default(kv, records) -> None:
    assert records.get_by_index(kv, 123) == DEFAULT_RECORD == Record(0)


def test_duplicates_get_distinct_keys(kv, records) -> None:
    keys = [records.add(kv, 7) for _ in range(3)]
    assert keys == [0, 1, 2]
    assert records.items(kv) == [(0, Record(7)), (1, Record(7)), (2, Record(7))]


def test_remove_by_index(kv, records) -> None:
    records.add(kv, 1)
    records.add(kv, 2)
    records.remove_by_index(kv, 0)
    assert records.get_by_index(kv, 0) == DEFAULT_RECORD
    assert records.count(kv) == 1


def test_remove_absent_index_is_noop(kv, records) -> None:
    records.add(kv, 1)
    records.remove_by_index(kv, 99)
    assert records.count(kv) == 1


def test_remove_by_value_removes_every_match(kv, records) -> None:
    for n in (4, 7, 4, 9, 4):
        records.add(kv, n)
    assert records.remove_by_value(kv, 4) == [0, 2, 4]
    assert records.items(kv) == [(1, Record(7)), (3, Record(9))]


def test_remove_by_value_without_match(kv, records) -> None:
    records.add(kv, 1)
    assert records.remove_by_value(kv, 2) == []
    assert records.count(kv) == 1


def test_items_are_in_key_order(kv, records) -> None:
    for k in (65536, 3, 256, 255):
        RECORDS.save(kv, k, Record(k))
    assert [k for k, _ in records.items(kv)] == [3, 255, 256, 65536]


def test_count_ignores_other_namespaces(kv, monotonic_records) -> None:
    kv.put(b"state:", b"\xa0")
    monotonic_records.add(kv, 1)
    monotonic_records.add(kv, 2)
    assert monotonic_records.count(kv) == 2


def test_backend_ignoring_delete_is_an_invariant_error(records) -> None:
    store = StickyKV()
    records.add(store, 1)
    with pytest.raises(StateInvariantError) as ei:
        records.remove_by_index(store, 0)
    assert ei.value.data == {"namespace": "record", "key": 0}


def test_corrupt_value_is_a_storage_failure(kv, records) -> None:
    kv.put(RECORDS.key_bytes(0), b"\xa1\x63bad\x01")
    with pytest.raises(StorageFailure) as ei:
        records.get_by_index(kv, 0)
    assert ei.value.data["op"] == "load"
    assert ei.value.data["namespace"] == "record"
    assert ei.value.cause is not None


@pytest.mark.parametrize("bad", [-1, 2**32, "0", False])
def test_index_must_be_u32(kv, records, bad) -> None:
    with pytest.raises(MessageError):
        records.get_by_index(kv, bad)
    with pytest.raises(MessageError):
        records.remove_by_index(kv, bad)


@pytest.mark.parametrize("bad", [2**31, -(2**31) - 1, None])
def test_number_must_be_i32(kv, records, bad) -> None:
    with pytest.raises(MessageError):
        records.add(kv, bad)
    assert records.count(kv) == 0


def test_from_config_picks_policy(monkeypatch) -> None:
    from tally.config import reload_config

    monkeypatch.setenv("TALLY_KEY_POLICY", "monotonic")
    reload_config()
    assert RecordStore.from_config().policy.value == "monotonic"
