"""
Canonical CBOR for persisted values.

- map key order does not affect the encoding
- records decode back into their dataclass only when the field set matches
"""

from __future__ import annotations

import cbor2
import pytest

from tally.contract.state import CounterState, Record
from tally.encoding import (DecodeError, EncodeError, dumps_canonical, dumps_record,
                            loads, loads_record)


def test_canonical_is_order_independent() -> None:
    a = dumps_canonical({"owner": "alice", "count": 3})
    b = dumps_canonical({"count": 3, "owner": "alice"})
    assert a == b
    assert loads(a) == {"count": 3, "owner": "alice"}


def test_record_roundtrip() -> None:
    state = CounterState(count=-5, owner="alice")
    assert loads_record(dumps_record(state), CounterState) == state
    assert loads_record(dumps_record(Record(7)), Record) == Record(7)


def test_record_encoding_is_a_plain_map() -> None:
    assert cbor2.loads(dumps_record(Record(number=4))) == {"number": 4}


def test_dumps_record_requires_dataclass_instance() -> None:
    with pytest.raises(EncodeError):
        dumps_record({"number": 1})
    with pytest.raises(EncodeError):
        dumps_record(Record)


@pytest.mark.parametrize(
    "payload",
    [
        cbor2.dumps([1, 2]),
        cbor2.dumps({"number": 1, "extra": 2}),
        cbor2.dumps({}),
        cbor2.dumps({"number": "seven"}),
        cbor2.dumps({"number": 2**40}),
    ],
)
def test_loads_record_rejects_schema_drift(payload: bytes) -> None:
    with pytest.raises(DecodeError):
        loads_record(payload, Record)


def test_loads_rejects_garbage() -> None:
    with pytest.raises(DecodeError):
        loads(b"\x1b\x00")
    with pytest.raises(DecodeError):
        loads("not bytes")  # type: ignore[arg-type]
