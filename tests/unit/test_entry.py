"""
Entry points: response attributes per command and the end-to-end walk
through counter + records.
"""

from __future__ import annotations

import io
import json

import pytest

from tally.contract import entry
from tally.contract.msg import Add, GetCount, GetRecord, Increment, MessageInfo, Reset
from tally.contract.records import RecordStore
from tally.contract.state import CounterState
from tally.contract.counter import load_state
from tally.errors import MessageError, Unauthorized
from tally.logging import configure, context

A = MessageInfo(sender="alice")
B = MessageInfo(sender="bob")


@pytest.fixture
def store(kv):
    entry.instantiate(kv, A, {"count": 17})
    return kv


def test_instantiate_attributes(kv) -> None:
    resp = entry.instantiate(kv, A, {"count": 17})
    assert resp.attributes == [("method", "instantiate"), ("owner", "alice"), ("count", "17")]
    assert load_state(kv) == CounterState(count=17, owner="alice")


def test_increment_attributes(store, records) -> None:
    resp = entry.execute(store, B, {"increment": {}}, records=records)
    assert resp.attributes == [("method", "try_increment")]
    assert load_state(store).count == 18


def test_reset_attributes(store, records) -> None:
    resp = entry.execute(store, A, Reset(count=5), records=records)
    assert resp.attributes == [("method", "reset")]
    assert load_state(store).count == 5


def test_add_reports_new_key_only_when_collection_was_empty(store, records) -> None:
    first = entry.execute(store, B, Add(number=1), records=records)
    assert first.attributes == [("method", "add"), ("new_key", "0")]
    second = entry.execute(store, B, Add(number=2), records=records)
    assert second.attributes == [("method", "add")]
    assert second.attribute("new_key") is None


def test_remove_attributes(store, records) -> None:
    entry.execute(store, B, Add(number=1), records=records)
    resp = entry.execute(store, B, {"remove": {"index": 0}}, records=records)
    assert resp.attributes == [("method", "remove"), ("key", "0")]


def test_remove_item_attributes(store, records) -> None:
    resp = entry.execute(store, B, {"remove_item": {"number": 9}}, records=records)
    assert resp.attributes == [("method", "remove_item")]


def test_query_shapes(store, records) -> None:
    entry.execute(store, B, Add(number=-3), records=records)
    assert entry.query(store, GetCount(), records=records) == {"count": 1}
    assert entry.query(store, {"get_record": {"index": 0}}, records=records) == {"number": -3}
    assert entry.query(store, GetRecord(index=5), records=records) == {"number": 0}


def test_execute_rejects_query_message(store, records) -> None:
    with pytest.raises(MessageError):
        entry.execute(store, A, {"get_count": {}}, records=records)


def test_records_default_from_config(store, monkeypatch) -> None:
    from tally.config import reload_config

    monkeypatch.setenv("TALLY_KEY_POLICY", "monotonic")
    reload_config()
    for n in (1, 2):
        entry.execute(store, B, Add(number=n))
    entry.execute(store, B, {"remove": {"index": 1}})
    entry.execute(store, B, Add(number=3))
    assert entry.query(store, GetRecord(index=2)) == {"number": 3}


def test_response_to_dict(kv) -> None:
    resp = entry.instantiate(kv, A, {"count": 1})
    assert resp.to_dict() == {
        "attributes": [
            {"key": "method", "value": "instantiate"},
            {"key": "owner", "value": "alice"},
            {"key": "count", "value": "1"},
        ]
    }


def test_scenario(kv) -> None:
    records = RecordStore()
    entry.instantiate(kv, A, {"count": 17})

    for n in (0, 2, 4, 6, 8):
        entry.execute(kv, A, Add(number=n), records=records)
    entry.execute(kv, B, {"remove_item": {"number": 4}}, records=records)

    assert entry.query(kv, GetCount(), records=records) == {"count": 4}
    assert entry.query(kv, GetRecord(index=2), records=records) == {"number": 0}
    assert entry.query(kv, GetRecord(index=3), records=records) == {"number": 6}

    with pytest.raises(Unauthorized):
        entry.execute(kv, B, Reset(count=0), records=records)
    assert load_state(kv) == CounterState(count=17, owner="alice")

    entry.execute(kv, B, Increment(), records=records)
    assert load_state(kv).count == 18


def test_execute_logs_carry_method_only_while_running(store, records) -> None:
    buf = io.StringIO()
    configure(json=True, level="DEBUG", stream=buf)

    entry.execute(store, B, {"add": {"number": 3}}, records=records)
    assert "method" not in context()
    with pytest.raises(Unauthorized):
        entry.execute(store, B, {"reset": {"count": 0}}, records=records)
    assert "method" not in context()

    lines = [json.loads(line) for line in buf.getvalue().splitlines()]
    by_msg = {line["msg"]: line for line in lines}
    assert by_msg["reset rejected"]["method"] == "reset"
    assert by_msg["reset rejected"]["caller"] == "bob"
    assert [line["method"] for line in lines if line["msg"] == "execute"] == ["add", "reset"]
