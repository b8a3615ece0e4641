from __future__ import annotations

import json

import pytest

from tally.contract.msg import (Add, GetCount, GetRecord, Increment, InstantiateMsg,
                                MessageInfo, Remove, RemoveItem, Reset,
                                parse_execute_msg, parse_instantiate_msg, parse_query_msg)
from tally.errors import MessageError


@pytest.mark.parametrize(
    "raw, expected",
    [
        ({"increment": {}}, Increment()),
        ({"reset": {"count": -5}}, Reset(count=-5)),
        ({"add": {"number": 4}}, Add(number=4)),
        ({"remove": {"index": 2}}, Remove(index=2)),
        ({"remove_item": {"number": 4}}, RemoveItem(number=4)),
    ],
)
def test_execute_variants(raw, expected) -> None:
    assert parse_execute_msg(raw) == expected
    assert parse_execute_msg(json.dumps(raw)) == expected
    assert expected.to_dict() == raw


@pytest.mark.parametrize(
    "raw, expected",
    [
        ({"get_count": {}}, GetCount()),
        ({"get_record": {"index": 3}}, GetRecord(index=3)),
    ],
)
def test_query_variants(raw, expected) -> None:
    assert parse_query_msg(raw) == expected
    assert expected.to_dict() == raw


def test_instantiate() -> None:
    assert parse_instantiate_msg('{"count": 17}') == InstantiateMsg(count=17)
    assert InstantiateMsg(count=17).to_dict() == {"count": 17}


def test_objects_pass_through() -> None:
    m = Add(number=1)
    assert parse_execute_msg(m) is m
    q = GetCount()
    assert parse_query_msg(q) is q


def test_wrong_kind_of_object() -> None:
    with pytest.raises(MessageError):
        parse_execute_msg(GetCount())
    with pytest.raises(MessageError):
        parse_query_msg(Increment())


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "[1, 2]",
        {},
        {"increment": {}, "add": {"number": 1}},
        {"decrement": {}},
        {"increment": []},
        {"increment": {"by": 1}},
        {"add": {}},
        {"add": {"number": 1, "extra": 2}},
        {"add": {"number": "1"}},
        {"add": {"number": True}},
        {"add": {"number": 2**31}},
        {"remove": {"index": -1}},
        {"remove": {"index": 2**32}},
        {"get_count": {}},
    ],
)
def test_bad_execute_messages(raw) -> None:
    with pytest.raises(MessageError):
        parse_execute_msg(raw)


@pytest.mark.parametrize(
    "raw",
    [{"count": "17"}, {"count": 17, "owner": "x"}, {}, {"count": 2**31}],
)
def test_bad_instantiate_messages(raw) -> None:
    with pytest.raises(MessageError):
        parse_instantiate_msg(raw)


def test_bad_query_message_reports_known_variants() -> None:
    with pytest.raises(MessageError) as ei:
        parse_query_msg({"get_owner": {}})
    assert ei.value.data["known"] == ["get_count", "get_record"]


def test_message_info_sender() -> None:
    assert MessageInfo(sender="alice").sender == "alice"
    with pytest.raises(MessageError):
        MessageInfo(sender=42)  # type: ignore[arg-type]
