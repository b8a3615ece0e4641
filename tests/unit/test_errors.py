from __future__ import annotations

import json

import pytest

from tally.errors import (EXIT_CODES, ErrorCode, InternalError, KeySpaceExhausted,
                          MessageError, NotInitialized, StateInvariantError,
                          StorageFailure, TallyError, Unauthorized, ensure_tally_error)


def test_unauthorized_shape() -> None:
    e = Unauthorized(caller="bob", owner="alice")
    assert e.code == ErrorCode.UNAUTHORIZED
    assert e.data == {"caller": "bob", "owner": "alice", "action": "reset"}
    d = e.to_dict()
    assert d["code"] == "AUTH/UNAUTHORIZED"
    assert d["retryable"] is False
    json.dumps(d)
    assert "caller=bob" in str(e)
    assert EXIT_CODES[e.code] == 3


def test_state_invariant_is_distinct_from_unauthorized() -> None:
    e = StateInvariantError("record still present after deletion", key=3)
    assert not isinstance(e, Unauthorized)
    assert e.to_dict()["code"] == "STATE/INVARIANT"
    assert e.data["key"] == 3


def test_keyspace_exhausted_is_a_state_invariant() -> None:
    e = KeySpaceExhausted(last_key=2**32 - 1)
    assert isinstance(e, StateInvariantError)
    assert e.to_dict()["code"] == "STATE/KEYSPACE_EXHAUSTED"
    assert e.data == {"last_key": 2**32 - 1}


def test_storage_failure_keeps_cause() -> None:
    cause = OSError("disk gone")
    e = StorageFailure("save failed", cause=cause, op="save", namespace="record", raw=b"\x01")
    d = e.to_dict(include_cause=True)
    assert d["code"] == "STORAGE/FAILURE"
    assert d["data"] == {"op": "save", "namespace": "record", "raw": "01"}
    assert d["cause"] == {"type": "OSError", "message": "disk gone"}
    assert "cause" not in e.to_dict()


def test_not_initialized_is_a_storage_failure() -> None:
    e = NotInitialized("state")
    assert isinstance(e, StorageFailure)
    assert e.to_dict()["code"] == "STORAGE/NOT_FOUND"
    assert e.data["namespace"] == "state"


def test_message_error_code() -> None:
    assert MessageError("bad").to_dict()["code"] == "MSG/INVALID"
    assert EXIT_CODES.get(MessageError("bad").code, 1) == 1


def test_ensure_tally_error() -> None:
    orig = MessageError("x")
    assert ensure_tally_error(orig) is orig
    wrapped = ensure_tally_error(RuntimeError("boom"))
    assert wrapped.to_dict()["code"] == "CORE/INTERNAL"
    assert isinstance(wrapped.cause, RuntimeError)
    assert isinstance(wrapped, InternalError)


def test_with_cause_keeps_subclass_and_fields() -> None:
    err = Unauthorized(caller="bob", owner="alice")
    boom = ValueError("boom")
    out = err.with_cause(boom)
    assert type(out) is Unauthorized
    assert out is not err
    assert out.cause is boom and err.cause is None
    assert out.to_dict() == err.to_dict()
    assert out.to_dict(include_cause=True)["cause"] == {"type": "ValueError", "message": "boom"}


def test_errors_are_raisable() -> None:
    with pytest.raises(TallyError) as ei:
        raise InternalError("oops", where="here")
    assert ei.value.message == "oops"
