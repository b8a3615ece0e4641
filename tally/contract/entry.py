"""
tally.contract.entry — the three entry points a host drives.

    instantiate(store, info, msg)            -> Response
    execute(store, info, msg, records=...)   -> Response
    query(store, msg, records=...)           -> dict

Entry points write straight into `store`. Hosts that need all-or-nothing
commands (see tally.host.LocalHost) hand in an overlay and commit it only
when the call returns.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from ..db.kv import KV, ReadOnlyKV
from ..errors import MessageError, Unauthorized
from ..logging import bind, get_logger, unbind
from . import counter
from .msg import (
    Add,
    Increment,
    MessageInfo,
    Remove,
    RemoveItem,
    Reset,
    GetCount,
    GetRecord,
    parse_execute_msg,
    parse_instantiate_msg,
    parse_query_msg,
)
from .queries import QueryService
from .records import RecordStore
from .response import Response

log = get_logger("tally.contract")


def instantiate(store: KV, info: MessageInfo, msg: Any) -> Response:
    m = parse_instantiate_msg(msg)
    state = counter.initialize(store, m.count, info.sender)
    log.debug("instantiate", extra={"method": "instantiate", "sender": info.sender, "count": state.count})
    return (
        Response()
        .add_attribute("method", "instantiate")
        .add_attribute("owner", state.owner)
        .add_attribute("count", state.count)
    )


def execute(
    store: KV,
    info: MessageInfo,
    msg: Any,
    *,
    records: Optional[RecordStore] = None,
) -> Response:
    m = parse_execute_msg(msg)
    records = records or RecordStore.from_config()
    bind(method=m.tag)
    try:
        log.debug("execute", extra={"sender": info.sender})
        return _dispatch(store, info, m, records)
    finally:
        unbind("method")


def _dispatch(store: KV, info: MessageInfo, m: Any, records: RecordStore) -> Response:
    if isinstance(m, Increment):
        counter.increment(store)
        return Response().add_attribute("method", "try_increment")

    if isinstance(m, Reset):
        try:
            counter.reset(store, info.sender, m.count)
        except Unauthorized as e:
            log.warning("reset rejected", extra=dict(e.data))
            raise
        return Response().add_attribute("method", "reset")

    if isinstance(m, Add):
        alloc = records.insert(store, m.number)
        resp = Response().add_attribute("method", "add")
        if alloc.was_empty:
            resp.add_attribute("new_key", alloc.key)
        return resp

    if isinstance(m, Remove):
        records.remove_by_index(store, m.index)
        return Response().add_attribute("method", "remove").add_attribute("key", m.index)

    if isinstance(m, RemoveItem):
        removed = records.remove_by_value(store, m.number)
        log.debug("remove_item", extra={"removed": len(removed)})
        return Response().add_attribute("method", "remove_item")

    raise MessageError("unhandled execute message", variant=type(m).__name__)


def query(
    store: ReadOnlyKV,
    msg: Any,
    *,
    records: Optional[RecordStore] = None,
) -> Dict[str, Any]:
    m = parse_query_msg(msg)
    svc = QueryService(records or RecordStore.from_config())

    if isinstance(m, GetCount):
        return svc.get_count(store).to_dict()
    if isinstance(m, GetRecord):
        return {"number": svc.get_record(store, m.index).number}

    raise MessageError("unhandled query message", variant=type(m).__name__)


__all__ = ["instantiate", "execute", "query"]
