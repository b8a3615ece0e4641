"""
tally.host.local — drive the entry points against a KV in-process.

Every command runs against an OverlayKV stacked on the backing store. The
overlay is committed (one backend batch) only when the entry point returns;
any exception discards it, so a failed command leaves no partial writes.
Queries read through a fresh OverlayKV that is dropped afterwards.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, TypeVar

from ..contract import entry
from ..contract.counter import load_state
from ..contract.msg import MessageInfo
from ..contract.records import RecordStore
from ..contract.response import Response
from ..contract.state import CounterState
from ..db.kv import KV
from ..db.overlay import OverlayKV
from ..errors import TallyError
from ..logging import bind, get_logger, trace_scope

log = get_logger("tally.host")

T = TypeVar("T")


class LocalHost:
    def __init__(self, kv: KV, *, records: Optional[RecordStore] = None) -> None:
        self.kv = kv
        self.records = records or RecordStore.from_config()

    def _run(self, op: str, sender: str, fn: Callable[[OverlayKV, MessageInfo], T]) -> T:
        with trace_scope():
            bind(sender=sender)
            info = MessageInfo(sender=sender)
            overlay = OverlayKV(self.kv)
            try:
                out = fn(overlay, info)
            except TallyError as e:
                overlay.discard()
                log.info(f"{op} failed", extra={"code": e.to_dict()["code"]})
                raise
            except Exception:
                overlay.discard()
                raise
            n = overlay.commit()
            log.debug(f"{op} committed", extra={"writes": n})
            return out

    def instantiate(self, sender: str, msg: Any) -> Response:
        return self._run("instantiate", sender, lambda s, info: entry.instantiate(s, info, msg))

    def execute(self, sender: str, msg: Any) -> Response:
        return self._run(
            "execute",
            sender,
            lambda s, info: entry.execute(s, info, msg, records=self.records),
        )

    def query(self, msg: Any) -> Dict[str, Any]:
        # overlay is never committed
        with trace_scope():
            return entry.query(OverlayKV(self.kv), msg, records=self.records)

    def state(self) -> CounterState:
        return load_state(self.kv)

    def close(self) -> None:
        self.kv.close()

    def __enter__(self) -> "LocalHost":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["LocalHost", "MessageInfo"]
