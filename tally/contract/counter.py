"""
tally.contract.counter — the singleton counter and its two mutations.

    initialize(store, initial_count, caller)   owner := caller
    increment(store)                           anyone; wraps at i32
    reset(store, caller, new_count)            owner only
"""

from __future__ import annotations

from ..db.kv import KV, ReadOnlyKV
from ..errors import Unauthorized
from .state import CounterState, Identity, check_i32, check_identity, wrap_i32
from .storage import Item

STATE: Item[CounterState] = Item("state", CounterState)


def initialize(store: KV, initial_count: int, caller: Identity) -> CounterState:
    state = CounterState(
        count=check_i32(initial_count, "count"),
        owner=check_identity(caller),
    )
    STATE.save(store, state)
    return state


def load_state(store: ReadOnlyKV) -> CounterState:
    return STATE.load(store)


def increment(store: KV) -> int:
    """count + 1 with 32-bit signed wraparound (2**31 - 1 → -2**31)."""
    state = STATE.update(
        store, lambda s: CounterState(count=wrap_i32(s.count + 1), owner=s.owner)
    )
    return state.count


def reset(store: KV, caller: Identity, new_count: int) -> int:
    new_count = check_i32(new_count, "count")
    caller = check_identity(caller)

    def _apply(s: CounterState) -> CounterState:
        if caller != s.owner:
            raise Unauthorized(caller=caller, owner=s.owner)
        return CounterState(count=new_count, owner=s.owner)

    return STATE.update(store, _apply).count


__all__ = ["STATE", "initialize", "load_state", "increment", "reset"]
