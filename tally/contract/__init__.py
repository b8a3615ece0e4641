"""
tally.contract — counter + auto-keyed record collection.

Entry points live in `entry`; the pieces they compose (counter state, key
allocation, record CRUD, queries) are importable on their own.
"""

from .entry import execute, instantiate, query
from .keys import KeyAllocator, KeyPolicy
from .msg import (
    Add,
    GetCount,
    GetRecord,
    Increment,
    InstantiateMsg,
    MessageInfo,
    Remove,
    RemoveItem,
    Reset,
)
from .queries import CountResponse, QueryService
from .records import RecordStore
from .response import Response
from .state import CounterState, Record

__all__ = [
    "instantiate",
    "execute",
    "query",
    "KeyAllocator",
    "KeyPolicy",
    "RecordStore",
    "QueryService",
    "CountResponse",
    "Response",
    "CounterState",
    "Record",
    "MessageInfo",
    "InstantiateMsg",
    "Increment",
    "Reset",
    "Add",
    "Remove",
    "RemoveItem",
    "GetCount",
    "GetRecord",
]
