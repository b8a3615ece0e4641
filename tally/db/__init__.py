from __future__ import annotations

"""
tally.db
========

Thin facade for the key–value backends the contract state lives in.

Backends
--------
- Memory (ordered dict + sorted index; tests and throwaway runs)
- SQLite (durable file, or ":memory:")

URIs
----
- "memory://"                    → MemoryKV
- "sqlite:///path/to/tally.db"   → SQLite file
- "sqlite:///:memory:"           → in-memory SQLite
- bare path                      → treated as a SQLite file path

API
---
- open_kv(uri: str, create: bool = True) -> KV

Example
-------
>>> from tally.db import open_kv
>>> kv = open_kv("memory://")
>>> with kv.batch() as b:
...     b.put(b"state:", b"hello")
>>> kv.get(b"state:")
b'hello'
"""

from typing import Tuple

from .kv import KV, Batch, Prefix, ReadOnlyKV, be_u32, from_be_u32
from .memory import MemoryKV
from .overlay import OverlayKV
from .sqlite import SQLiteKV, open_sqlite_kv


def _parse_uri(uri: str) -> Tuple[str, str]:
    """
    Parse a DB URI into (backend, path_or_spec).

    Returns:
        ("sqlite", path) or ("memory", "")
    """
    u = uri.strip()
    if u.startswith("memory://"):
        return ("memory", "")
    if u.startswith("sqlite:///"):
        return ("sqlite", u[len("sqlite:///") :])
    if "://" in u:
        raise ValueError(f"unsupported KV URI scheme: {uri!r}")
    return ("sqlite", u or ":memory:")


def open_kv(uri: str, create: bool = True) -> KV:
    """
    Open a KV store by URI. See module docstring for supported forms.

    Raises:
        ValueError for unsupported URIs.
        FileNotFoundError if create=False and the SQLite file is missing.
    """
    backend, spec = _parse_uri(uri)
    if backend == "memory":
        return MemoryKV()
    return open_sqlite_kv(spec or ":memory:", create=create)


__all__ = [
    "KV",
    "ReadOnlyKV",
    "Batch",
    "Prefix",
    "be_u32",
    "from_be_u32",
    "MemoryKV",
    "OverlayKV",
    "SQLiteKV",
    "open_kv",
    "open_sqlite_kv",
]
