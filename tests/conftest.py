from __future__ import annotations

import logging
from typing import Iterator

import pytest

from tally.config import reload_config
from tally.contract.records import RecordStore
from tally.db import KV, MemoryKV, open_sqlite_kv
from tally.logging import clear_context

_TALLY_ENV = (
    "TALLY_DB",
    "TALLY_DATA_DIR",
    "TALLY_KEY_POLICY",
    "TALLY_LOG_LEVEL",
    "TALLY_LOG_FORMAT",
    "TALLY_SENDER",
    "TALLY_VERSION",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path) -> Iterator[None]:
    """Each test sees a clean TALLY_* environment and a private data dir."""
    for name in _TALLY_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TALLY_DATA_DIR", str(tmp_path / "data"))
    reload_config()
    clear_context()
    yield
    clear_context()
    root = logging.getLogger("tally")
    for h in list(root.handlers):
        root.removeHandler(h)
    root.propagate = True


@pytest.fixture
def memory_kv() -> MemoryKV:
    return MemoryKV()


@pytest.fixture
def sqlite_kv(tmp_path) -> Iterator[KV]:
    kv = open_sqlite_kv(tmp_path / "tally.db")
    yield kv
    kv.close()


@pytest.fixture(params=["memory", "sqlite"])
def kv(request, tmp_path) -> Iterator[KV]:
    """The same test against both backends."""
    if request.param == "memory":
        yield MemoryKV()
        return
    store = open_sqlite_kv(tmp_path / "kv.db")
    yield store
    store.close()


@pytest.fixture
def records() -> RecordStore:
    return RecordStore(policy="reuse")


@pytest.fixture
def monotonic_records() -> RecordStore:
    return RecordStore(policy="monotonic")
