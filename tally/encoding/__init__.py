"""
tally.encoding — canonical value encoding for persisted state.

Re-exports the CBOR helpers so callers can do:

    from tally.encoding import dumps_record, loads_record
"""

from __future__ import annotations

from .cbor import (DecodeError, EncodeError, dumps_canonical, dumps_record,
                   loads, loads_record)

__all__ = [
    "EncodeError",
    "DecodeError",
    "dumps_canonical",
    "loads",
    "dumps_record",
    "loads_record",
]
