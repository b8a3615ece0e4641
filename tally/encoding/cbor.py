"""
tally.encoding.cbor

Canonical CBOR encode/decode for persisted contract values.

Values written to the KV are small maps with ASCII text keys and integer or
text values. We encode them with cbor2 in canonical mode (RFC 8949 §4.2.1
deterministic ordering), so identical state always produces identical bytes.

Public API
----------
- dumps_canonical(obj) -> bytes
- loads(data) -> Any
- dumps_record(obj) / loads_record(data, cls): dataclass <-> bytes

Decoding is strict: the top level must be a map with text keys, and
`loads_record` passes exactly those fields to the dataclass constructor, so
any schema drift surfaces as a DecodeError instead of a half-built object.
"""

from __future__ import annotations

from dataclasses import asdict, fields, is_dataclass
from typing import Any, Dict, Type, TypeVar

import cbor2

T = TypeVar("T")


class EncodeError(TypeError):
    pass


class DecodeError(ValueError):
    pass


def dumps_canonical(obj: Any) -> bytes:
    if is_dataclass(obj) and not isinstance(obj, type):
        obj = asdict(obj)
    try:
        return cbor2.dumps(obj, canonical=True)
    except (cbor2.CBOREncodeError, TypeError, ValueError) as e:
        raise EncodeError(f"cannot encode {type(obj).__name__}: {e}") from e


def loads(data: bytes) -> Any:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise DecodeError(f"expected bytes, got {type(data).__name__}")
    try:
        return cbor2.loads(bytes(data))
    except (cbor2.CBORDecodeError, ValueError) as e:
        raise DecodeError(f"invalid CBOR: {e}") from e


def dumps_record(obj: Any) -> bytes:
    if not is_dataclass(obj) or isinstance(obj, type):
        raise EncodeError(f"expected a dataclass instance, got {type(obj).__name__}")
    return dumps_canonical(obj)


def loads_record(data: bytes, cls: Type[T]) -> T:
    """Decode `data` into the dataclass `cls`; field names must match exactly."""
    obj = loads(data)
    if not isinstance(obj, dict):
        raise DecodeError(f"{cls.__name__}: expected map, got {type(obj).__name__}")
    names = {f.name for f in fields(cls)}  # type: ignore[arg-type]
    got = set(obj.keys())
    if got != names:
        raise DecodeError(
            f"{cls.__name__}: field mismatch (missing={sorted(names - got)}, "
            f"unexpected={sorted(map(str, got - names))})"
        )
    kwargs: Dict[str, Any] = {k: obj[k] for k in names}
    try:
        return cls(**kwargs)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"{cls.__name__}: {e}") from e


__all__ = [
    "EncodeError",
    "DecodeError",
    "dumps_canonical",
    "loads",
    "dumps_record",
    "loads_record",
]
