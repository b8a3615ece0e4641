"""
tally.contract.msg — command / query messages and their JSON shapes.

Messages are externally tagged, snake_case:

    {"count": 17}                          InstantiateMsg
    {"increment": {}}                      Increment
    {"reset": {"count": 5}}                Reset
    {"add": {"number": 4}}                 Add
    {"remove": {"index": 2}}               Remove
    {"remove_item": {"number": 4}}         RemoveItem
    {"get_count": {}}                      GetCount   -> {"count": n}
    {"get_record": {"index": 3}}           GetRecord  -> {"number": n}

Parsing is strict: exactly one variant tag, exactly the declared fields,
plain ints within the declared width. Anything else is a MessageError.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from typing import Any, ClassVar, Dict, Mapping, Type, TypeVar, Union

from ..errors import MessageError
from .state import Identity, check_i32, check_identity, check_u32

M = TypeVar("M")
RawMsg = Union[str, bytes, Mapping[str, Any]]

_CHECKS = {"i32": check_i32, "u32": check_u32}


@dataclass(frozen=True)
class MessageInfo:
    """Per-invocation caller context supplied by the host."""

    sender: Identity

    def __post_init__(self) -> None:
        check_identity(self.sender)


class _Msg:
    tag: ClassVar[str] = ""
    widths: ClassVar[Dict[str, str]] = {}

    def __post_init__(self) -> None:
        for name, width in self.widths.items():
            _CHECKS[width](getattr(self, name), name)

    def to_dict(self) -> Dict[str, Any]:
        return {self.tag: asdict(self)}  # type: ignore[call-overload]


@dataclass(frozen=True)
class InstantiateMsg:
    count: int

    def __post_init__(self) -> None:
        check_i32(self.count, "count")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# --- execute ---------------------------------------------------------------


@dataclass(frozen=True)
class Increment(_Msg):
    tag: ClassVar[str] = "increment"


@dataclass(frozen=True)
class Reset(_Msg):
    count: int
    tag: ClassVar[str] = "reset"
    widths: ClassVar[Dict[str, str]] = {"count": "i32"}


@dataclass(frozen=True)
class Add(_Msg):
    number: int
    tag: ClassVar[str] = "add"
    widths: ClassVar[Dict[str, str]] = {"number": "i32"}


@dataclass(frozen=True)
class Remove(_Msg):
    index: int
    tag: ClassVar[str] = "remove"
    widths: ClassVar[Dict[str, str]] = {"index": "u32"}


@dataclass(frozen=True)
class RemoveItem(_Msg):
    number: int
    tag: ClassVar[str] = "remove_item"
    widths: ClassVar[Dict[str, str]] = {"number": "i32"}


# --- query -----------------------------------------------------------------


@dataclass(frozen=True)
class GetCount(_Msg):
    tag: ClassVar[str] = "get_count"


@dataclass(frozen=True)
class GetRecord(_Msg):
    index: int
    tag: ClassVar[str] = "get_record"
    widths: ClassVar[Dict[str, str]] = {"index": "u32"}


ExecuteMsg = Union[Increment, Reset, Add, Remove, RemoveItem]
QueryMsg = Union[GetCount, GetRecord]

EXECUTE_VARIANTS: Dict[str, Type[_Msg]] = {
    cls.tag: cls for cls in (Increment, Reset, Add, Remove, RemoveItem)
}
QUERY_VARIANTS: Dict[str, Type[_Msg]] = {cls.tag: cls for cls in (GetCount, GetRecord)}


# --- parsing ---------------------------------------------------------------


def _as_mapping(raw: RawMsg) -> Mapping[str, Any]:
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise MessageError(f"message is not valid JSON: {e}") from e
    if not isinstance(raw, Mapping):
        raise MessageError("message must be a JSON object", got=type(raw).__name__)
    return raw


def _build(cls: Type[M], body: Any, where: str) -> M:
    if not isinstance(body, Mapping):
        raise MessageError(f"{where}: body must be an object", got=type(body).__name__)
    expected = {f.name for f in fields(cls)}  # type: ignore[arg-type]
    got = set(body.keys())
    if got != expected:
        raise MessageError(
            f"{where}: field mismatch",
            missing=sorted(expected - got),
            unexpected=sorted(map(str, got - expected)),
        )
    return cls(**dict(body))


def _parse_variant(raw: RawMsg, variants: Mapping[str, Type[_Msg]], kind: str) -> Any:
    obj = _as_mapping(raw)
    if len(obj) != 1:
        raise MessageError(f"{kind} message must have exactly one variant", keys=sorted(map(str, obj)))
    (tag, body), = obj.items()
    cls = variants.get(tag)
    if cls is None:
        raise MessageError(f"unknown {kind} variant", variant=str(tag), known=sorted(variants))
    return _build(cls, body, tag)


def parse_instantiate_msg(raw: Union[RawMsg, InstantiateMsg]) -> InstantiateMsg:
    if isinstance(raw, InstantiateMsg):
        return raw
    return _build(InstantiateMsg, _as_mapping(raw), "instantiate")


def parse_execute_msg(raw: Union[RawMsg, _Msg]) -> ExecuteMsg:
    if isinstance(raw, tuple(EXECUTE_VARIANTS.values())):
        return raw  # type: ignore[return-value]
    if isinstance(raw, _Msg):
        raise MessageError("not an execute message", variant=raw.tag)
    return _parse_variant(raw, EXECUTE_VARIANTS, "execute")


def parse_query_msg(raw: Union[RawMsg, _Msg]) -> QueryMsg:
    if isinstance(raw, tuple(QUERY_VARIANTS.values())):
        return raw  # type: ignore[return-value]
    if isinstance(raw, _Msg):
        raise MessageError("not a query message", variant=raw.tag)
    return _parse_variant(raw, QUERY_VARIANTS, "query")


__all__ = [
    "MessageInfo",
    "InstantiateMsg",
    "Increment",
    "Reset",
    "Add",
    "Remove",
    "RemoveItem",
    "GetCount",
    "GetRecord",
    "ExecuteMsg",
    "QueryMsg",
    "EXECUTE_VARIANTS",
    "QUERY_VARIANTS",
    "parse_instantiate_msg",
    "parse_execute_msg",
    "parse_query_msg",
]
