"""
tally.logging
-------------

Logging for the host, entry points and CLI, on top of stdlib `logging`.

Each invocation runs under a `trace_scope()`, which puts a short trace id into
a ContextVar. Other per-invocation fields such as `sender` are added with
`bind()`. Both formatters copy those fields onto every line, alongside any
`extra=` given at the call site.

    configure(json=None, level="INFO")    # JSON off a tty, text on one
    log = get_logger("tally.host")

    with trace_scope():
        bind(sender="alice")
        log.debug("execute", extra={"method": "add"})
"""

from __future__ import annotations

import datetime as _dt
import json as _json
import logging
import os
import sys
import traceback
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, TextIO, Union

LOGGER_NAME = "tally"

# Fields the text formatter prints first, in this order.
DEFAULT_CONTEXT_KEYS = ("trace_id", "sender", "method")

_FIELDS: ContextVar[Dict[str, Any]] = ContextVar("tally_log_fields", default={})

# Attributes every LogRecord has; anything else on a record came from `extra=`.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
}


# ----------------------------
# Context
# ----------------------------


def context() -> Dict[str, Any]:
    """Snapshot of the bound fields."""
    return dict(_FIELDS.get())


def bind(**fields: Any) -> None:
    _FIELDS.set({**_FIELDS.get(), **{k: _plain(v) for k, v in fields.items()}})


def unbind(*keys: str) -> None:
    _FIELDS.set({k: v for k, v in _FIELDS.get().items() if k not in keys})


def clear_context() -> None:
    _FIELDS.set({})


@contextmanager
def trace_scope(trace_id: Optional[str] = None) -> Iterator[str]:
    """Bind a trace id (fresh unless given) until the block exits; yields it."""
    token = _FIELDS.set({**_FIELDS.get(), "trace_id": trace_id or short_uuid()})
    try:
        yield _FIELDS.get()["trace_id"]
    finally:
        _FIELDS.reset(token)


def short_uuid() -> str:
    return uuid.uuid4().hex[:12]


# ----------------------------
# Formatters
# ----------------------------


def _plain(v: Any) -> Any:
    """JSON-friendly form of a field value."""
    if v is None or isinstance(v, (bool, int, float, str, list, dict)):
        return v
    if isinstance(v, (bytes, bytearray, memoryview)):
        return bytes(v).hex()
    if isinstance(v, Path):
        return os.fspath(v)
    return str(v)


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        k: _plain(v)
        for k, v in vars(record).items()
        if k not in _RECORD_ATTRS and not k.startswith("_")
    }


def _timestamp(record: logging.LogRecord) -> str:
    ts = _dt.datetime.fromtimestamp(record.created, tz=_dt.timezone.utc)
    return ts.isoformat(timespec="milliseconds")


def _exc_text(record: logging.LogRecord) -> Optional[str]:
    if not record.exc_info:
        return None
    return "".join(traceback.format_exception(*record.exc_info)).rstrip()


class JSONFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, msg, then bound and extra fields."""

    def format(self, record: logging.LogRecord) -> str:
        out: Dict[str, Any] = {
            "ts": _timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        out.update(context())
        for k, v in _extras(record).items():
            out.setdefault(k, v)
        err = _exc_text(record)
        if err:
            out["err"] = err
        return _json.dumps(out, default=str, separators=(",", ":"))


_ANSI = {
    "reset": "\x1b[0m",
    "dim": "\x1b[90m",
    "name": "\x1b[36m",
    logging.DEBUG: "\x1b[90m",
    logging.INFO: "\x1b[32m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[35m",
}


class TextFormatter(logging.Formatter):
    """
    ``<ts> | <LEVEL> | <logger> | k=v ... | <message>``, colored when the
    target stream is a terminal and NO_COLOR is unset.
    """

    def __init__(self, stream: Any) -> None:
        super().__init__()
        self._color = _is_tty(stream)

    def _paint(self, key: Any, text: str) -> str:
        return f"{_ANSI[key]}{text}{_ANSI['reset']}" if self._color else text

    def format(self, record: logging.LogRecord) -> str:
        bound = context()
        pairs = [(k, bound[k]) for k in DEFAULT_CONTEXT_KEYS if bound.get(k) is not None]
        pairs += [(k, v) for k, v in bound.items() if k not in DEFAULT_CONTEXT_KEYS]
        pairs += [(k, v) for k, v in _extras(record).items() if k not in bound]

        parts = [
            self._paint("dim", _timestamp(record)),
            self._paint(record.levelno, f"{record.levelname:<5}"),
            self._paint("name", record.name),
        ]
        if pairs:
            parts.append(" ".join(f"{k}={v}" for k, v in pairs))
        parts.append(record.getMessage())
        line = " | ".join(parts)
        err = _exc_text(record)
        return f"{line}\n{err}" if err else line


def _is_tty(stream: Any) -> bool:
    if os.environ.get("NO_COLOR") is not None:
        return False
    isatty = getattr(stream, "isatty", None)
    try:
        return bool(isatty and isatty())
    except ValueError:
        return False


# ----------------------------
# Public setup API
# ----------------------------


def configure(
    *,
    json: Optional[bool] = None,
    level: Union[str, int] = "INFO",
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    (Re)configure the `tally` logger: one stream handler, no propagation.

    json=None reads TALLY_LOG_FORMAT (json|text) and otherwise picks JSON
    unless `stream` is a terminal. `stream` defaults to the current stderr.
    """
    stream = stream if stream is not None else sys.stderr
    use_json = _want_json(json, stream)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter() if use_json else TextFormatter(stream))

    logger = logging.getLogger(LOGGER_NAME)
    for old in list(logger.handlers):
        logger.removeHandler(old)
    logger.addHandler(handler)
    logger.setLevel(_level(level))
    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or LOGGER_NAME)


def _level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else logging.INFO


def _want_json(flag: Optional[bool], stream: Any) -> bool:
    if flag is not None:
        return flag
    fmt = os.environ.get("TALLY_LOG_FORMAT", "").strip().lower()
    if fmt in ("json", "text"):
        return fmt == "json"
    return not _is_tty(stream)


__all__ = [
    "configure",
    "get_logger",
    "bind",
    "unbind",
    "context",
    "clear_context",
    "trace_scope",
    "short_uuid",
    "JSONFormatter",
    "TextFormatter",
]
