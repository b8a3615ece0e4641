"""
tally - command-line driver for a counter + record store.

Every command opens the store, runs one entry point through LocalHost and
closes it again. Commands mutate atomically: a failing command leaves the
store untouched.

Global options:
  --db TEXT          Store URI (sqlite:///path, bare path, memory://)
  --sender TEXT      Caller identity for commands
  --json             Output JSON instead of key=value text
  --log-level TEXT   DEBUG, INFO, WARNING, ERROR

Examples:
  tally init 17
  tally increment
  tally add 4
  tally record 0
  tally execute '{"remove_item": {"number": 4}}'
  tally query '{"get_count": {}}'
"""

from __future__ import annotations

import json
import sys
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import typer

from ..config import load_config
from ..contract.msg import (
    Add,
    GetCount,
    GetRecord,
    Increment,
    InstantiateMsg,
    Remove,
    RemoveItem,
    Reset,
)
from ..contract.response import Response
from ..db import open_kv
from ..errors import EXIT_CODES, ConfigError, TallyError, ensure_tally_error
from ..host import LocalHost
from ..logging import configure, get_logger
from ..version import __version__

app = typer.Typer(
    name="tally",
    help="Counter and auto-keyed record store",
    no_args_is_help=True,
    add_completion=False,
)

log = get_logger("tally.cli")

DEFAULT_SENDER = "cli"

# Lets click hand "-5" to an int argument instead of treating it as an option.
_SIGNED_ARGS = {"ignore_unknown_options": True}


class GlobalContext:
    def __init__(self) -> None:
        self.db: Optional[str] = None
        self.sender: str = DEFAULT_SENDER
        self.json_output: bool = False


_ctx = GlobalContext()


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main_callback(
    db: Optional[str] = typer.Option(
        None,
        "--db",
        help="Store URI (defaults to TALLY_DB, then the data dir)",
        envvar="TALLY_DB",
    ),
    sender: str = typer.Option(
        DEFAULT_SENDER,
        "--sender",
        help="Caller identity",
        envvar="TALLY_SENDER",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output JSON instead of key=value text",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Log level (defaults to TALLY_LOG_LEVEL)",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """
    Tally CLI — drive the counter and record collection from the shell.

    Store resolution: --db, then TALLY_DB, then sqlite under TALLY_DATA_DIR.
    """
    try:
        cfg = load_config(log_level=log_level)
    except TallyError as e:
        _fail(e)
    fmt = cfg.log_format
    configure(json=None if fmt is None else fmt == "json", level=cfg.log_level, stream=sys.stderr)

    _ctx.db = db or cfg.db_uri
    _ctx.sender = sender
    _ctx.json_output = json_output


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _fail(err: TallyError) -> None:
    typer.echo(json.dumps(err.to_dict(), sort_keys=True), err=True)
    raise typer.Exit(EXIT_CODES.get(err.code, 1))


@contextmanager
def _host() -> Iterator[LocalHost]:
    uri = _ctx.db or load_config().db_uri
    try:
        kv = open_kv(uri)
    except ValueError as e:
        _fail(ConfigError(str(e), db=uri))
    host = LocalHost(kv)
    try:
        yield host
    except TallyError as e:
        _fail(e)
    except typer.Exit:
        raise
    except Exception as e:
        log.exception("unexpected failure")
        _fail(ensure_tally_error(e))
    finally:
        host.close()


def _emit(obj: Dict[str, Any]) -> None:
    if _ctx.json_output:
        typer.echo(json.dumps(obj, sort_keys=True))
        return
    for k, v in obj.items():
        typer.echo(f"{k}={v}")


def _emit_response(resp: Response) -> None:
    if _ctx.json_output:
        typer.echo(json.dumps(resp.to_dict(), sort_keys=True))
        return
    for k, v in resp.attributes:
        typer.echo(f"{k}={v}")


# ---------------------------------------------------------------------------
# commands
# ---------------------------------------------------------------------------


@app.command(context_settings=_SIGNED_ARGS)
def init(count: int = typer.Argument(..., help="Initial counter value")) -> None:
    """Instantiate the store: count := COUNT, owner := --sender."""
    with _host() as h:
        _emit_response(h.instantiate(_ctx.sender, InstantiateMsg(count=count)))


@app.command()
def increment() -> None:
    """Increase the counter by one (wraps at 2**31 - 1)."""
    with _host() as h:
        _emit_response(h.execute(_ctx.sender, Increment()))


@app.command(context_settings=_SIGNED_ARGS)
def reset(count: int = typer.Argument(..., help="New counter value")) -> None:
    """Set the counter to COUNT; only the owner may do this."""
    with _host() as h:
        _emit_response(h.execute(_ctx.sender, Reset(count=count)))


@app.command(context_settings=_SIGNED_ARGS)
def add(number: int = typer.Argument(..., help="Record value")) -> None:
    """Store a record at the next free key."""
    with _host() as h:
        _emit_response(h.execute(_ctx.sender, Add(number=number)))


@app.command(context_settings=_SIGNED_ARGS)
def remove(index: int = typer.Argument(..., help="Record key")) -> None:
    """Delete the record at INDEX (no-op when absent)."""
    with _host() as h:
        _emit_response(h.execute(_ctx.sender, Remove(index=index)))


@app.command("remove-item", context_settings=_SIGNED_ARGS)
def remove_item(number: int = typer.Argument(..., help="Record value")) -> None:
    """Delete every record whose value equals NUMBER."""
    with _host() as h:
        _emit_response(h.execute(_ctx.sender, RemoveItem(number=number)))


@app.command()
def count() -> None:
    """Number of stored records."""
    with _host() as h:
        _emit(h.query(GetCount()))


@app.command(context_settings=_SIGNED_ARGS)
def record(index: int = typer.Argument(..., help="Record key")) -> None:
    """Value stored at INDEX (0 when absent)."""
    with _host() as h:
        _emit(h.query(GetRecord(index=index)))


@app.command()
def state() -> None:
    """Counter value and owner."""
    with _host() as h:
        s = h.state()
        _emit({"count": s.count, "owner": s.owner})


@app.command("list")
def list_records() -> None:
    """All records in ascending key order."""
    with _host() as h:
        items = h.records.items(h.kv)
        if _ctx.json_output:
            typer.echo(json.dumps([{"key": k, "number": r.number} for k, r in items]))
            return
        for k, r in items:
            typer.echo(f"{k}\t{r.number}")


@app.command()
def execute(msg: str = typer.Argument(..., help='Execute message JSON, e.g. \'{"add":{"number":4}}\'')) -> None:
    """Run a raw execute message."""
    with _host() as h:
        _emit_response(h.execute(_ctx.sender, msg))


@app.command()
def query(msg: str = typer.Argument(..., help='Query message JSON, e.g. \'{"get_count":{}}\'')) -> None:
    """Run a raw query message."""
    with _host() as h:
        _emit(h.query(msg))


def main() -> None:
    """Entry point for the tally CLI."""
    app()


if __name__ == "__main__":
    main()
