from __future__ import annotations

from pathlib import Path

import pytest

from tally.config import load_config, reload_config
from tally.errors import ConfigError


def test_defaults(tmp_path) -> None:
    cfg = load_config()
    assert cfg.data_dir == (tmp_path / "data").resolve()
    assert cfg.db_uri == f"sqlite:///{cfg.data_dir / 'tally.db'}"
    assert cfg.key_policy == "reuse"
    assert cfg.log_level == "INFO"
    assert cfg.log_format is None


def test_env_overrides(monkeypatch) -> None:
    monkeypatch.setenv("TALLY_DB", "memory://")
    monkeypatch.setenv("TALLY_KEY_POLICY", "MONOTONIC")
    monkeypatch.setenv("TALLY_LOG_LEVEL", "debug")
    monkeypatch.setenv("TALLY_LOG_FORMAT", "json")
    cfg = reload_config()
    assert cfg.db_uri == "memory://"
    assert cfg.key_policy == "monotonic"
    assert cfg.log_level == "DEBUG"
    assert cfg.log_format == "json"


def test_load_config_is_cached(monkeypatch) -> None:
    first = load_config()
    monkeypatch.setenv("TALLY_KEY_POLICY", "monotonic")
    assert load_config() is first
    assert reload_config().key_policy == "monotonic"


def test_explicit_overrides_win(monkeypatch) -> None:
    monkeypatch.setenv("TALLY_KEY_POLICY", "monotonic")
    reload_config()
    cfg = load_config(key_policy="reuse", log_level=None)
    assert cfg.key_policy == "reuse"
    assert cfg.log_level == "INFO"


@pytest.mark.parametrize(
    "name, value",
    [("TALLY_KEY_POLICY", "random"), ("TALLY_LOG_LEVEL", "loud"), ("TALLY_LOG_FORMAT", "xml")],
)
def test_invalid_env_values(monkeypatch, name, value) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError):
        reload_config()


def test_invalid_override() -> None:
    with pytest.raises(ConfigError):
        load_config(key_policy="sometimes")


def test_as_dict_is_json_friendly() -> None:
    d = load_config().as_dict()
    assert isinstance(d["data_dir"], str)
    assert Path(d["data_dir"]).name == "data"
