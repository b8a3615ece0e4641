"""
tally.config — storage location, key policy and logging knobs.

This module centralizes configuration for the local host and CLI. It has NO
third-party deps and is safe to import very early.

Configuration precedence:
  1) Explicit overrides passed to `load_config(**overrides)`
  2) Environment variables (TALLY_*)
  3) Hardcoded defaults below

Env vars:
  - TALLY_DB          (uri)    default: sqlite:///<data_dir>/tally.db
  - TALLY_DATA_DIR    (path)   default: $XDG_DATA_HOME/tally or ~/.local/share/tally
  - TALLY_KEY_POLICY  (str)    default: reuse      (reuse | monotonic)
  - TALLY_LOG_LEVEL   (str)    default: INFO
  - TALLY_LOG_FORMAT  (str)    default: unset      (json | text; unset = auto)

Usage:
    from tally.config import load_config
    CFG = load_config()
    if CFG.key_policy == "monotonic": ...
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigError

KEY_POLICIES = ("reuse", "monotonic")
LOG_FORMATS = ("json", "text")
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")

DEFAULT_DB_FILENAME = "tally.db"


# ----------------------------- helpers ---------------------------------------


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def _default_data_dir() -> Path:
    override = _env_str("TALLY_DATA_DIR")
    if override:
        return Path(override).expanduser().resolve()
    xdg = _env_str("XDG_DATA_HOME")
    base = Path(xdg).expanduser() if xdg else Path("~/.local/share").expanduser()
    return (base / "tally").resolve()


def _choice(name: str, value: str, allowed: tuple) -> str:
    v = value.strip().lower()
    if v not in allowed:
        raise ConfigError(f"{name} must be one of {', '.join(allowed)}", value=value)
    return v


# ------------------------------- config --------------------------------------


@dataclass(frozen=True)
class TallyConfig:
    db_uri: str
    data_dir: Path
    key_policy: str
    log_level: str
    log_format: Optional[str]

    def with_overrides(self, **overrides: Any) -> "TallyConfig":
        clean = {k: v for k, v in overrides.items() if v is not None}
        if "key_policy" in clean:
            clean["key_policy"] = _choice("key_policy", clean["key_policy"], KEY_POLICIES)
        if "log_format" in clean:
            clean["log_format"] = _choice("log_format", clean["log_format"], LOG_FORMATS)
        if "log_level" in clean:
            clean["log_level"] = _choice(
                "log_level", clean["log_level"], tuple(l.lower() for l in LOG_LEVELS)
            ).upper()
        return replace(self, **clean)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "db_uri": self.db_uri,
            "data_dir": str(self.data_dir),
            "key_policy": self.key_policy,
            "log_level": self.log_level,
            "log_format": self.log_format,
        }


@lru_cache(maxsize=1)
def _from_env() -> TallyConfig:
    data_dir = _default_data_dir()
    db_uri = _env_str("TALLY_DB") or f"sqlite:///{data_dir / DEFAULT_DB_FILENAME}"

    policy = _env_str("TALLY_KEY_POLICY")
    fmt = _env_str("TALLY_LOG_FORMAT")
    level = _env_str("TALLY_LOG_LEVEL") or "INFO"

    return TallyConfig(
        db_uri=db_uri,
        data_dir=data_dir,
        key_policy=_choice("TALLY_KEY_POLICY", policy, KEY_POLICIES) if policy else "reuse",
        log_level=_choice("TALLY_LOG_LEVEL", level, tuple(l.lower() for l in LOG_LEVELS)).upper(),
        log_format=_choice("TALLY_LOG_FORMAT", fmt, LOG_FORMATS) if fmt else None,
    )


def load_config(**overrides: Any) -> TallyConfig:
    """
    Build a TallyConfig from environment + defaults (cached), then apply
    explicit overrides (None values are ignored).
    """
    cfg = _from_env()
    return cfg.with_overrides(**overrides) if overrides else cfg


def reload_config() -> TallyConfig:
    """Drop the cached environment snapshot (tests that monkeypatch env)."""
    _from_env.cache_clear()
    return _from_env()


__all__ = ["TallyConfig", "load_config", "reload_config", "KEY_POLICIES"]
