"""Relay settings.

Settings are stored in ~/.mcrelay/settings.yaml (or $MCRELAY_HOME) and include:
- Discord token (inline or via an environment variable) and channel
- server command line and lifecycle switches
- buffer sizes and capture timing
- state and diagnostics file locations
"""
from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml  # type: ignore
from pydantic import BaseModel, ConfigDict, Field, PositiveInt, ValidationError

from .paths import default_diagnostics_path, default_settings_path, default_state_path


class SettingsError(RuntimeError):
    pass


def _is_env_var_name(value: str) -> bool:
    return bool(re.fullmatch(r"[A-Z_][A-Z0-9_]*", (value or "").strip()))


class RelaySettings(BaseModel):
    token: str = ""
    token_env: str = "DISCORD_TOKEN"
    channel_id: int = 0

    server_command: List[str] = Field(default_factory=list)
    server_cwd: Optional[Path] = None
    autostart: bool = True
    exit_on_stop: bool = False
    forward_console: bool = True

    # Only lines with these labels drive sessions and notifications; empty means all.
    labels: List[str] = Field(default_factory=list)
    # Labels whose "Done" lines mark the server as started; empty means all.
    ready_labels: List[str] = Field(default_factory=lambda: ["minecraft/DedicatedServer"])
    # Discord user ids allowed to use !cmd/!start/!stop/!update; empty means everyone.
    operators: List[int] = Field(default_factory=list)

    say_prefix: str = "/say"
    stop_command: str = "stop"
    update_command: List[str] = Field(default_factory=list)

    recent_log_bytes: PositiveInt = 1800
    capture_bytes: PositiveInt = 1800
    capture_delay_ms: PositiveInt = 1000
    framer_bytes: PositiveInt = 1000

    state_path: Optional[Path] = None
    diagnostics_path: Optional[Path] = None
    log_level: str = "INFO"

    model_config = ConfigDict(extra="forbid")

    def resolved_token(self) -> str:
        if self.token.strip():
            return self.token.strip()
        if _is_env_var_name(self.token_env):
            return os.environ.get(self.token_env, "").strip()
        return ""

    def resolved_state_path(self) -> Path:
        return (self.state_path or default_state_path()).expanduser()

    def resolved_diagnostics_path(self) -> Path:
        return (self.diagnostics_path or default_diagnostics_path()).expanduser()


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        doc = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise SettingsError(f"cannot read settings {path}: {e}") from e
    if doc is None:
        return {}
    if not isinstance(doc, dict):
        raise SettingsError(f"settings {path} must be a mapping")
    return doc


def load_settings(path: Optional[Path] = None, overrides: Optional[Dict[str, Any]] = None) -> RelaySettings:
    """Load settings.yaml (if present) and apply non-None overrides on top.

    An explicitly given path must exist; the default path is optional.
    """
    explicit = path is not None
    p = path or default_settings_path()
    doc: Dict[str, Any] = {}
    if p.exists():
        doc = _read_yaml(p)
    elif explicit:
        raise SettingsError(f"settings file not found: {p}")

    for k, v in (overrides or {}).items():
        if v is not None:
            doc[k] = v

    try:
        return RelaySettings.model_validate(doc)
    except ValidationError as e:
        raise SettingsError(f"invalid settings: {e}") from e
