from __future__ import annotations

import os
from pathlib import Path


def relay_home() -> Path:
    env = os.environ.get("MCRELAY_HOME", "").strip()
    if env:
        return Path(env).expanduser().resolve()
    return (Path.home() / ".mcrelay").resolve()


def default_settings_path() -> Path:
    return relay_home() / "settings.yaml"


def default_state_path() -> Path:
    return relay_home() / "playtime.json"


def default_diagnostics_path() -> Path:
    return relay_home() / "diagnostics.log"
