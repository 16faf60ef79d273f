from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

logger = logging.getLogger("mcrelay.diaglog")


class DiagnosticLog:
    """Append-only text record of session timing details.

    Write-only: nothing in the relay reads it back. A missing path disables it.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = path

    def write(self, msg: str) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                ts = time.strftime("%Y-%m-%d %H:%M:%S")
                f.write(f"{ts} {msg}\n")
        except OSError as e:
            logger.warning("diagnostic log write failed: %s", e)
