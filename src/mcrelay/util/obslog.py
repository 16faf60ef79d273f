from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

# Copied from `extra={...}` into the JSON line when set.
CORRELATION_KEYS = ("player", "label", "channel_id", "stream", "pid", "capture_id")


class JsonlFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, component, msg, correlation keys, exc."""

    def __init__(self, *, component: str = "mcrelay"):
        super().__init__()
        self.component = component or "mcrelay"

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "component": self.component,
            "msg": record.getMessage(),
        }
        payload.update(
            {k: str(record.__dict__[k]) for k in CORRELATION_KEYS if record.__dict__.get(k) not in (None, "")}
        )
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_root_json_logging(
    *,
    component: str,
    level: str = "INFO",
    stream: Optional[TextIO] = None,
    force: bool = False,
) -> None:
    """Send root logging to `stream` (stderr) as JSONL.

    Repeated calls only adjust the level unless `force` replaces the handlers.
    """
    root = logging.getLogger()
    numeric = logging.getLevelName(str(level or "INFO").upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    root.setLevel(numeric)

    if force:
        for h in list(root.handlers):
            root.removeHandler(h)
    elif any(isinstance(h.formatter, JsonlFormatter) for h in root.handlers):
        return

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonlFormatter(component=component))
    root.addHandler(handler)
