from __future__ import annotations

import itertools
from typing import Any, Optional

from .text_buffer import BoundedTextBuffer

DEFAULT_CAPTURE_DELAY_MS = 1000


class CommandCapture:
    """Attribute output that follows an operator command to that command.

    Only one window can be open. While it is open every output line is copied
    into a scratch buffer; when its timer fires the scratch text becomes the
    command's response.
    """

    def __init__(self, capacity: int, *, delay_ms: int = DEFAULT_CAPTURE_DELAY_MS):
        self.scratch = BoundedTextBuffer(capacity)
        self.delay_ms = int(delay_ms)
        self.command: Optional[str] = None
        self.capture_id: Optional[int] = None
        self.deadline: Any = None
        self._ids = itertools.count(1)

    @property
    def active(self) -> bool:
        return self.capture_id is not None

    def next_id(self) -> int:
        return next(self._ids)

    def begin(self, capture_id: int, command: str, deadline: Any = None) -> bool:
        """Open a window; returns False (and changes nothing) if one is open."""
        if self.active:
            return False
        self.scratch.clear()
        self.capture_id = capture_id
        self.command = command
        self.deadline = deadline
        return True

    def feed(self, line: str) -> None:
        if self.active:
            self.scratch.append(line)

    def finish(self, capture_id: int) -> Optional[str]:
        """Close the window opened as `capture_id`.

        Returns the captured text, or None when nothing was captured or the id
        does not belong to the open window.
        """
        if capture_id != self.capture_id:
            return None
        text = self.scratch.text()
        self.scratch.clear()
        self.capture_id = None
        self.command = None
        self.deadline = None
        return text or None
