from __future__ import annotations

import logging
import sys
import threading
from typing import Optional, TextIO

from ..contracts.v1 import ConsoleLine
from ..daemon.bus import EventBus

logger = logging.getLogger("mcrelay.console")


class ConsoleForwarder:
    """Read lines typed on the relay's stdin and publish them as ConsoleLine.

    Blocking reads run on a daemon thread; the thread ends at end of input.
    """

    def __init__(self, bus: EventBus, stream: Optional[TextIO] = None):
        self._bus = bus
        self._stream = stream or sys.stdin
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._loop, name="mcrelay-console", daemon=True)
        self._thread.start()

    def _loop(self) -> None:
        while True:
            try:
                line = self._stream.readline()
            except (OSError, ValueError) as e:
                logger.warning("console read failed: %s", e)
                return
            if not line:
                logger.debug("console input closed")
                return
            self._bus.publish_threadsafe(ConsoleLine(line=line.rstrip("\r\n")))

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)
