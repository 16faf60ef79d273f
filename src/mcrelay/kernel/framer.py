"""Reassemble newline-delimited text lines from raw pipe reads.

Reads can split a line across several chunks or pack several lines into one
chunk; the lines that come out do not depend on how the bytes were chunked.
"""
from __future__ import annotations

import logging
from typing import AsyncIterator, List, Optional, Protocol

logger = logging.getLogger("mcrelay.framer")

DEFAULT_FRAMER_BYTES = 1000


class ByteReader(Protocol):
    async def read(self, n: int = -1) -> bytes: ...


class LineFramer:
    """Fixed-capacity line reassembly buffer.

    A line that does not fit in the buffer is dropped: once the buffer is full
    and holds no newline, everything accumulated so far is discarded and
    framing restarts from empty. Lines that are not valid UTF-8 are skipped.
    """

    def __init__(self, capacity: int = DEFAULT_FRAMER_BYTES):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = int(capacity)
        self._buf = bytearray()
        self.dropped_bytes = 0
        self.dropped_lines = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def free_space(self) -> int:
        return self._capacity - len(self._buf)

    @property
    def pending(self) -> int:
        """Bytes of the current unterminated line."""
        return len(self._buf)

    def reset(self) -> None:
        self._buf.clear()

    def feed(self, chunk: bytes) -> List[str]:
        lines: List[str] = []
        view = memoryview(chunk)
        while view:
            if not self.free_space:
                self._overflow()
            take = min(self.free_space, len(view))
            self._append(bytes(view[:take]), lines)
            view = view[take:]
        if not self.free_space:
            self._overflow()
        return lines

    def _append(self, data: bytes, lines: List[str]) -> None:
        scan_from = len(self._buf)
        self._buf += data

        line_start = 0
        i = self._buf.find(b"\n", scan_from)
        while i != -1:
            raw = bytes(self._buf[line_start:i])
            if raw.endswith(b"\r"):
                raw = raw[:-1]
            line_start = i + 1
            try:
                lines.append(raw.decode("utf-8"))
            except UnicodeDecodeError as e:
                self.dropped_lines += 1
                logger.warning("dropping non-utf8 line: %s", e)
            i = self._buf.find(b"\n", line_start)

        if line_start:
            del self._buf[:line_start]

    def _overflow(self) -> None:
        self.dropped_bytes += len(self._buf)
        logger.warning("line buffer filled without a newline, dropping %d bytes", len(self._buf))
        self._buf.clear()


async def iter_lines(reader: ByteReader, framer: Optional[LineFramer] = None) -> AsyncIterator[str]:
    """Yield complete lines from `reader` until end of stream or a read error.

    An unterminated partial line left at end of stream is not yielded.
    """
    framer = framer or LineFramer()
    while True:
        try:
            chunk = await reader.read(framer.free_space)
        except OSError as e:
            logger.warning("stream read failed: %s", e)
            break
        if not chunk:
            break
        for line in framer.feed(chunk):
            yield line
    if framer.pending:
        logger.debug("discarding %d bytes of unterminated output at end of stream", framer.pending)
