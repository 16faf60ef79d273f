from __future__ import annotations


def _is_continuation(b: int) -> bool:
    return (b & 0xC0) == 0x80


class BoundedTextBuffer:
    """Rolling text log capped at `capacity` UTF-8 bytes.

    Each appended line is stored with a trailing newline. Old bytes are evicted
    from the front to make room; cuts always land on character boundaries, so
    the stored size may end up a few bytes under the cap but never over it.
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = int(capacity)
        self._data = bytearray()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def size(self) -> int:
        return len(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __bool__(self) -> bool:
        return bool(self._data)

    def clear(self) -> None:
        self._data.clear()

    def text(self) -> str:
        return self._data.decode("utf-8")

    def append(self, line: str) -> None:
        incoming = (line + "\n").encode("utf-8", errors="replace")

        if len(incoming) > self._capacity:
            cut = self._capacity
            while cut > 0 and _is_continuation(incoming[cut]):
                cut -= 1
            self._data[:] = incoming[:cut]
            return

        overflow = len(self._data) + len(incoming) - self._capacity
        if overflow > 0:
            while overflow < len(self._data) and _is_continuation(self._data[overflow]):
                overflow += 1
            del self._data[:overflow]

        self._data += incoming
