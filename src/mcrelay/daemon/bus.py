"""Single ordered event channel feeding the orchestrator.

Producers only ever enqueue immutable events; the orchestrator is the only
consumer. Code running on the event loop uses `publish`; threads that own
their own loop (Discord gateway, console reader) use `publish_threadsafe`.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..contracts.v1 import RelayEvent

logger = logging.getLogger("mcrelay.bus")


class EventBus:
    def __init__(self) -> None:
        self._queue: "asyncio.Queue[Optional[RelayEvent]]" = asyncio.Queue()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def bind_loop(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Remember the consumer's loop so foreign threads can publish."""
        self._loop = loop or asyncio.get_running_loop()

    def publish(self, event: RelayEvent) -> None:
        self._queue.put_nowait(event)

    def publish_threadsafe(self, event: RelayEvent) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.warning("event dropped, bus not bound to a running loop: %s", getattr(event, "kind", event))
            return
        loop.call_soon_threadsafe(self._queue.put_nowait, event)

    def close(self) -> None:
        """Wake the consumer with the end-of-stream sentinel."""
        self._queue.put_nowait(None)

    async def get(self) -> Optional[RelayEvent]:
        return await self._queue.get()

    def qsize(self) -> int:
        return self._queue.qsize()
