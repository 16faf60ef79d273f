from __future__ import annotations

import asyncio
from typing import Any, Optional

from ..daemon.bus import EventBus


class OneShotTimer:
    """Publish exactly one event after `delay_ms`, unless cancelled first."""

    def __init__(self, bus: EventBus, delay_ms: int, event: Any):
        self.event = event
        self.delay_ms = int(delay_ms)
        self._bus = bus
        self._task: Optional[asyncio.Task[None]] = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        await asyncio.sleep(max(0, self.delay_ms) / 1000.0)
        self._bus.publish(self.event)

    @property
    def done(self) -> bool:
        return self._task is None or self._task.done()

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
