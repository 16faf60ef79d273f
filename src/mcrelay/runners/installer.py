from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from ..contracts.v1 import InstallComplete
from ..daemon.bus import EventBus

logger = logging.getLogger("mcrelay.installer")

_TAIL_CHARS = 400


class Installer:
    """Run the configured update command in the background.

    Completion is reported as a single InstallComplete event.
    """

    def __init__(self, bus: EventBus, command: Sequence[str], *, cwd: Optional[Path] = None):
        self._bus = bus
        self.command: List[str] = [str(x) for x in command if str(x).strip()]
        self.cwd = cwd
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def configured(self) -> bool:
        return bool(self.command)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        if self.running or not self.command:
            return False
        self._task = asyncio.create_task(self._run())
        return True

    async def _run(self) -> None:
        logger.info("running update: %s", " ".join(self.command))
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=str(self.cwd) if self.cwd else None,
            )
            out, _ = await proc.communicate()
        except OSError as e:
            logger.error("update command failed to start: %s", e)
            self._bus.publish(InstallComplete(ok=False, detail=str(e)))
            return

        tail = (out or b"").decode("utf-8", errors="replace").strip()[-_TAIL_CHARS:]
        if proc.returncode == 0:
            self._bus.publish(InstallComplete(ok=True, detail=tail))
        else:
            logger.warning("update command exited with %s", proc.returncode)
            self._bus.publish(InstallComplete(ok=False, detail=f"exit code {proc.returncode}\n{tail}".strip()))

    async def shutdown(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
