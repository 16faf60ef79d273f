"""Spawn the supervised server and turn its output into events."""
from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..contracts.v1 import ProcessOutputLine, ProcessStopped
from ..daemon.bus import EventBus
from ..kernel.framer import DEFAULT_FRAMER_BYTES, LineFramer, iter_lines

logger = logging.getLogger("mcrelay.process")

LINE_TERMINATOR = "\r\n"


class ProcessHandle:
    """Write side of a running server process.

    Only the orchestrator holds one; nothing else writes to the server's stdin.
    """

    def __init__(self, proc: asyncio.subprocess.Process):
        self._proc = proc

    @property
    def pid(self) -> int:
        return int(self._proc.pid or 0)

    def is_running(self) -> bool:
        return self._proc.returncode is None

    async def write_line(self, text: str) -> None:
        """Write `text` followed by CRLF. Raises OSError if the pipe is gone."""
        stdin = self._proc.stdin
        if stdin is None or stdin.is_closing():
            raise BrokenPipeError("server stdin is closed")
        stdin.write((text + LINE_TERMINATOR).encode("utf-8"))
        await stdin.drain()

    def terminate(self) -> None:
        if self.is_running():
            try:
                self._proc.terminate()
            except ProcessLookupError:
                pass


class ServerProcess:
    """Launches the server and owns its reader and waiter tasks.

    Every stdout/stderr line becomes a ProcessOutputLine event. When the
    process exits, ProcessStopped is published after both readers have drained,
    so a run's output always precedes its stop event.
    """

    def __init__(
        self,
        bus: EventBus,
        command: Sequence[str],
        *,
        cwd: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
        framer_bytes: int = DEFAULT_FRAMER_BYTES,
    ):
        self._bus = bus
        self.command: List[str] = [str(x) for x in command if str(x).strip()]
        self.cwd = cwd
        self.env = dict(env or {})
        self.framer_bytes = int(framer_bytes)
        self._tasks: List[asyncio.Task[None]] = []

    async def start(self) -> ProcessHandle:
        """Spawn the server. Raises OSError (or ValueError for an empty command)."""
        if not self.command:
            raise ValueError("no server command configured")

        proc_env = os.environ.copy()
        proc_env.update(self.env)

        logger.info("spawning server: %s", " ".join(self.command))
        proc = await asyncio.create_subprocess_exec(
            *self.command,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(self.cwd) if self.cwd else None,
            env=proc_env,
        )
        handle = ProcessHandle(proc)
        logger.info("server started", extra={"pid": handle.pid})

        readers = [
            asyncio.create_task(self._pump(proc.stdout, "stdout", handle.pid)),
            asyncio.create_task(self._pump(proc.stderr, "stderr", handle.pid)),
        ]
        self._tasks = readers + [asyncio.create_task(self._wait(proc, readers))]
        return handle

    async def _pump(self, stream: Optional[asyncio.StreamReader], name: str, pid: int) -> None:
        if stream is None:
            return
        async for line in iter_lines(stream, LineFramer(self.framer_bytes)):
            self._bus.publish(ProcessOutputLine(stream=name, line=line))
        logger.debug("%s reader exited", name, extra={"stream": name, "pid": pid})

    async def _wait(self, proc: asyncio.subprocess.Process, readers: List[asyncio.Task[None]]) -> None:
        await asyncio.gather(*readers, return_exceptions=True)
        code = await proc.wait()
        logger.info("server exited with %s", code, extra={"pid": proc.pid})
        self._bus.publish(ProcessStopped(pid=int(proc.pid or 0), exit_code=code))

    async def shutdown(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
