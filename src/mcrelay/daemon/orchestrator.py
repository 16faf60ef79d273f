"""Relay orchestrator: the single consumer of the event bus.

All mutable relay state lives here and is only touched from `run()`:
- the server process handle (sole writer of the server's stdin)
- online sessions and playtime totals
- the recent-output buffer and the command capture window

Producers (Discord gateway, output readers, console reader, timers, updater)
only publish events. Handlers await outbound calls in place, so a slow chat
send delays the events queued behind it; event rates are low enough that the
relay accepts this rather than adding locking.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

from ..contracts.v1 import (
    ChatMessage,
    CommandTimerElapsed,
    ConsoleLine,
    GatewayReady,
    InstallComplete,
    ProcessOutputLine,
    ProcessStopped,
    RelayEvent,
)
from ..kernel.capture import CommandCapture
from ..kernel.log_parser import LogParseError, LogRecord, parse_line
from ..kernel.playtime import PlaytimeTracker, format_leaderboard
from ..kernel.text_buffer import BoundedTextBuffer
from ..ports.chat.base import ChatSink, code_block
from ..runners.timers import OneShotTimer
from ..settings import RelaySettings
from .bus import EventBus
from .commands import OPERATOR_COMMANDS, CommandType, ParsedCommand, format_help, format_online, parse_message

logger = logging.getLogger("mcrelay.orchestrator")

SERVER_READY_PREFIX = "Done"
JOIN_SUFFIX = " joined the game"
LEAVE_SUFFIX = " left the game"
SERVER_CHAT_USER = "Server"


class ServerHandle(Protocol):
    @property
    def pid(self) -> int: ...

    def is_running(self) -> bool: ...

    async def write_line(self, text: str) -> None: ...

    def terminate(self) -> None: ...


class ServerLauncher(Protocol):
    async def start(self) -> ServerHandle: ...

    async def shutdown(self) -> None: ...


TimerFactory = Callable[[int, Any], Any]


class Orchestrator:
    def __init__(
        self,
        settings: RelaySettings,
        bus: EventBus,
        *,
        chat: ChatSink,
        tracker: PlaytimeTracker,
        server: Optional[ServerLauncher] = None,
        installer: Any = None,
        timer_factory: Optional[TimerFactory] = None,
    ):
        self.settings = settings
        self._bus = bus
        self._chat = chat
        self.tracker = tracker
        self._server = server
        self._installer = installer
        self._timer_factory = timer_factory or (lambda delay_ms, event: OneShotTimer(bus, delay_ms, event))

        self.recent = BoundedTextBuffer(settings.recent_log_bytes)
        self.capture = CommandCapture(settings.capture_bytes, delay_ms=settings.capture_delay_ms)
        self.handle: Optional[ServerHandle] = None

        self.bot_user_id: Optional[int] = None
        self.chat_ready = False
        self._stopping = False
        self._labels = frozenset(settings.labels)
        self._ready_labels = frozenset(settings.ready_labels)

        self._handlers: Dict[type, Callable[[Any], Awaitable[None]]] = {
            GatewayReady: self._on_gateway_ready,
            ChatMessage: self._on_chat_message,
            ProcessOutputLine: self._on_output_line,
            ProcessStopped: self._on_process_stopped,
            InstallComplete: self._on_install_complete,
            CommandTimerElapsed: self._on_capture_elapsed,
            ConsoleLine: self._on_console_line,
        }

    # ---- loop ----

    async def run(self) -> None:
        """Process events one at a time until stopped."""
        if self.settings.autostart and self._server is not None:
            await self.start_server()
        while not self._stopping:
            event = await self._bus.get()
            if event is None:
                break
            await self.handle_event(event)
        logger.info("orchestrator stopped")

    def stop(self) -> None:
        self._stopping = True
        self._bus.close()

    async def handle_event(self, event: RelayEvent) -> None:
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.warning("unhandled event %r", event)
            return
        try:
            await handler(event)
        except Exception:
            logger.exception("error handling %s", getattr(event, "kind", type(event).__name__))

    async def close(self) -> None:
        if self.capture.deadline is not None:
            self.capture.deadline.cancel()
        if self.handle is not None and self.handle.is_running():
            self.handle.terminate()
        if self._server is not None:
            await self._server.shutdown()
        if self._installer is not None:
            await self._installer.shutdown()

    # ---- outbound ----

    async def _say(self, text: str) -> None:
        if not self.chat_ready:
            logger.debug("chat not ready, dropping: %s", text[:80])
            return
        try:
            await self._chat.send_text(self.settings.channel_id, text)
        except Exception as e:
            logger.warning("chat send failed: %s", e, extra={"channel_id": self.settings.channel_id})

    async def _update_presence(self) -> None:
        if not self.chat_ready:
            return
        try:
            await self._chat.set_status(f"{len(self.tracker)} Online")
        except Exception as e:
            logger.warning("presence update failed: %s", e)

    async def _write(self, line: str) -> bool:
        if self.handle is None:
            return False
        try:
            await self.handle.write_line(line)
            return True
        except OSError as e:
            logger.error("error writing to server stdin: %s", e, extra={"pid": self.handle.pid})
            return False

    async def start_server(self) -> bool:
        if self._server is None:
            return False
        try:
            self.handle = await self._server.start()
        except (OSError, ValueError) as e:
            logger.error("failed to start server: %s", e)
            self.handle = None
            await self._say(f"Failed to start server: {e}")
            return False
        return True

    # ---- gateway ----

    async def _on_gateway_ready(self, event: GatewayReady) -> None:
        self.bot_user_id = event.bot_user_id
        self.chat_ready = True
        logger.info("chat ready as %s", event.bot_name or event.bot_user_id)
        await self._update_presence()

    async def _on_chat_message(self, event: ChatMessage) -> None:
        if event.author_id == self.bot_user_id:
            return
        if event.channel_id != self.settings.channel_id:
            return

        cmd = parse_message(event.text)
        if cmd.type in OPERATOR_COMMANDS and not self._is_operator(event.author_id):
            await self._say("You are not allowed to use that command")
            return

        if cmd.type == CommandType.HELP:
            await self._say(format_help())
        elif cmd.type == CommandType.ONLINE:
            await self._say(format_online(self.tracker.online_players()))
        elif cmd.type == CommandType.TIME:
            rows = self.tracker.leaderboard()
            await self._say(format_leaderboard(rows) if rows else "No play time recorded")
        elif cmd.type == CommandType.LOGS:
            await self._say(code_block(self.recent.text()) if self.recent else "No recent output")
        elif cmd.type == CommandType.CMD:
            await self._run_operator_command(cmd)
        elif cmd.type == CommandType.START:
            await self._start_command()
        elif cmd.type == CommandType.STOP:
            await self._stop_command()
        elif cmd.type == CommandType.UPDATE:
            await self._update_command()
        elif cmd.type == CommandType.UNKNOWN:
            await self._say(f"Unknown command: {cmd.text}")
        else:
            await self._forward_chat(event)

    def _is_operator(self, user_id: int) -> bool:
        operators = self.settings.operators
        return not operators or user_id in operators

    async def _forward_chat(self, event: ChatMessage) -> None:
        if self.handle is None:
            return
        text = re.sub(r"[\r\n]+", " ", event.clean_text or event.text).strip()
        if not text:
            return
        await self._write(f"{self.settings.say_prefix} {event.author_name}: {text}")

    async def _run_operator_command(self, cmd: ParsedCommand) -> None:
        if not cmd.text:
            await self._say("Usage: !cmd <command>")
            return
        if self.handle is None:
            await self._say("Server is not running")
            return
        if self.capture.active:
            await self._say("Busy: still collecting output from the previous command")
            return
        if not await self._write(cmd.text):
            await self._say("Failed to send command to the server")
            return

        capture_id = self.capture.next_id()
        deadline = self._timer_factory(self.capture.delay_ms, CommandTimerElapsed(capture_id=capture_id))
        self.capture.begin(capture_id, cmd.text, deadline)
        logger.info("capturing output of %r", cmd.text, extra={"capture_id": capture_id})

    async def _start_command(self) -> None:
        if self.handle is not None:
            await self._say("Server is already running")
            return
        if self._installer is not None and self._installer.running:
            await self._say("Update in progress, try again when it finishes")
            return
        if self._server is None:
            await self._say("No server command configured")
            return
        await self._say("Starting server")
        await self.start_server()

    async def _stop_command(self) -> None:
        if self.handle is None:
            await self._say("Server is not running")
            return
        if await self._write(self.settings.stop_command):
            await self._say("Stopping server")

    async def _update_command(self) -> None:
        if self._installer is None or not self._installer.configured:
            await self._say("No update command configured")
        elif self.handle is not None:
            await self._say("Stop the server before updating")
        elif self._installer.running:
            await self._say("Update already in progress")
        elif self._installer.start():
            await self._say("Update started")

    async def _on_install_complete(self, event: InstallComplete) -> None:
        if event.ok:
            await self._say("Update complete")
        else:
            await self._say(f"Update failed: {event.detail}" if event.detail else "Update failed")

    # ---- server output ----

    async def _on_output_line(self, event: ProcessOutputLine) -> None:
        self.recent.append(event.line)
        self.capture.feed(event.line)

        try:
            record = parse_line(event.line)
        except LogParseError as e:
            logger.debug("%s: %s", e.kind.value, event.line, extra={"stream": event.stream})
            return

        if self._is_ready_marker(record):
            await self._say("Server Started")
            return
        if self._labels and record.label not in self._labels:
            return
        await self._on_record(record)

    def _is_ready_marker(self, record: LogRecord) -> bool:
        content = record.content
        if not content.startswith(SERVER_READY_PREFIX) or content.endswith((JOIN_SUFFIX, LEAVE_SUFFIX)):
            return False
        return not self._ready_labels or record.label in self._ready_labels

    async def _on_record(self, record: LogRecord) -> None:
        content = record.content

        if content.endswith(JOIN_SUFFIX):
            name = content[: -len(JOIN_SUFFIX)]
            self.tracker.join(name)
            await self._update_presence()
            await self._say(f"{name} joined the server")
        elif content.endswith(LEAVE_SUFFIX):
            name = content[: -len(LEAVE_SUFFIX)]
            self.tracker.leave(name)
            await self._update_presence()
            await self._say(f"{name} left the server")
        elif content.startswith("<"):
            end = content.find("> ")
            if end == -1:
                logger.info("invalid chat message %s", content, extra={"label": record.label})
                return
            user, msg = content[1:end], content[end + 2:]
            if user == SERVER_CHAT_USER:
                return
            await self._say(f"{user}: {msg}")
        else:
            # e.g. "<player> fell out of the world"
            for player in self.tracker.online_players():
                if content.startswith(player):
                    await self._say(content)
                    break

    async def _on_process_stopped(self, event: ProcessStopped) -> None:
        if self.handle is None or event.pid != self.handle.pid:
            logger.debug("ignoring stop of stale process", extra={"pid": event.pid})
            return
        self.handle = None
        ended = self.tracker.end_all()
        if ended:
            logger.info("closed %d open sessions on server stop", len(ended))
            await self._update_presence()
        await self._say("Server Shutdown")
        if self.settings.exit_on_stop:
            self._stopping = True

    async def _on_capture_elapsed(self, event: CommandTimerElapsed) -> None:
        if event.capture_id != self.capture.capture_id:
            logger.debug("stale capture timer", extra={"capture_id": event.capture_id})
            return
        text = self.capture.finish(event.capture_id)
        await self._say(code_block(text) if text else "No response")

    async def _on_console_line(self, event: ConsoleLine) -> None:
        if self.handle is None:
            logger.info("server not running, console input ignored")
            return
        await self._write(event.line)
