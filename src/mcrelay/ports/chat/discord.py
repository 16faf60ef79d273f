"""
Discord gateway for the relay.

Uses discord.py with a Gateway connection for both inbound and outbound.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Optional

from ...contracts.v1 import ChatMessage, GatewayReady
from ...daemon.bus import EventBus
from .base import summarize

logger = logging.getLogger("mcrelay.discord")

# Discord limits
DISCORD_MAX_MESSAGE_LENGTH = 2000
DEFAULT_MAX_LINES = 64
SEND_TIMEOUT_SECONDS = 10.0


class DiscordGatewayError(RuntimeError):
    pass


class DiscordGateway:
    """
    Discord client running its own event loop in a background thread.

    Inbound gateway events are published onto the relay's EventBus; outbound
    calls are scheduled onto the client's loop and awaited from the caller's.
    Reconnects and backoff are handled by discord.py itself.
    """

    platform = "discord"

    def __init__(self, token: str, bus: EventBus, *, max_lines: int = DEFAULT_MAX_LINES):
        self.token = token
        self.max_lines = max_lines
        self._bus = bus
        self._client: Any = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._ready_event = threading.Event()

    @property
    def connected(self) -> bool:
        return self._ready_event.is_set() and self._loop is not None

    def connect(self) -> None:
        """
        Start the client thread. Gateway readiness arrives later as a
        GatewayReady event.
        """
        import discord

        intents = discord.Intents.default()
        intents.message_content = True
        intents.guild_messages = True
        intents.dm_messages = True
        self._client = discord.Client(intents=intents)

        @self._client.event
        async def on_ready():
            user = self._client.user
            logger.info("connected as %s", user)
            self._ready_event.set()
            self._bus.publish_threadsafe(GatewayReady(bot_user_id=int(user.id), bot_name=str(user.name)))

        @self._client.event
        async def on_message(message):
            self._handle_message(message)

        def run_loop():
            self._loop = asyncio.new_event_loop()
            asyncio.set_event_loop(self._loop)
            try:
                self._loop.run_until_complete(self._client.start(self.token))
            except Exception:
                logger.exception("discord client stopped")
            finally:
                self._loop.close()

        self._thread = threading.Thread(target=run_loop, name="mcrelay-discord", daemon=True)
        self._thread.start()
        logger.info("starting discord integration")

    def _handle_message(self, message: Any) -> None:
        text = message.content or ""
        if not text:
            return
        author = message.author
        self._bus.publish_threadsafe(
            ChatMessage(
                author_id=int(author.id),
                author_name=str(getattr(author, "display_name", None) or author.name or author.id),
                channel_id=int(message.channel.id),
                text=text,
                clean_text=str(getattr(message, "clean_content", "") or text),
            )
        )
        logger.debug("inbound %s", text[:50], extra={"channel_id": message.channel.id})

    async def _call(self, coro: Any) -> Any:
        loop = self._loop
        if not self.connected or loop is None or loop.is_closed():
            coro.close()
            raise DiscordGatewayError("discord is not connected")
        future = asyncio.run_coroutine_threadsafe(coro, loop)
        return await asyncio.wait_for(asyncio.wrap_future(future), timeout=SEND_TIMEOUT_SECONDS)

    async def send_text(self, channel_id: int, text: str) -> None:
        safe_text = self._compose_safe(text)
        if not safe_text:
            return

        async def do_send():
            channel = self._client.get_channel(int(channel_id))
            if channel is None:
                channel = await self._client.fetch_channel(int(channel_id))
            await channel.send(safe_text)

        await self._call(do_send())

    async def set_status(self, text: str) -> None:
        import discord

        await self._call(self._client.change_presence(activity=discord.Game(name=text)))

    def _compose_safe(self, text: str) -> str:
        """Ensure message fits within Discord limits."""
        if text.startswith("```"):
            # Code blocks are pre-sized by the caller; only enforce the hard cap.
            return text[:DISCORD_MAX_MESSAGE_LENGTH]
        return summarize(text, DISCORD_MAX_MESSAGE_LENGTH, self.max_lines)

    def disconnect(self) -> None:
        if self._client is None or self._loop is None or self._loop.is_closed():
            return
        future = asyncio.run_coroutine_threadsafe(self._client.close(), self._loop)
        try:
            future.result(timeout=5)
        except Exception as e:
            logger.warning("discord close failed: %s", e)
        if self._thread is not None:
            self._thread.join(timeout=5)
