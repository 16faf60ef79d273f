from __future__ import annotations

from .event import (
    ChatMessage,
    CommandTimerElapsed,
    ConsoleLine,
    GatewayReady,
    InstallComplete,
    ProcessOutputLine,
    ProcessStopped,
    RelayEvent,
)

__all__ = [
    "ChatMessage",
    "CommandTimerElapsed",
    "ConsoleLine",
    "GatewayReady",
    "InstallComplete",
    "ProcessOutputLine",
    "ProcessStopped",
    "RelayEvent",
]
