from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _Event(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class GatewayReady(_Event):
    kind: Literal["gateway.ready"] = "gateway.ready"
    bot_user_id: int
    bot_name: str = ""


class ChatMessage(_Event):
    kind: Literal["chat.message"] = "chat.message"
    author_id: int
    author_name: str
    channel_id: int
    text: str
    # Mention markup rendered as display names; forwarded into the game.
    clean_text: str = ""


class ProcessOutputLine(_Event):
    kind: Literal["process.output"] = "process.output"
    stream: Literal["stdout", "stderr"] = "stdout"
    line: str


class ProcessStopped(_Event):
    kind: Literal["process.stopped"] = "process.stopped"
    pid: int
    exit_code: Optional[int] = None


class InstallComplete(_Event):
    kind: Literal["install.complete"] = "install.complete"
    ok: bool
    detail: str = ""


class CommandTimerElapsed(_Event):
    kind: Literal["capture.elapsed"] = "capture.elapsed"
    capture_id: int


class ConsoleLine(_Event):
    """A line typed on the relay's own stdin, forwarded to the server."""

    kind: Literal["console.line"] = "console.line"
    line: str


RelayEvent = Annotated[
    Union[
        GatewayReady,
        ChatMessage,
        ProcessOutputLine,
        ProcessStopped,
        InstallComplete,
        CommandTimerElapsed,
        ConsoleLine,
    ],
    Field(discriminator="kind"),
]
