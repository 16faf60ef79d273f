"""
Chat command parser for the relay.

Parses commands from channel messages:
- !help
- !online, !time
- !logs
- !cmd <server command>
- !start, !stop, !update
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

COMMAND_PREFIX = "!"


class CommandType(str, Enum):
    HELP = "help"

    # Status
    ONLINE = "online"
    TIME = "time"
    LOGS = "logs"

    # Operator control
    CMD = "cmd"
    START = "start"
    STOP = "stop"
    UPDATE = "update"

    # "!" prefix with an unknown name
    UNKNOWN = "unknown"

    # Not a command - regular message
    MESSAGE = "message"


OPERATOR_COMMANDS = frozenset({CommandType.CMD, CommandType.START, CommandType.STOP, CommandType.UPDATE})


@dataclass
class ParsedCommand:
    """Result of parsing a channel message."""

    type: CommandType
    text: str  # Original text, or the argument text for commands


_COMMANDS = {
    "help": CommandType.HELP,
    "h": CommandType.HELP,
    "online": CommandType.ONLINE,
    "list": CommandType.ONLINE,
    "time": CommandType.TIME,
    "playtime": CommandType.TIME,
    "logs": CommandType.LOGS,
    "log": CommandType.LOGS,
    "cmd": CommandType.CMD,
    "start": CommandType.START,
    "stop": CommandType.STOP,
    "update": CommandType.UPDATE,
}


def parse_message(text: str) -> ParsedCommand:
    """
    Parse a channel message into a command or regular message.

    Examples:
        "!online" -> CommandType.ONLINE
        "!cmd list" -> CommandType.CMD with text="list"
        "!nope" -> CommandType.UNKNOWN with text="!nope"
        "hello world" -> CommandType.MESSAGE
    """
    raw = text or ""
    stripped = raw.strip()
    if not stripped.startswith(COMMAND_PREFIX):
        return ParsedCommand(type=CommandType.MESSAGE, text=raw)

    m = re.match(r"^!(\w+)(?:\s+(.*))?$", stripped, re.DOTALL)
    if not m:
        return ParsedCommand(type=CommandType.UNKNOWN, text=stripped)

    cmd_type = _COMMANDS.get(m.group(1).lower())
    if cmd_type is None:
        return ParsedCommand(type=CommandType.UNKNOWN, text=stripped)
    return ParsedCommand(type=cmd_type, text=(m.group(2) or "").strip())


def format_help() -> str:
    return "\n".join(
        [
            "**mcrelay Commands**",
            "`!help` - lists commands",
            "`!online` - lists online players",
            "`!time` - lists hours played",
            "`!logs` - shows recent server output",
            "`!cmd <command>` - runs a server console command",
            "`!start` / `!stop` - starts or stops the server",
            "`!update` - runs the server update while it is stopped",
        ]
    )


def format_online(players: list[str]) -> str:
    if not players:
        return "No players online"
    return "Online players: " + ", ".join(players)
