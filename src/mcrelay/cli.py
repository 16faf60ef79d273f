from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import __version__
from .daemon.bus import EventBus
from .daemon.orchestrator import Orchestrator
from .kernel.playtime import MS_PER_HOUR, PlaytimeStore, PlaytimeStoreError, PlaytimeTracker
from .ports.chat.discord import DiscordGateway
from .runners.console import ConsoleForwarder
from .runners.installer import Installer
from .runners.process import ServerProcess
from .settings import RelaySettings, SettingsError, load_settings
from .util.diaglog import DiagnosticLog
from .util.obslog import setup_root_json_logging

logger = logging.getLogger("mcrelay.cli")


def _server_command(raw: List[str]) -> Optional[List[str]]:
    cmd = list(raw or [])
    if cmd and cmd[0] == "--":
        cmd = cmd[1:]
    return cmd or None


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "token": args.token,
        "channel_id": args.channel,
        "log_level": args.log_level,
        "state_path": args.state,
        "server_command": _server_command(getattr(args, "server_command", [])),
    }


async def serve(settings: RelaySettings, store: PlaytimeStore) -> None:
    bus = EventBus()
    bus.bind_loop()

    gateway = DiscordGateway(settings.resolved_token(), bus)
    tracker = PlaytimeTracker(store, diagnostics=DiagnosticLog(settings.resolved_diagnostics_path()))
    server = None
    if settings.server_command:
        server = ServerProcess(
            bus,
            settings.server_command,
            cwd=settings.server_cwd,
            framer_bytes=settings.framer_bytes,
        )
    installer = Installer(bus, settings.update_command, cwd=settings.server_cwd)

    orchestrator = Orchestrator(
        settings,
        bus,
        chat=gateway,
        tracker=tracker,
        server=server,
        installer=installer,
    )

    gateway.connect()
    if settings.forward_console:
        ConsoleForwarder(bus).start()

    try:
        await orchestrator.run()
    finally:
        await orchestrator.close()
        await asyncio.to_thread(gateway.disconnect)


def _cmd_run(args: argparse.Namespace) -> int:
    try:
        settings = load_settings(args.config, _overrides(args))
    except SettingsError as e:
        print(f"mcrelay: {e}", file=sys.stderr)
        return 2

    if not settings.resolved_token():
        print(f"mcrelay: no Discord token (set `token` or ${settings.token_env})", file=sys.stderr)
        return 2
    if not settings.channel_id:
        print("mcrelay: no channel id configured", file=sys.stderr)
        return 2

    setup_root_json_logging(component="mcrelay", level=settings.log_level)

    try:
        store = PlaytimeStore.load(settings.resolved_state_path())
    except PlaytimeStoreError as e:
        logger.error("%s", e)
        return 2

    logger.info("mcrelay %s starting, server: %s", __version__, " ".join(settings.server_command) or "(none)")
    try:
        asyncio.run(serve(settings, store))
    except KeyboardInterrupt:
        logger.info("interrupted")
    return 0


def _cmd_playtime(args: argparse.Namespace) -> int:
    try:
        settings = load_settings(args.config, {"state_path": args.state})
        store = PlaytimeStore.load(settings.resolved_state_path())
    except (SettingsError, PlaytimeStoreError) as e:
        print(f"mcrelay: {e}", file=sys.stderr)
        return 2

    rows = PlaytimeTracker(store).leaderboard()
    if not rows:
        print("No play time recorded")
        return 0
    width = max(len(player) for player, _ in rows)
    for player, ms in rows:
        print(f"{player:<{width}}  {ms / MS_PER_HOUR:.2f} hr")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mcrelay", description="Game server console relay for Discord")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="cmd", required=True)

    run = sub.add_parser("run", help="Run the server and the Discord relay in the foreground")
    run.add_argument("--config", type=Path, default=None, help="settings.yaml path")
    run.add_argument("--token", default=None, help="Discord bot token (default: settings / $DISCORD_TOKEN)")
    run.add_argument("--channel", type=int, default=None, help="Discord channel id to relay into")
    run.add_argument("--state", type=Path, default=None, help="playtime JSON path")
    run.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")
    run.add_argument("server_command", nargs=argparse.REMAINDER, help="-- SERVER_COMMAND ARGS...")

    pt = sub.add_parser("playtime", help="Print stored playtime totals")
    pt.add_argument("--config", type=Path, default=None, help="settings.yaml path")
    pt.add_argument("--state", type=Path, default=None, help="playtime JSON path")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.cmd == "run":
        return _cmd_run(args)
    if args.cmd == "playtime":
        return _cmd_playtime(args)
    return 2
