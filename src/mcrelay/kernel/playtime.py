"""Online sessions and cumulative playtime per player.

Sessions live in memory only. Cumulative totals are persisted as a flat JSON
object (player -> milliseconds) and rewritten after every logout.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import NonNegativeInt, RootModel, ValidationError

from ..util.diaglog import DiagnosticLog
from ..util.fs import atomic_write_json, read_json

logger = logging.getLogger("mcrelay.playtime")

MS_PER_HOUR = 3_600_000


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class PlaytimeStoreError(RuntimeError):
    pass


class PlaytimeSnapshot(RootModel[Dict[str, NonNegativeInt]]):
    pass


@dataclass
class Session:
    player: str
    login_ms: int


class PlaytimeStore:
    def __init__(self, path: Optional[Path], totals: Optional[Dict[str, int]] = None):
        self.path = path
        self.totals: Dict[str, int] = dict(totals or {})

    @classmethod
    def load(cls, path: Optional[Path]) -> "PlaytimeStore":
        """Read the store; a missing file is an empty store.

        A file that exists but is not a JSON object of non-negative integers
        raises PlaytimeStoreError.
        """
        if path is None:
            return cls(None)
        try:
            raw = read_json(path)
            snapshot = PlaytimeSnapshot.model_validate(raw)
        except (OSError, ValueError, ValidationError) as e:
            raise PlaytimeStoreError(f"cannot load playtime state from {path}: {e}") from e
        return cls(path, snapshot.root)

    def save(self) -> bool:
        if self.path is None:
            return True
        try:
            atomic_write_json(self.path, PlaytimeSnapshot(self.totals).model_dump())
            return True
        except OSError as e:
            logger.error("failed to persist playtime to %s: %s", self.path, e)
            return False

    def get(self, player: str) -> int:
        return self.totals.get(player, 0)

    def ensure(self, player: str) -> None:
        self.totals.setdefault(player, 0)

    def add(self, player: str, ms: int) -> int:
        self.totals[player] = self.get(player) + max(0, int(ms))
        return self.totals[player]


class PlaytimeTracker:
    """Offline -> Online (join) -> Offline (leave), per player name.

    A repeated join refreshes the login instant without counting anything.
    A leave with no open session is a no-op.
    """

    def __init__(
        self,
        store: PlaytimeStore,
        *,
        clock: Callable[[], int] = monotonic_ms,
        diagnostics: Optional[DiagnosticLog] = None,
    ):
        self.store = store
        self._clock = clock
        self._diag = diagnostics or DiagnosticLog(None)
        self._sessions: Dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def is_online(self, player: str) -> bool:
        return player in self._sessions

    def online_players(self) -> List[str]:
        return sorted(self._sessions)

    def join(self, player: str) -> None:
        now = self._clock()
        previous = self._sessions.get(player)
        self._sessions[player] = Session(player=player, login_ms=now)
        self.store.ensure(player)
        if previous is not None:
            self._diag.write(f"join {player} at={now} (refresh, previous login at={previous.login_ms})")
        else:
            self._diag.write(f"join {player} at={now}")
        logger.info("player joined", extra={"player": player})

    def leave(self, player: str) -> Optional[int]:
        session = self._sessions.pop(player, None)
        if session is None:
            self._diag.write(f"leave {player} with no session")
            return None
        elapsed = self._credit(session)
        self.store.save()
        logger.info("player left after %d ms", elapsed, extra={"player": player})
        return elapsed

    def end_all(self) -> List[str]:
        """Close every open session, crediting elapsed time; persists once."""
        players = self.online_players()
        if not players:
            return []
        for player in players:
            self._credit(self._sessions.pop(player))
        self.store.save()
        return players

    def _credit(self, session: Session) -> int:
        now = self._clock()
        elapsed = max(0, now - session.login_ms)
        total = self.store.add(session.player, elapsed)
        self._diag.write(
            f"leave {session.player} login={session.login_ms} logout={now} elapsed={elapsed} total={total}"
        )
        return elapsed

    def current_playtime(self, player: str) -> int:
        total = self.store.get(player)
        session = self._sessions.get(player)
        if session is not None:
            total += max(0, self._clock() - session.login_ms)
        return total

    def leaderboard(self) -> List[Tuple[str, int]]:
        """(player, ms) for every known player, largest total first."""
        rows = [(player, self.current_playtime(player)) for player in self.store.totals]
        rows.sort(key=lambda row: row[1])
        rows.reverse()
        return rows


def format_leaderboard(rows: List[Tuple[str, int]]) -> str:
    width = max((len(player) for player, _ in rows), default=0)
    out = ["```Total play time:"]
    for player, ms in rows:
        hours = ms / MS_PER_HOUR
        out.append(f"{player:<{width}} | {hours:<3.2f} hr")
    out.append("```")
    return "\n".join(out)
