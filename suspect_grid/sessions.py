"""Session/lobby registry for the host service.

The registry maps short join codes to sessions and owns the lobby
bookkeeping: host assignment, join order and the hand-off to a
:class:`~suspect_grid.game_engine.GameEngine` when the host starts the match.
Engines never hold a reference back to the registry.
"""

from __future__ import annotations

import logging
import random
import threading
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .errors import (
    GameNotStartedError,
    NotHostError,
    PlayerNotFoundError,
    SessionFullError,
    SessionNotFoundError,
    ValidationError,
)
from .game_engine import GameEngine
from .metrics import ACTIVE_SESSIONS, GAMES_STARTED
from .models import PlayerSeed
from .rules.core import MAX_PLAYERS, MIN_PLAYERS

logger = logging.getLogger(__name__)

CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 5


class SessionPhase(str, Enum):
    LOBBY = "Lobby"
    PLAYING = "Playing"


@dataclass
class SessionMember:
    id: str
    name: str
    is_host: bool = False


@dataclass
class Session:
    code: str
    host_id: str
    members: Dict[str, SessionMember] = field(default_factory=dict)
    join_order: List[str] = field(default_factory=list)
    phase: SessionPhase = SessionPhase.LOBBY
    game: Optional[GameEngine] = None
    # Serialises commands for this session; the engine itself is not
    # thread-safe.
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def require_game(self) -> GameEngine:
        if self.game is None:
            raise GameNotStartedError(
                "The game has not started yet", session_code=self.code
            )
        return self.game

    def lobby_summary(self, player_id: Optional[str] = None) -> dict:
        """Lobby view shared with every member (``you`` for the caller)."""
        players = []
        for member_id in self.join_order:
            member = self.members[member_id]
            engine_player = (
                self.game.state.get_player(member_id) if self.game else None
            )
            players.append(
                {
                    "id": member.id,
                    "name": member.name,
                    "isHost": member.is_host,
                    "isEliminated": bool(engine_player and engine_player.is_eliminated),
                    "trophies": len(engine_player.trophies) if engine_player else 0,
                    "bombs": engine_player.bombs if engine_player else 0,
                    "isIdentityVisible": bool(
                        engine_player and engine_player.is_identity_visible
                    ),
                }
            )
        summary = {
            "session": {
                "code": self.code,
                "players": players,
                "phase": self.phase.value,
                "hostId": self.host_id,
            },
        }
        if player_id is not None:
            summary["you"] = next((p for p in players if p["id"] == player_id), None)
        return summary


def _clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Name must not be empty")
    return cleaned


class SessionRegistry:
    """Process-wide map of session codes to sessions.

    ``rng`` drives join-code generation and seeds a private generator for
    every engine the registry creates, so a seeded registry yields
    reproducible matches.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random()
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, code: str) -> bool:
        return code in self._sessions

    def _generate_code(self) -> str:
        while True:
            code = "".join(self.rng.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
            if code not in self._sessions:
                return code

    def get(self, code: str) -> Session:
        session = self._sessions.get((code or "").strip().upper())
        if session is None:
            raise SessionNotFoundError("Session not found", session_code=code)
        return session

    def create_session(self, name: str) -> tuple[Session, str]:
        """Open a new lobby with the caller as host. Returns (session, player id)."""
        cleaned = _clean_name(name)
        player_id = str(uuid.uuid4())
        with self._lock:
            code = self._generate_code()
            session = Session(code=code, host_id=player_id)
            session.members[player_id] = SessionMember(player_id, cleaned, is_host=True)
            session.join_order.append(player_id)
            self._sessions[code] = session
            ACTIVE_SESSIONS.set(len(self._sessions))
        logger.info("Session %s created by %s", code, player_id)
        return session, player_id

    def join_session(self, code: str, name: str) -> tuple[Session, str]:
        cleaned = _clean_name(name)
        session = self.get(code)
        with session.lock:
            if session.phase != SessionPhase.LOBBY:
                raise ValidationError(
                    "The game in this session has already started",
                    context={"session_code": session.code},
                )
            if len(session.members) >= MAX_PLAYERS:
                raise SessionFullError(
                    "The session has reached the maximum number of players",
                    session_code=session.code,
                )
            player_id = str(uuid.uuid4())
            session.members[player_id] = SessionMember(player_id, cleaned)
            session.join_order.append(player_id)
        logger.info("Player %s joined session %s", player_id, session.code)
        return session, player_id

    def start_game(self, code: str, player_id: str) -> GameEngine:
        """Host-only: deal a new match for everyone in join order."""
        session = self.get(code)
        with session.lock:
            if player_id not in session.members:
                raise PlayerNotFoundError(
                    "You are not part of this session", session_code=session.code
                )
            if session.phase != SessionPhase.LOBBY:
                raise ValidationError(
                    "The game has already started",
                    context={"session_code": session.code},
                )
            if session.host_id != player_id:
                raise NotHostError(
                    "Only the host can start the game", session_code=session.code
                )
            if len(session.members) < MIN_PLAYERS:
                raise ValidationError(
                    f"At least {MIN_PLAYERS} players are needed to start the game",
                    context={"players": len(session.members)},
                )
            seeds = [
                PlayerSeed(id=member_id, name=session.members[member_id].name)
                for member_id in session.join_order
            ]
            # Per-match generator; sessions never share one.
            match_rng = random.Random(self.rng.getrandbits(64))
            session.game = GameEngine(seeds, rng=match_rng)
            session.phase = SessionPhase.PLAYING
        GAMES_STARTED.labels(str(len(seeds))).inc()
        logger.info("Session %s started with %d players", session.code, len(seeds))
        return session.game

    def remove_player(self, code: str, player_id: str, reason: str) -> Optional[Session]:
        """Drop a member (disconnect/leave).

        Eliminates the player in a running match, hands the host role to the
        next member in join order and discards the session once empty.
        Returns the session, or ``None`` if it was discarded.
        """
        session = self.get(code)
        with session.lock:
            if player_id not in session.members:
                raise PlayerNotFoundError(
                    "Player is not part of this session", session_code=session.code
                )
            del session.members[player_id]
            session.join_order = [pid for pid in session.join_order if pid != player_id]

            if session.game is not None:
                session.game.drop_player(player_id, reason)

            if not session.members:
                with self._lock:
                    self._sessions.pop(session.code, None)
                    ACTIVE_SESSIONS.set(len(self._sessions))
                logger.info("Session %s closed", session.code)
                return None

            if session.host_id == player_id and session.join_order:
                session.host_id = session.join_order[0]
                session.members[session.host_id].is_host = True
                logger.info(
                    "Session %s host passed to %s", session.code, session.host_id
                )
        return session
