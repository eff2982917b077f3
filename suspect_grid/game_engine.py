"""Core match engine for suspect-grid.

The :class:`GameEngine` is the single owner of a match's :class:`GameState`.
Hosts deliver one command per call; each call either mutates the state and
returns, or raises a :class:`~suspect_grid.errors.SuspectGridError` and
leaves the state untouched. After every call (and after
:meth:`GameEngine.finalize_compaction`) the host re-reads the full state and
broadcasts it.

The engine performs no I/O and owns no timers. Board compaction is exposed
as a two-step handshake: a kill installs the uncompacted board and parks the
compacted one, and the host calls :meth:`GameEngine.finalize_compaction`
once its own presentation delay has elapsed.

All randomness flows through the ``rng`` passed at construction, so seeding
it makes a match reproducible.
"""

from __future__ import annotations

import logging
import os
import random
import sys
from typing import Any, Iterable, Optional

from .board_manager import BoardManager
from .errors import GameOverError, NotYourTurnError, SeedError
from .models import (
    ActionLogEntry,
    ActionLogType,
    ActionType,
    BoardCard,
    GamePhase,
    GameState,
    Player,
    PlayerSeed,
    Position,
    ShiftAxis,
)
from .rules.actions import ActionResolver
from .rules.compaction import finalize_compaction, pending_board
from .rules.core import (
    MAX_PLAYERS,
    MIN_PLAYERS,
    SUSPECTS,
    get_board_size_for_players,
    shuffled,
)
from .rules.history import record_action
from .rules.turns import TurnCoordinator

logger = logging.getLogger(__name__)

DEBUG_ENGINE = os.environ.get("SUSPECT_GRID_DEBUG_ENGINE") == "1"


def _debug(msg: str) -> None:
    """Write a debug message to stderr when engine debug is enabled."""
    if DEBUG_ENGINE:
        sys.stderr.write(msg)


def _coerce_seeds(players: Iterable[PlayerSeed | dict[str, Any]]) -> list[PlayerSeed]:
    return [p if isinstance(p, PlayerSeed) else PlayerSeed(**p) for p in players]


def _coerce_position(target: Position | dict[str, int] | tuple[int, int]) -> Position:
    if isinstance(target, Position):
        return target
    if isinstance(target, dict):
        return Position(**target)
    row, col = target
    return Position(row=row, col=col)


def create_initial_state(
    players: Iterable[PlayerSeed | dict[str, Any]],
    rng: random.Random,
) -> GameState:
    """Build a fresh match for ``players``.

    The suspect roster is shuffled and the first ``size * size`` suspects are
    laid out on the board in a second shuffle; a third shuffle deals each
    player a distinct secret identity from the cards on the board.
    """
    seeds = _coerce_seeds(players)
    if len(seeds) < MIN_PLAYERS:
        raise SeedError(
            f"At least {MIN_PLAYERS} players are needed to start a game",
            player_count=len(seeds),
        )
    if len(seeds) > MAX_PLAYERS:
        raise SeedError(
            f"At most {MAX_PLAYERS} players can take part in a game",
            player_count=len(seeds),
        )
    if len({seed.id for seed in seeds}) != len(seeds):
        raise SeedError("Player ids must be unique", player_count=len(seeds))

    size = get_board_size_for_players(len(seeds))
    suspects_on_board = shuffled(SUSPECTS, rng)[: size * size]
    board_suspects = shuffled(suspects_on_board, rng)
    identities = shuffled(suspects_on_board, rng)[: len(seeds)]

    board = [
        [
            BoardCard(suspect=suspect)
            for suspect in board_suspects[row * size:(row + 1) * size]
        ]
        for row in range(size)
    ]
    player_state = [
        Player(id=seed.id, name=seed.name, secretIdentity=identities[index])
        for index, seed in enumerate(seeds)
    ]
    return GameState(
        phase=GamePhase.PLAYING,
        board=board,
        players=player_state,
        currentPlayerIndex=0,
    )


class GameEngine:
    """Facade over one match.

    - Enforces turn ownership for every turn-scoped command.
    - Delegates resolution to :class:`ActionResolver` and
      :class:`TurnCoordinator`.
    - Keeps the bounded action history.
    - Exposes the two-phase compaction handshake to the host.
    """

    def __init__(
        self,
        players: Iterable[PlayerSeed | dict[str, Any]],
        rng: Optional[random.Random] = None,
    ):
        self.rng: random.Random = rng if rng is not None else random.Random()
        self.state: GameState = create_initial_state(players, self.rng)
        first = self.state.current_player
        if first is not None:
            record_action(
                self.state,
                ActionLogType.TURN,
                f"The game begins. {first.name} moves first.",
            )
        logger.info(
            "Match created: %d players on a %dx%d board",
            len(self.state.players),
            len(self.state.board),
            len(self.state.board),
        )

    @classmethod
    def from_state(
        cls, state: GameState, rng: Optional[random.Random] = None
    ) -> "GameEngine":
        """Wrap an existing state (tests and tooling) without re-dealing."""
        engine = cls.__new__(cls)
        engine.rng = rng if rng is not None else random.Random()
        engine.state = state
        return engine

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def current_player(self) -> Optional[Player]:
        return self.state.current_player

    @property
    def action_history(self) -> list[ActionLogEntry]:
        return self.state.action_history

    def snapshot(self) -> dict[str, Any]:
        """JSON-ready full state, camelCase keys, without engine internals."""
        return self.state.model_dump(mode="json", by_alias=True)

    def ensure_player_turn(self, player_id: str) -> None:
        if self.state.phase == GamePhase.GAME_OVER:
            raise GameOverError("The game is already over")
        current = self.current_player
        if current is None or current.id != player_id or current.is_eliminated:
            raise NotYourTurnError(
                "It is not your turn",
                player_id=player_id,
                current_player_id=current.id if current else None,
            )

    # ------------------------------------------------------------------
    # Turn-scoped commands
    # ------------------------------------------------------------------

    def select_action(self, player_id: str, action: Optional[ActionType | str]) -> None:
        self.ensure_player_turn(player_id)
        ActionResolver.select_action(self.state, action)
        _debug(f"DEBUG: {player_id} armed {self.state.active_action}\n")

    def kill(self, player_id: str, target: Position | dict[str, int] | tuple[int, int]) -> None:
        self.ensure_player_turn(player_id)
        ActionResolver.kill(self.state, _coerce_position(target), self.rng)

    def interrogate(
        self, player_id: str, target: Position | dict[str, int] | tuple[int, int]
    ) -> None:
        self.ensure_player_turn(player_id)
        ActionResolver.interrogate(self.state, _coerce_position(target), self.rng)

    def shift(
        self,
        player_id: str,
        axis: ShiftAxis | str,
        index: int,
        direction: int,
    ) -> None:
        self.ensure_player_turn(player_id)
        ActionResolver.shift(self.state, axis, index, direction)

    def advance_turn(self, player_id: str) -> None:
        """Acknowledge the pending notification and pass the turn."""
        self.ensure_player_turn(player_id)
        self.state.modal = None
        TurnCoordinator.advance_turn(self.state)

    # ------------------------------------------------------------------
    # Commands without turn ownership
    # ------------------------------------------------------------------

    def toggle_identity(self, caller_id: str, target_id: str) -> None:
        """Flip identity visibility; players may only toggle their own."""
        if caller_id != target_id:
            return
        player = self.state.get_player(target_id)
        if player is None:
            return
        player.is_identity_visible = not player.is_identity_visible

    def drop_player(self, player_id: str, reason: str) -> None:
        """System-initiated elimination, e.g. after a disconnect."""
        was_current = (
            self.current_player is not None and self.current_player.id == player_id
        )
        if not ActionResolver.eliminate_player(self.state, player_id, reason):
            return
        if was_current and self.state.phase == GamePhase.PLAYING:
            TurnCoordinator.advance_turn(self.state)

    def close_modal(self) -> None:
        self.state.modal = None

    # ------------------------------------------------------------------
    # Two-phase compaction
    # ------------------------------------------------------------------

    def has_pending_compaction(self) -> bool:
        return pending_board(self.state) is not None

    def finalize_compaction(self) -> bool:
        """Swap in the pending compacted board; no-op when nothing is pending."""
        applied = finalize_compaction(self.state)
        if applied:
            # Armed targets were computed against the uncompacted coordinates.
            ActionResolver.recompute_selectable(self.state)
            rows, cols = BoardManager.shape(self.state.board)
            logger.debug("Compaction finalized: board is now %dx%d", rows, cols)
        return applied
