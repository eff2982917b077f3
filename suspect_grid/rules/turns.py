"""Turn rotation and end-of-match detection."""

from __future__ import annotations

import logging

from ..models import ActionLogType, GamePhase, GameState
from .history import record_action

logger = logging.getLogger(__name__)


class TurnCoordinator:
    """Advances the active-player pointer and ends the match when due.

    :meth:`check_game_end` is shared with player elimination so that either
    path can finish the match with the same rule: once at most one player is
    left standing, that player (or nobody) wins.
    """

    @staticmethod
    def check_game_end(state: GameState) -> bool:
        """End the match if at most one non-eliminated player remains."""
        active = state.active_players()
        if len(active) > 1:
            return False
        TurnCoordinator.end_game(state, active[0].id if active else None)
        return True

    @staticmethod
    def end_game(state: GameState, winner_id: str | None) -> None:
        if state.phase == GamePhase.GAME_OVER:
            return
        state.phase = GamePhase.GAME_OVER
        state.winner_id = winner_id
        state.active_action = None
        state.selectable_positions = []
        logger.info("Match over, winner=%s", winner_id or "none")

    @staticmethod
    def advance_turn(state: GameState) -> None:
        """Hand the turn to the next non-eliminated player.

        Walks forward from the current index, wrapping around. Coming back to
        the starting index means nobody else can play, which ends the match.
        """
        state.active_action = None
        state.selectable_positions = []
        if state.phase == GamePhase.GAME_OVER:
            return

        players = state.players
        count = len(players)
        if not count:
            return

        start = state.current_player_index
        for step in range(1, count + 1):
            candidate = (start + step) % count
            if players[candidate].is_eliminated:
                continue
            if candidate == start:
                break
            state.current_player_index = candidate
            record_action(
                state,
                ActionLogType.TURN,
                f"Turn passes to {players[candidate].name}.",
            )
            return

        TurnCoordinator.check_game_end(state)
