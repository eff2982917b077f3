"""Structural invariant checks for a match state.

Used by the test-suite and the self-play soak harness. Each check returns a
list of human-readable violations; an empty list means the state is sound.
"""

from __future__ import annotations

from collections import Counter
from typing import List

from ..board_manager import BoardManager
from ..models import ActionType, GamePhase, GameState
from .core import ACTION_HISTORY_LIMIT
from .geometry import IdentityResolver


def check_board_shape(state: GameState) -> List[str]:
    if BoardManager.is_rectangular(state.board):
        return []
    widths = [len(row) for row in state.board]
    return [f"board is not rectangular: row widths {widths}"]


def check_identity_exclusivity(state: GameState) -> List[str]:
    ids = Counter(p.secret_identity.id for p in state.active_players())
    return [
        f"identity {suspect_id} held by {count} active players"
        for suspect_id, count in ids.items()
        if count > 1
    ]


def check_identity_cells(state: GameState) -> List[str]:
    """Every active player's identity must be exactly one living card."""
    if state.phase == GamePhase.GAME_OVER:
        return []
    violations: List[str] = []
    for player in state.active_players():
        matches = [
            card
            for row in state.board
            for card in row
            if card.suspect.id == player.secret_identity.id
        ]
        if len(matches) != 1:
            violations.append(
                f"player {player.id} identity appears {len(matches)} times on the board"
            )
        elif not matches[0].is_alive:
            violations.append(f"player {player.id} identity card is dead")
    return violations


def check_turn_pointer(state: GameState) -> List[str]:
    if state.phase == GamePhase.GAME_OVER:
        return []
    current = state.current_player
    if current is None:
        return [f"current player index {state.current_player_index} out of range"]
    if current.is_eliminated:
        return [f"current player {current.id} is eliminated"]
    return []


def check_selection(state: GameState) -> List[str]:
    """Armed targets must match the actor's current neighbourhood."""
    violations: List[str] = []
    if state.active_action is None:
        if state.selectable_positions:
            violations.append("selectable positions present with no armed action")
        return violations

    current = state.current_player
    origin = (
        IdentityResolver.locate(state.board, current.secret_identity.id)
        if current is not None
        else None
    )
    reachable = (
        IdentityResolver.adjacent_positions(
            state.board, origin.row, origin.col, include_self=True
        )
        if origin is not None
        else []
    )
    for pos in state.selectable_positions:
        if pos not in reachable:
            violations.append(f"target {pos.to_key()} is not next to the actor's card")
        if state.active_action != ActionType.KILL:
            continue
        card = BoardManager.get_card(pos, state.board)
        if card is None or not card.is_alive:
            violations.append(f"kill target {pos.to_key()} is not a living card")
        if origin is not None and pos == origin:
            violations.append("kill targets include the actor's own card")
    return violations


def check_history(state: GameState) -> List[str]:
    if len(state.action_history) > ACTION_HISTORY_LIMIT:
        return [f"action history holds {len(state.action_history)} entries"]
    return []


def check_compaction_flag(state: GameState) -> List[str]:
    if state.is_compacting != (state._pending_board is not None):
        return ["isCompacting does not match the pending compaction"]
    return []


INVARIANT_CHECKS = (
    check_board_shape,
    check_identity_exclusivity,
    check_identity_cells,
    check_turn_pointer,
    check_selection,
    check_history,
    check_compaction_flag,
)


def check_invariants(state: GameState) -> List[str]:
    """Run every check and return the combined list of violations."""
    violations: List[str] = []
    for check in INVARIANT_CHECKS:
        violations.extend(check(state))
    return violations
