"""Per-turn action state machine and its resolution rules.

A turn moves through ``NoAction -> Armed(kind) -> resolved``: the current
player arms ``kill`` or ``interrogate`` (arming the same kind again disarms
it), then picks one of the highlighted cells. ``shift`` needs no arming and
is only legal while nothing is armed and no compaction is pending.

Each resolver validates everything it needs before touching the state, so a
rejected command leaves the match exactly as it was.
"""

from __future__ import annotations

import logging
import random
from typing import Optional

from ..board_manager import BoardManager
from ..errors import InvalidStateError, RulesViolationError
from ..models import (
    ActionLogType,
    ActionType,
    GamePhase,
    GameState,
    Player,
    Position,
    ShiftAxis,
    Suspect,
)
from .compaction import apply_board_change
from .core import LOSE_CONDITION_BOMBS, WIN_CONDITION_TROPHIES, shuffled
from .geometry import IdentityResolver
from .history import create_modal, record_action
from .turns import TurnCoordinator

logger = logging.getLogger(__name__)


def _player_holding(state: GameState, suspect_id: int) -> Optional[Player]:
    for player in state.players:
        if not player.is_eliminated and player.secret_identity.id == suspect_id:
            return player
    return None


class ActionResolver:
    """Resolves the turn-scoped commands against a :class:`GameState`.

    Turn ownership is checked by the engine facade before any of these run.
    """

    # ------------------------------------------------------------------
    # Arming
    # ------------------------------------------------------------------

    @staticmethod
    def select_action(state: GameState, action: Optional[ActionType]) -> None:
        """Arm ``action`` for the current player, or disarm it if already armed."""
        if action is not None:
            try:
                action = ActionType(action)
            except ValueError as exc:
                raise RulesViolationError(
                    f"Unknown action: {action}", rule_ref="action-kind"
                ) from exc
        state.active_action = None if state.active_action == action else action
        ActionResolver.recompute_selectable(state)

    @staticmethod
    def recompute_selectable(state: GameState) -> None:
        """Derive the legal targets of the armed action from the actor's own cell.

        interrogate: the actor's cell plus all 8 neighbours, dead or alive.
        kill: living neighbours only, never the actor's own cell.
        """
        current = state.current_player
        action = state.active_action
        if current is None or action is None:
            state.selectable_positions = []
            return

        origin = IdentityResolver.locate(state.board, current.secret_identity.id)
        if origin is None:
            state.selectable_positions = []
            return

        if action == ActionType.INTERROGATE:
            state.selectable_positions = IdentityResolver.adjacent_positions(
                state.board, origin.row, origin.col, include_self=True
            )
        else:
            state.selectable_positions = [
                pos
                for pos in IdentityResolver.adjacent_positions(
                    state.board, origin.row, origin.col
                )
                if state.board[pos.row][pos.col].is_alive
            ]

    @staticmethod
    def _require_target(
        state: GameState, action: ActionType, target: Position, label: str
    ) -> None:
        if state.active_action != action:
            raise RulesViolationError(
                f'The "{label}" action is not armed',
                rule_ref=f"{action.value}-armed",
            )
        if target not in state.selectable_positions:
            raise RulesViolationError(
                f"This card cannot be targeted by {label}",
                rule_ref=f"{action.value}-target",
                context={"row": target.row, "col": target.col},
            )
        if BoardManager.get_card(target, state.board) is None:
            raise InvalidStateError(
                "Selectable position lies outside the board",
                context={"row": target.row, "col": target.col},
            )

    # ------------------------------------------------------------------
    # Kill
    # ------------------------------------------------------------------

    @staticmethod
    def kill(state: GameState, target: Position, rng: random.Random) -> None:
        """Attack the card at ``target``.

        Hitting another player's identity earns a trophy (three wins the
        match); hitting anyone else is a civilian casualty and costs a bomb
        (three eliminate the attacker).
        """
        ActionResolver._require_target(state, ActionType.KILL, target, "Kill")
        current = state.current_player
        if current is None:
            return

        card = state.board[target.row][target.col]
        victim = _player_holding(state, card.suspect.id)

        state.active_action = None
        state.selectable_positions = []

        if victim is not None:
            ActionResolver._resolve_spy_hit(state, current, victim, target, rng)
        else:
            ActionResolver._resolve_civilian_hit(state, current, target)

    @staticmethod
    def _resolve_spy_hit(
        state: GameState,
        attacker: Player,
        victim: Player,
        target: Position,
        rng: random.Random,
    ) -> None:
        attacker.trophies = [*attacker.trophies, victim.secret_identity]
        apply_board_change(state, BoardManager.kill_card(state.board, target))
        logger.info(
            "%s exposed %s (%d trophies)",
            attacker.id, victim.id, len(attacker.trophies),
        )

        if len(attacker.trophies) >= WIN_CONDITION_TROPHIES:
            TurnCoordinator.end_game(state, attacker.id)
            state.modal = create_modal(
                "Victory!",
                f"{attacker.name} has collected enough trophies.",
            )
            record_action(
                state,
                ActionLogType.KILL,
                f"{attacker.name} took out {victim.name} and won the game.",
            )
            return

        new_identity = ActionResolver.transfer_identity(state, victim, rng)
        if new_identity is not None:
            state.modal = create_modal(
                "Identity exposed",
                f"{victim.name} was exposed by {attacker.name} "
                f"and received a new identity.",
            )
            record_action(
                state,
                ActionLogType.KILL,
                f"{attacker.name} exposes {victim.name}, who takes a new identity.",
            )
        else:
            ActionResolver.eliminate_player(
                state, victim.id, "no free identities left on the board"
            )
            record_action(
                state,
                ActionLogType.KILL,
                f"{attacker.name} takes out {victim.name}.",
            )
        TurnCoordinator.advance_turn(state)

    @staticmethod
    def _resolve_civilian_hit(
        state: GameState, attacker: Player, target: Position
    ) -> None:
        apply_board_change(state, BoardManager.kill_card(state.board, target))
        attacker.bombs += 1
        logger.info("%s hit a civilian (%d bombs)", attacker.id, attacker.bombs)

        if attacker.bombs >= LOSE_CONDITION_BOMBS:
            ActionResolver.eliminate_player(
                state, attacker.id, f"collected {LOSE_CONDITION_BOMBS} bombs"
            )
            if state.phase != GamePhase.GAME_OVER:
                state.modal = create_modal(
                    "Fatal mistake",
                    f"{attacker.name} killed a civilian and is out of the game "
                    f"after {LOSE_CONDITION_BOMBS} bombs.",
                )
                record_action(
                    state,
                    ActionLogType.CIVILIAN,
                    f"{attacker.name} kills a civilian and is out of the game.",
                )
                TurnCoordinator.advance_turn(state)
            return

        state.modal = create_modal(
            "Civilian casualty",
            f"{attacker.name} killed a civilian and received a bomb "
            f"({attacker.bombs}/{LOSE_CONDITION_BOMBS}).",
        )
        record_action(
            state,
            ActionLogType.CIVILIAN,
            f"{attacker.name} kills a civilian and receives a bomb "
            f"({attacker.bombs}/{LOSE_CONDITION_BOMBS}).",
        )
        TurnCoordinator.advance_turn(state)

    @staticmethod
    def transfer_identity(
        state: GameState, victim: Player, rng: random.Random
    ) -> Optional[Suspect]:
        """Give ``victim`` a random unclaimed living identity.

        Returns ``None`` (leaving the victim untouched) when every living card
        is already somebody's identity.
        """
        claimed = {
            p.secret_identity.id for p in state.players if not p.is_eliminated
        }
        candidates = [
            card.suspect
            for card in BoardManager.living_cards(state.board)
            if card.suspect.id not in claimed
        ]
        if not candidates:
            return None

        new_identity = shuffled(candidates, rng)[0]
        victim.secret_identity = new_identity
        victim.is_identity_visible = False
        return new_identity

    # ------------------------------------------------------------------
    # Interrogate
    # ------------------------------------------------------------------

    @staticmethod
    def interrogate(state: GameState, target: Position, rng: random.Random) -> None:
        """Ask the card at ``target`` who is around.

        Every player whose identity sits next to the target answers, as does
        the player whose identity is the target. The names come back in random
        order so the true match cannot be told apart from the neighbours.
        """
        ActionResolver._require_target(
            state, ActionType.INTERROGATE, target, "Interrogate"
        )
        board = state.board
        card = board[target.row][target.col]
        ActionResolver._mark_interrogated(state, target, card.suspect.id)

        neighbour_ids = {
            board[pos.row][pos.col].suspect.id
            for pos in IdentityResolver.adjacent_positions(board, target.row, target.col)
        }
        responders = {
            p.id: p.name
            for p in state.players
            if not p.is_eliminated and p.secret_identity.id in neighbour_ids
        }
        target_player = _player_holding(state, card.suspect.id)
        if target_player is not None:
            responders[target_player.id] = target_player.name

        names = shuffled(list(responders.values()), rng)
        if names:
            content = f"Asked about {card.suspect.name}, these answered: {', '.join(names)}."
        else:
            content = f"Nobody answered when asked about {card.suspect.name}."

        actor = state.current_player
        state.modal = create_modal("Interrogation results", content)
        record_action(
            state,
            ActionLogType.INTERROGATE,
            f"{actor.name if actor else 'A player'} interrogates "
            f"{card.suspect.name}. {content}",
        )
        state.active_action = None
        state.selectable_positions = []
        TurnCoordinator.advance_turn(state)

    @staticmethod
    def _mark_interrogated(state: GameState, target: Position, suspect_id: int) -> None:
        state.board = BoardManager.replace_card(
            state.board, target, was_interrogated=True
        )
        # Keep the marker when a pending compaction is swapped in later.
        pending = state._pending_board
        if pending is not None:
            position = IdentityResolver.locate(pending, suspect_id)
            if position is not None:
                state._pending_board = BoardManager.replace_card(
                    pending, position, was_interrogated=True
                )

    # ------------------------------------------------------------------
    # Shift
    # ------------------------------------------------------------------

    @staticmethod
    def validate_shift(
        state: GameState, axis: ShiftAxis, index: int, direction: int
    ) -> None:
        if state.active_action is not None or state.is_compacting:
            raise RulesViolationError(
                "A row or column cannot be shifted right now",
                rule_ref="shift-blocked",
            )
        if direction not in (1, -1):
            raise RulesViolationError(
                "Shift direction must be 1 or -1",
                rule_ref="shift-direction",
                context={"direction": direction},
            )
        rows, cols = BoardManager.shape(state.board)
        if axis == ShiftAxis.ROW and not 0 <= index < rows:
            raise RulesViolationError(
                "Invalid row index",
                rule_ref="shift-index",
                context={"index": index, "rows": rows},
            )
        if axis == ShiftAxis.COL and not 0 <= index < cols:
            raise RulesViolationError(
                "Invalid column index",
                rule_ref="shift-index",
                context={"index": index, "cols": cols},
            )

    @staticmethod
    def shift(state: GameState, axis: ShiftAxis, index: int, direction: int) -> None:
        """Cyclically rotate one row or column by a single step."""
        try:
            axis = ShiftAxis(axis)
        except ValueError as exc:
            raise RulesViolationError(
                f"Unknown shift axis: {axis}", rule_ref="shift-axis"
            ) from exc
        ActionResolver.validate_shift(state, axis, index, direction)

        if axis == ShiftAxis.ROW:
            state.board = BoardManager.rotate_row(state.board, index, direction)
            label = "row"
            heading = "right" if direction == 1 else "left"
        else:
            state.board = BoardManager.rotate_column(state.board, index, direction)
            label = "column"
            heading = "down" if direction == 1 else "up"

        actor = state.current_player
        record_action(
            state,
            ActionLogType.SHIFT,
            f"{actor.name if actor else 'A player'} shifts {label} "
            f"{index + 1} {heading}.",
        )
        TurnCoordinator.advance_turn(state)

    # ------------------------------------------------------------------
    # Elimination
    # ------------------------------------------------------------------

    @staticmethod
    def eliminate_player(state: GameState, player_id: str, reason: str) -> bool:
        """Remove a player from play. Returns False if nothing changed.

        The player's identity card, if still alive, dies and is revealed.
        """
        player = state.get_player(player_id)
        if player is None or player.is_eliminated:
            return False
        player.is_eliminated = True

        position = IdentityResolver.locate(state.board, player.secret_identity.id)
        if position is not None and state.board[position.row][position.col].is_alive:
            apply_board_change(state, BoardManager.kill_card(state.board, position))
            # An armed selection may point at the card that just died.
            ActionResolver.recompute_selectable(state)

        TurnCoordinator.check_game_end(state)

        state.modal = create_modal(
            "Player eliminated", f"{player.name} leaves the game: {reason}."
        )
        record_action(
            state, ActionLogType.ELIMINATION, f"{player.name} is out: {reason}."
        )
        logger.info("Player %s eliminated: %s", player.id, reason)
        return True
