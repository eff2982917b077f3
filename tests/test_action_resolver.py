"""
Action resolution tests: arming, kill, interrogate and shift.

Default layout from ``state_factory`` on a 5x5 board (suspect id is
``row * 5 + col + 1``):

- p1 / Player 1 holds (2, 2) -> suspect 13, and moves first
- p2 / Player 2 holds (1, 1) -> suspect 7
- p3 / Player 3 holds (4, 4) -> suspect 25
"""

import pytest

from suspect_grid.board_manager import BoardManager
from suspect_grid.errors import (
    GameOverError,
    NotYourTurnError,
    RulesViolationError,
)
from suspect_grid.models import ActionLogType, ActionType, GamePhase, Position
from suspect_grid.rules.core import SUSPECTS
from suspect_grid.rules.geometry import IdentityResolver


def _cells(positions):
    return {(p.row, p.col) for p in positions}


def _history_types(engine):
    return [entry.type for entry in engine.action_history]


# =============================================================================
# Arming
# =============================================================================


def test_arming_kill_targets_living_neighbours_only(board_factory, engine_factory):
    engine = engine_factory(board=board_factory(dead=[(1, 2)]))
    engine.select_action("p1", ActionType.KILL)

    assert engine.state.active_action == ActionType.KILL
    assert _cells(engine.state.selectable_positions) == {
        (1, 1), (1, 3), (2, 1), (2, 3), (3, 1), (3, 2), (3, 3),
    }


def test_arming_interrogate_includes_self_and_dead_neighbours(board_factory, engine_factory):
    engine = engine_factory(board=board_factory(dead=[(1, 2)]))
    engine.select_action("p1", "interrogate")

    assert engine.state.active_action == ActionType.INTERROGATE
    assert len(engine.state.selectable_positions) == 9
    assert (2, 2) in _cells(engine.state.selectable_positions)
    assert (1, 2) in _cells(engine.state.selectable_positions)


def test_arming_same_action_twice_disarms(engine_factory):
    engine = engine_factory()
    engine.select_action("p1", ActionType.KILL)
    engine.select_action("p1", ActionType.KILL)

    assert engine.state.active_action is None
    assert engine.state.selectable_positions == []


def test_switching_armed_action_recomputes_targets(engine_factory):
    engine = engine_factory()
    engine.select_action("p1", ActionType.KILL)
    engine.select_action("p1", ActionType.INTERROGATE)

    assert engine.state.active_action == ActionType.INTERROGATE
    assert len(engine.state.selectable_positions) == 9


def test_unknown_action_is_rejected(engine_factory):
    engine = engine_factory()
    with pytest.raises(RulesViolationError) as exc_info:
        engine.select_action("p1", "poison")
    assert exc_info.value.rule_ref == "action-kind"
    assert engine.state.active_action is None


def test_arming_out_of_turn_is_rejected(engine_factory):
    engine = engine_factory()
    with pytest.raises(NotYourTurnError) as exc_info:
        engine.select_action("p2", ActionType.KILL)
    assert exc_info.value.context["current_player_id"] == "p1"
    assert engine.state.active_action is None


# =============================================================================
# Kill: civilians and bombs
# =============================================================================


def test_scenario_civilian_kill_costs_a_bomb(engine_factory):
    engine = engine_factory()
    engine.select_action("p1", ActionType.KILL)
    engine.kill("p1", {"row": 1, "col": 2})

    state = engine.state
    p1 = state.get_player("p1")
    assert p1.bombs == 1
    assert state.current_player_index == 1
    assert ActionLogType.CIVILIAN in _history_types(engine)
    assert state.board[1][2].is_alive is False
    assert state.board[1][2].is_revealed is True
    assert state.active_action is None
    assert state.selectable_positions == []
    assert state.modal is not None
    assert state.is_compacting is False


def test_scenario_third_bomb_eliminates_attacker(engine_factory):
    engine = engine_factory()

    for col in (1, 2, 3):
        engine.select_action("p1", ActionType.KILL)
        # Row 3 below p1 holds only civilians.
        engine.kill("p1", (3, col))
        if col != 3:
            engine.advance_turn("p2")
            engine.advance_turn("p3")

    state = engine.state
    p1 = state.get_player("p1")
    assert p1.bombs == 3
    assert p1.is_eliminated is True
    assert len(state.active_players()) == 2
    assert state.phase == GamePhase.PLAYING
    assert engine.current_player.id == "p2"
    # The eliminated player's identity card dies with them.
    assert state.board[2][2].is_alive is False
    assert ActionLogType.ELIMINATION in _history_types(engine)


def test_third_bomb_with_only_two_players_ends_game(state_factory, engine_factory):
    state = state_factory(identities=((2, 2), (0, 0)), bombs={"p1": 2})
    engine = engine_factory(state=state)
    engine.select_action("p1", ActionType.KILL)
    engine.kill("p1", (3, 3))

    assert engine.state.phase == GamePhase.GAME_OVER
    assert engine.state.winner_id == "p2"


# =============================================================================
# Kill: spy hits
# =============================================================================


def test_spy_hit_awards_trophy_and_reassigns_identity(engine_factory):
    engine = engine_factory(seed=5)
    engine.select_action("p1", ActionType.KILL)
    engine.kill("p1", (1, 1))

    state = engine.state
    p1, p2, p3 = state.players
    assert [t.id for t in p1.trophies] == [7]
    assert state.board[1][1].is_alive is False

    new_id = p2.secret_identity.id
    assert new_id not in (7, p1.secret_identity.id, p3.secret_identity.id)
    position = IdentityResolver.locate(state.board, new_id)
    assert state.board[position.row][position.col].is_alive
    assert p2.is_identity_visible is False
    assert p2.is_eliminated is False
    assert state.current_player_index == 1
    assert ActionLogType.KILL in _history_types(engine)


def test_spy_hit_hides_reassigned_identity(state_factory, engine_factory):
    state = state_factory()
    state.players[1].is_identity_visible = True
    engine = engine_factory(state=state)
    engine.select_action("p1", ActionType.KILL)
    engine.kill("p1", (1, 1))
    assert engine.state.players[1].is_identity_visible is False


def test_scenario_spy_hit_without_free_identity_eliminates_victim(
    board_factory, state_factory, engine_factory
):
    # 2x2 board: p1 (0,0), p2 (0,1), p3 (1,0); the only other card is dead.
    board = board_factory(2, dead=[(1, 1)])
    state = state_factory(identities=((0, 0), (0, 1), (1, 0)), board=board)
    engine = engine_factory(state=state)

    engine.select_action("p1", ActionType.KILL)
    assert _cells(engine.state.selectable_positions) == {(0, 1), (1, 0)}
    engine.kill("p1", (0, 1))

    state = engine.state
    p2 = state.get_player("p2")
    assert p2.is_eliminated is True
    assert p2.secret_identity.id == 2
    assert [t.id for t in state.get_player("p1").trophies] == [2]
    assert state.phase == GamePhase.PLAYING
    # Turn skips the eliminated p2.
    assert engine.current_player.id == "p3"


def test_third_trophy_wins_immediately(state_factory, engine_factory):
    state = state_factory(
        trophies={"p1": [SUSPECTS[40], SUSPECTS[41]]},
        bombs={"p1": 2},
    )
    engine = engine_factory(state=state)
    engine.select_action("p1", ActionType.KILL)
    engine.kill("p1", (1, 1))

    state = engine.state
    assert state.phase == GamePhase.GAME_OVER
    assert state.winner_id == "p1"
    assert len(state.get_player("p1").trophies) == 3
    # No identity transfer and no turn advance on a win.
    assert state.get_player("p2").secret_identity.id == 7
    assert state.current_player_index == 0
    assert state.modal.title == "Victory!"

    with pytest.raises(GameOverError):
        engine.select_action("p1", ActionType.KILL)


# =============================================================================
# Kill: rejected commands leave the state untouched
# =============================================================================


def test_kill_without_arming_is_rejected(engine_factory):
    engine = engine_factory()
    before = engine.state.model_dump()

    with pytest.raises(RulesViolationError) as exc_info:
        engine.kill("p1", (1, 2))

    assert exc_info.value.rule_ref == "kill-armed"
    assert engine.state.model_dump() == before


@pytest.mark.parametrize("target", [(2, 2), (0, 0), (4, 4), (9, 9)])
def test_kill_outside_selection_is_rejected(engine_factory, target):
    engine = engine_factory()
    engine.select_action("p1", ActionType.KILL)
    before = engine.state.model_dump()
    history_before = len(engine.action_history)

    with pytest.raises(RulesViolationError) as exc_info:
        engine.kill("p1", target)

    assert exc_info.value.rule_ref == "kill-target"
    assert engine.state.model_dump() == before
    assert len(engine.action_history) == history_before
    assert engine.state.active_action == ActionType.KILL


def test_kill_dead_neighbour_is_rejected(board_factory, engine_factory):
    engine = engine_factory(board=board_factory(dead=[(3, 3)]))
    engine.select_action("p1", ActionType.KILL)
    with pytest.raises(RulesViolationError):
        engine.kill("p1", (3, 3))


def test_kill_with_interrogate_armed_is_rejected(engine_factory):
    engine = engine_factory()
    engine.select_action("p1", ActionType.INTERROGATE)
    with pytest.raises(RulesViolationError) as exc_info:
        engine.kill("p1", (1, 2))
    assert exc_info.value.rule_ref == "kill-armed"


# =============================================================================
# Interrogate
# =============================================================================


def test_interrogate_lists_neighbouring_players(engine_factory):
    engine = engine_factory()
    engine.select_action("p1", ActionType.INTERROGATE)
    engine.interrogate("p1", (1, 2))

    state = engine.state
    body = state.modal.body
    assert state.modal.title == "Interrogation results"
    assert "Player 1" in body
    assert "Player 2" in body
    assert "Player 3" not in body
    assert state.board[1][2].was_interrogated is True
    assert state.board[1][2].is_alive is True
    assert state.current_player_index == 1
    assert ActionLogType.INTERROGATE in _history_types(engine)


def test_interrogate_includes_player_on_target_cell(engine_factory):
    engine = engine_factory()
    engine.select_action("p1", ActionType.INTERROGATE)
    engine.interrogate("p1", (3, 3))

    body = engine.state.modal.body
    assert "Player 1" in body
    assert "Player 3" in body
    assert "Player 2" not in body


def test_interrogate_own_cell(engine_factory):
    engine = engine_factory()
    engine.select_action("p1", ActionType.INTERROGATE)
    engine.interrogate("p1", (2, 2))

    body = engine.state.modal.body
    assert "Player 1" in body
    assert "Player 2" in body
    assert engine.state.board[2][2].was_interrogated is True


def test_interrogate_corner_away_from_other_players(state_factory, engine_factory):
    state = state_factory(identities=((1, 1), (4, 4), (4, 0)))
    engine = engine_factory(state=state)
    engine.select_action("p1", ActionType.INTERROGATE)
    engine.interrogate("p1", (0, 0))
    assert "Player 1" in engine.state.modal.body
    assert "Player 2" not in engine.state.modal.body


def test_interrogate_ignores_eliminated_players(state_factory, engine_factory):
    state = state_factory(
        identities=((2, 2), (1, 1), (4, 4), (1, 2)), eliminated=["p4"]
    )
    engine = engine_factory(state=state)
    engine.select_action("p1", ActionType.INTERROGATE)
    engine.interrogate("p1", (1, 2))
    assert "Player 4" not in engine.state.modal.body


def test_interrogate_without_arming_is_rejected(engine_factory):
    engine = engine_factory()
    before = BoardManager.hash_board(engine.state.board)
    with pytest.raises(RulesViolationError) as exc_info:
        engine.interrogate("p1", (1, 2))
    assert exc_info.value.rule_ref == "interrogate-armed"
    assert BoardManager.hash_board(engine.state.board) == before


def test_interrogate_outside_selection_is_rejected(engine_factory):
    engine = engine_factory()
    engine.select_action("p1", ActionType.INTERROGATE)
    with pytest.raises(RulesViolationError) as exc_info:
        engine.interrogate("p1", (0, 0))
    assert exc_info.value.rule_ref == "interrogate-target"
    assert engine.state.modal is None


# =============================================================================
# Shift
# =============================================================================


def test_scenario_shift_row_right_wraps(engine_factory):
    engine = engine_factory()
    engine.shift("p1", "row", 0, 1)

    assert [card.suspect.id for card in engine.state.board[0]] == [5, 1, 2, 3, 4]
    assert engine.state.current_player_index == 1
    assert engine.action_history[1].type == ActionLogType.SHIFT
    assert engine.action_history[1].message == "Player 1 shifts row 1 right."


def test_shift_row_left_wraps(engine_factory):
    engine = engine_factory()
    engine.shift("p1", "row", 4, -1)
    assert [card.suspect.id for card in engine.state.board[4]] == [22, 23, 24, 25, 21]


def test_shift_column_down_and_up(engine_factory):
    engine = engine_factory()
    engine.shift("p1", "col", 0, 1)
    assert [row[0].suspect.id for row in engine.state.board] == [21, 1, 6, 11, 16]

    engine.shift("p2", "col", 0, -1)
    assert [row[0].suspect.id for row in engine.state.board] == [1, 6, 11, 16, 21]
    assert "column 1 up" in engine.action_history[1].message


def test_shift_moves_identity_cards(engine_factory):
    engine = engine_factory()
    engine.shift("p1", "row", 2, 1)
    assert IdentityResolver.locate(engine.state.board, 13) == Position(row=2, col=3)


def test_scenario_shift_while_armed_leaves_board_unchanged(engine_factory):
    engine = engine_factory()
    engine.select_action("p1", ActionType.KILL)
    board_before = BoardManager.hash_board(engine.state.board)

    with pytest.raises(RulesViolationError) as exc_info:
        engine.shift("p1", "row", 0, 1)

    assert exc_info.value.rule_ref == "shift-blocked"
    assert BoardManager.hash_board(engine.state.board) == board_before
    assert engine.state.current_player_index == 0


def test_shift_while_compacting_is_rejected(state_factory, engine_factory):
    state = state_factory()
    state.is_compacting = True
    engine = engine_factory(state=state)
    with pytest.raises(RulesViolationError) as exc_info:
        engine.shift("p1", "col", 0, 1)
    assert exc_info.value.rule_ref == "shift-blocked"


@pytest.mark.parametrize(
    "axis, index, direction, rule_ref",
    [
        ("row", 5, 1, "shift-index"),
        ("col", -1, 1, "shift-index"),
        ("row", 0, 0, "shift-direction"),
        ("row", 0, 2, "shift-direction"),
        ("diagonal", 0, 1, "shift-axis"),
    ],
)
def test_invalid_shift_is_rejected(engine_factory, axis, index, direction, rule_ref):
    engine = engine_factory()
    before = engine.state.model_dump()

    with pytest.raises(RulesViolationError) as exc_info:
        engine.shift("p1", axis, index, direction)

    assert exc_info.value.rule_ref == rule_ref
    assert engine.state.model_dump() == before

