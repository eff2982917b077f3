"""Board-level helpers for the suspect-grid engine.

Every helper here treats a board as a value: callers pass in a board and
receive a new one. Rows are copied and cards replaced rather than mutated, so
a snapshot handed to an observer before a command is never altered by it.
"""
from __future__ import annotations

import hashlib

from .models import Board, BoardCard, GameState, Position

__all__ = ["BoardManager"]


class BoardManager:
    """Helper for board-level operations.

    It is intentionally side-effect-free; callers pass in ``Board`` values
    and receive derived views or new boards.
    """

    @staticmethod
    def clone_board(board: Board) -> Board:
        """Return a board with fresh row lists sharing the (frozen) cards."""
        return [list(row) for row in board]

    @staticmethod
    def shape(board: Board) -> tuple[int, int]:
        """Return ``(rows, cols)``; an empty board is ``(0, 0)``."""
        if not board:
            return 0, 0
        return len(board), len(board[0])

    @staticmethod
    def is_rectangular(board: Board) -> bool:
        """True when every row has the same, non-zero length."""
        if not board:
            return True
        width = len(board[0])
        return width > 0 and all(len(row) == width for row in board)

    @staticmethod
    def is_valid_position(position: Position, board: Board) -> bool:
        rows, cols = BoardManager.shape(board)
        return 0 <= position.row < rows and 0 <= position.col < cols

    @staticmethod
    def get_card(position: Position, board: Board) -> BoardCard | None:
        """Return the card at ``position`` or ``None`` if off the board."""
        if not BoardManager.is_valid_position(position, board):
            return None
        return board[position.row][position.col]

    @staticmethod
    def replace_card(board: Board, position: Position, **changes) -> Board:
        """Return a copy of ``board`` with the card at ``position`` updated.

        ``changes`` are field names of :class:`BoardCard` (``is_alive``,
        ``is_revealed``, ``was_interrogated``).
        """
        new_board = BoardManager.clone_board(board)
        card = new_board[position.row][position.col]
        new_board[position.row][position.col] = card.model_copy(update=changes)
        return new_board

    @staticmethod
    def kill_card(board: Board, position: Position) -> Board:
        """Return a copy of ``board`` with the card at ``position`` dead and revealed."""
        return BoardManager.replace_card(
            board, position, is_alive=False, is_revealed=True
        )

    @staticmethod
    def living_cards(board: Board) -> list[BoardCard]:
        return [card for row in board for card in row if card.is_alive]

    @staticmethod
    def rotate_row(board: Board, index: int, direction: int) -> Board:
        """Cyclically rotate row ``index`` by one.

        ``direction=1`` moves every card one column to the right and wraps the
        last card to the front; ``direction=-1`` is the mirror image.
        """
        new_board = BoardManager.clone_board(board)
        row = new_board[index]
        if not row:
            return new_board
        if direction == 1:
            new_board[index] = [row[-1]] + row[:-1]
        else:
            new_board[index] = row[1:] + [row[0]]
        return new_board

    @staticmethod
    def rotate_column(board: Board, index: int, direction: int) -> Board:
        """Cyclically rotate column ``index`` by one.

        ``direction=1`` moves cards down, wrapping the bottom card to the top.
        """
        new_board = BoardManager.clone_board(board)
        column = [row[index] for row in new_board]
        if not column:
            return new_board
        if direction == 1:
            column = [column[-1]] + column[:-1]
        else:
            column = column[1:] + [column[0]]
        for row_index, card in enumerate(column):
            new_board[row_index][index] = card
        return new_board

    @staticmethod
    def hash_board(board: Board) -> str:
        """
        Canonical hash of a board used by tests and diagnostic tooling to
        detect board changes. Covers suspect placement and every card flag.
        """
        parts = []
        for row in board:
            parts.append(
                "|".join(
                    f"{card.suspect.id}:{int(card.is_alive)}"
                    f"{int(card.is_revealed)}{int(card.was_interrogated)}"
                    for card in row
                )
            )
        return hashlib.sha256("/".join(parts).encode("utf-8")).hexdigest()

    @staticmethod
    def hash_game_state(state: GameState) -> str:
        """Hash of every rules-visible field of a match.

        Generated ids and timestamps are left out so that two matches dealt
        from the same seed hash equally.
        """
        players = ";".join(
            f"{p.id}:{p.secret_identity.id}:"
            f"{','.join(str(t.id) for t in p.trophies)}:{p.bombs}:"
            f"{int(p.is_eliminated)}{int(p.is_identity_visible)}"
            for p in state.players
        )
        selection = ",".join(f"{pos.row}.{pos.col}" for pos in state.selectable_positions)
        modal = f"{state.modal.title}/{state.modal.body}" if state.modal else ""
        history = ";".join(f"{e.type.value}/{e.message}" for e in state.action_history)
        pending = state._pending_board
        payload = "#".join(
            [
                BoardManager.hash_board(state.board),
                BoardManager.hash_board(pending) if pending is not None else "",
                players,
                str(state.current_player_index),
                state.phase.value,
                state.winner_id or "",
                state.active_action.value if state.active_action else "",
                selection,
                str(int(state.is_compacting)),
                modal,
                history,
            ]
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()
