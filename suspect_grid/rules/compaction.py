"""Board gravity ("compaction") and its two-phase application.

When every column holds at least one dead card, one dead card is pulled out
of each column and the board loses a row. Failing that, the same check runs
across rows and the board loses a column. At most one trim happens per call
and column gravity always wins over row gravity.

Callers compare the returned board with the input by identity: the very same
list object means no compaction applies.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from ..models import Board, BoardCard, GameState

logger = logging.getLogger(__name__)


def _trim_first_dead(line: List[BoardCard]) -> List[BoardCard]:
    for index, card in enumerate(line):
        if not card.is_alive:
            return line[:index] + line[index + 1:]
    return line


class BoardCompactor:
    """Pure gravity computation."""

    @staticmethod
    def compute(board: Board) -> Board:
        """Return the compacted board, or ``board`` itself if nothing applies."""
        rows = len(board)
        if not rows:
            return board
        cols = len(board[0])
        if not cols:
            return board

        columns = [[row[c] for row in board] for c in range(cols)]
        if all(any(not card.is_alive for card in column) for column in columns):
            trimmed_columns = [
                col for col in (_trim_first_dead(column) for column in columns) if col
            ]
            if not trimmed_columns:
                return []
            new_rows = len(trimmed_columns[0])
            if new_rows < rows and all(len(col) == new_rows for col in trimmed_columns):
                return [
                    [col[r] for col in trimmed_columns] for r in range(new_rows)
                ]

        if all(any(not card.is_alive for card in row) for row in board):
            trimmed_rows = [
                row for row in (_trim_first_dead(list(row)) for row in board) if row
            ]
            if not trimmed_rows:
                return []
            new_cols = len(trimmed_rows[0])
            if new_cols < cols and all(len(row) == new_cols for row in trimmed_rows):
                return trimmed_rows

        return board


def apply_board_change(state: GameState, board_after_changes: Board) -> None:
    """Install a post-kill board and schedule its compaction if one applies.

    The uncompacted board becomes visible immediately; the compacted target is
    parked until :func:`finalize_compaction` is called by the host.
    """
    compacted = BoardCompactor.compute(board_after_changes)
    state.board = board_after_changes
    if compacted is not board_after_changes:
        state.is_compacting = True
        state._pending_board = compacted
        logger.debug(
            "Compaction pending: %dx%d -> %dx%d",
            len(board_after_changes),
            len(board_after_changes[0]) if board_after_changes else 0,
            len(compacted),
            len(compacted[0]) if compacted else 0,
        )
    else:
        state.is_compacting = False
        state._pending_board = None


def pending_board(state: GameState) -> Optional[Board]:
    return state._pending_board


def finalize_compaction(state: GameState) -> bool:
    """Swap in the pending compacted board. Returns False if none was pending."""
    pending = state._pending_board
    if pending is None:
        return False
    state.board = pending
    state._pending_board = None
    state.is_compacting = False
    return True
