"""Identity lookup and adjacency queries over a board."""

from __future__ import annotations

from typing import List, Optional

from ..models import Board, Position


class IdentityResolver:
    """Pure queries locating suspects and neighbouring cells."""

    @staticmethod
    def locate(board: Board, suspect_id: int) -> Optional[Position]:
        """Return the position of the card holding ``suspect_id``, if any."""
        for r, row in enumerate(board):
            for c, card in enumerate(row):
                if card.suspect.id == suspect_id:
                    return Position(row=r, col=c)
        return None

    @staticmethod
    def adjacent_positions(
        board: Board, row: int, col: int, include_self: bool = False
    ) -> List[Position]:
        """Moore neighbourhood of ``(row, col)`` clipped to the board.

        Positions are returned in row-major order; the origin is included
        only when ``include_self`` is set.
        """
        positions: List[Position] = []
        rows = len(board)
        if not rows:
            return positions
        cols = len(board[0])

        for dr in (-1, 0, 1):
            for dc in (-1, 0, 1):
                if not include_self and dr == 0 and dc == 0:
                    continue
                nr = row + dr
                nc = col + dc
                if 0 <= nr < rows and 0 <= nc < cols:
                    positions.append(Position(row=nr, col=nc))
        return positions
