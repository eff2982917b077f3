"""
Shared pytest fixtures for suspect-grid tests.

Boards built by the factories here use deterministic suspects: the card at
``(row, col)`` on an ``rows x cols`` board holds ``SUSPECTS[row * cols + col]``
(suspect id ``row * cols + col + 1``), so tests can reason about exact ids.
"""

from pathlib import Path
import random
import sys
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import pytest


# =============================================================================
# PROMETHEUS REGISTRY FIX
# =============================================================================
# suspect_grid.metrics registers collectors at import time; re-importing it
# through a different path must not fail test collection.


def _patch_prometheus_registry():
    """Make re-registration of identical metrics a no-op instead of an error."""
    from prometheus_client.registry import CollectorRegistry

    _original_register = CollectorRegistry.register

    def _safe_register(self, collector):
        """Register collector, ignoring duplicates."""
        try:
            return _original_register(self, collector)
        except ValueError as e:
            if "Duplicated timeseries" not in str(e):
                raise

    # Only patch once
    if not getattr(CollectorRegistry, '_patched_for_tests', False):
        CollectorRegistry.register = _safe_register
        CollectorRegistry._patched_for_tests = True


# Apply patch immediately at conftest load time (before test collection)
_patch_prometheus_registry()

# Ensure the repository root is on sys.path so `import suspect_grid` works
# from a plain checkout as well as an editable install.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from suspect_grid.game_engine import GameEngine  # noqa: E402
from suspect_grid.models import Board, BoardCard, GameState, Player  # noqa: E402
from suspect_grid.rules.core import SUSPECTS  # noqa: E402

Cell = Tuple[int, int]


# =============================================================================
# FACTORY FIXTURES
# =============================================================================


@pytest.fixture
def board_factory() -> Callable[..., Board]:
    """Factory for rectangular boards with optional dead cells."""

    def _create_board(
        rows: int = 5,
        cols: Optional[int] = None,
        dead: Iterable[Cell] = (),
    ) -> Board:
        cols = rows if cols is None else cols
        dead_cells = set(dead)
        return [
            [
                BoardCard(
                    suspect=SUSPECTS[r * cols + c],
                    isAlive=(r, c) not in dead_cells,
                    isRevealed=(r, c) in dead_cells,
                )
                for c in range(cols)
            ]
            for r in range(rows)
        ]

    return _create_board


@pytest.fixture
def state_factory(board_factory) -> Callable[..., GameState]:
    """Factory for a Playing state whose players sit on the given cells.

    Player ``i`` (1-based) is ``p{i}`` / ``Player {i}`` and holds the suspect
    at ``identities[i - 1]``.
    """

    def _create_state(
        identities: Sequence[Cell] = ((2, 2), (1, 1), (4, 4)),
        board: Optional[Board] = None,
        current_player_index: int = 0,
        eliminated: Iterable[str] = (),
        trophies: Optional[dict] = None,
        bombs: Optional[dict] = None,
    ) -> GameState:
        board = board if board is not None else board_factory()
        eliminated_ids = set(eliminated)
        trophies = trophies or {}
        bombs = bombs or {}
        players: List[Player] = []
        for index, (row, col) in enumerate(identities, start=1):
            player_id = f"p{index}"
            players.append(
                Player(
                    id=player_id,
                    name=f"Player {index}",
                    secretIdentity=board[row][col].suspect,
                    trophies=list(trophies.get(player_id, [])),
                    bombs=bombs.get(player_id, 0),
                    isEliminated=player_id in eliminated_ids,
                )
            )
        return GameState(
            board=board,
            players=players,
            currentPlayerIndex=current_player_index,
        )

    return _create_state


@pytest.fixture
def engine_factory(state_factory) -> Callable[..., GameEngine]:
    """Factory wrapping a crafted state in an engine with a seeded RNG."""

    def _create_engine(seed: int = 0, state: Optional[GameState] = None, **state_kwargs) -> GameEngine:
        state = state if state is not None else state_factory(**state_kwargs)
        return GameEngine.from_state(state, rng=random.Random(seed))

    return _create_engine


@pytest.fixture
def seeded_engine() -> GameEngine:
    """A freshly dealt 4-player match with a fixed seed."""
    seeds = [{"id": f"p{i}", "name": f"Player {i}"} for i in range(1, 5)]
    return GameEngine(seeds, rng=random.Random(1234))
