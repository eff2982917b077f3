"""Rules layer for suspect-grid.

    from suspect_grid.rules import ActionResolver, BoardCompactor

Modules:
- core.py: constants, suspect roster, board sizing, uniform shuffle
- geometry.py: IdentityResolver (locate suspects, Moore neighbourhoods)
- compaction.py: BoardCompactor and the two-phase board swap
- actions.py: ActionResolver (select/kill/interrogate/shift/eliminate)
- turns.py: TurnCoordinator (turn rotation, end-of-match rule)
- history.py: bounded action history and modal helpers
- invariants.py: structural checks used by tests and the soak harness
"""

from suspect_grid.rules.actions import ActionResolver
from suspect_grid.rules.compaction import BoardCompactor
from suspect_grid.rules.geometry import IdentityResolver
from suspect_grid.rules.invariants import check_invariants
from suspect_grid.rules.turns import TurnCoordinator

__all__ = [
    "ActionResolver",
    "BoardCompactor",
    "IdentityResolver",
    "TurnCoordinator",
    "check_invariants",
]
