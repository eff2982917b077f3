"""Shared rule constants and helpers for the suspect-grid engine."""

from __future__ import annotations

import random
from typing import List, Sequence, TypeVar

from ..models import Suspect

T = TypeVar("T")

WIN_CONDITION_TROPHIES = 3
LOSE_CONDITION_BOMBS = 3
MIN_PLAYERS = 3
MAX_PLAYERS = 8
ACTION_HISTORY_LIMIT = 25

_SUSPECT_NAMES = (
    "Eliza", "Barrin", "Clive", "Deirdre", "Ernest",
    "Franklin", "Geneva", "Horatio", "Irma", "Julian",
    "Christoph", "Linus", "Marion", "Neil", "Ophelia",
    "Phoebe", "Quinton", "Ryan", "Simon", "Trevor",
    "Ulysses", "Vladimir", "Wilhelm", "Yvonne", "Zachary",
    "Branson", "Cartwright", "Darnell", "Evelyn", "Pedro",
    "Ramon", "Suzanne", "Tasha", "Ulbrecht", "Vincent",
    "Wanda", "Isolde", "Grace", "Hubert", "Ivan",
    "Jack", "Katherine", "Lynette", "Marcus", "Nathan",
    "Kassim", "Florence", "Vance", "Walter", "Xavier",
)

SUSPECTS: tuple[Suspect, ...] = tuple(
    Suspect(id=index + 1, name=name) for index, name in enumerate(_SUSPECT_NAMES)
)


def get_board_size_for_players(num_players: int) -> int:
    """Return the side length of the square board for ``num_players``.

    5x5 for up to four players, 6x6 for up to six, 7x7 otherwise.
    """
    if num_players <= 4:
        return 5
    if num_players <= 6:
        return 6
    return 7


def shuffled(items: Sequence[T], rng: random.Random) -> List[T]:
    """Return a uniformly shuffled copy of ``items``.

    ``random.Random.shuffle`` is a Fisher-Yates shuffle, so every permutation
    is equally likely. Pass a seeded ``rng`` for reproducible tests.
    """
    result = list(items)
    rng.shuffle(result)
    return result
