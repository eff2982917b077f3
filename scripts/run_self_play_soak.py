#!/usr/bin/env python
"""Self-play soak harness for the suspect-grid match engine.

Plays many matches with randomly chosen legal commands, finalizing
pending compactions and dropping players at random points the way a host
may (including while an action is armed), and runs the structural invariant
checks after each command. It is intended for offline / long-run use
(thousands of matches), outside of pytest timeouts.

Key properties
==============
- Every match gets its own ``random.Random`` derived from ``--seed``, so a
  soak run is reproducible end to end.
- Writes a JSONL log of per-match summaries (phase, winner, length,
  invariant violations), plus an optional aggregate JSON summary.
- Exits non-zero when any invariant violation was observed.

Example usage
-------------

From the repository root::

    python scripts/run_self_play_soak.py \
        --num-games 500 \
        --num-players 5 \
        --seed 42 \
        --log-jsonl logs/soak.5p.jsonl \
        --summary-json logs/soak.5p.summary.json
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import random
import sys
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

# Ensure `suspect_grid.*` imports resolve when run from a source checkout
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.append(ROOT)

from suspect_grid.game_engine import GameEngine  # noqa: E402
from suspect_grid.metrics import INVARIANT_VIOLATIONS  # noqa: E402
from suspect_grid.models import ActionType, GamePhase, PlayerSeed, ShiftAxis  # noqa: E402
from suspect_grid.rules.core import MAX_PLAYERS, MIN_PLAYERS  # noqa: E402
from suspect_grid.rules.invariants import INVARIANT_CHECKS  # noqa: E402

logger = logging.getLogger(__name__)


@dataclass
class GameRecord:
    index: int
    num_players: int
    seed: int
    length: int
    phase: str
    winner: Optional[str]
    termination_reason: str
    board_rows: int
    board_cols: int
    compactions: int = 0
    drops: int = 0
    invariant_violations_by_type: Dict[str, int] = field(default_factory=dict)


def _record_violations(engine: GameEngine, counts: Dict[str, int]) -> None:
    for check in INVARIANT_CHECKS:
        violations = check(engine.state)
        if not violations:
            continue
        counts[check.__name__] = counts.get(check.__name__, 0) + len(violations)
        INVARIANT_VIOLATIONS.labels(check.__name__).inc(len(violations))
        for message in violations:
            logger.warning("Invariant %s violated: %s", check.__name__, message)


def _play_random_command(
    engine: GameEngine,
    rng: random.Random,
    host_tick: Callable[[], None],
) -> None:
    """Issue one legal command for the current player.

    ``host_tick`` runs between arming an action and resolving it, where a
    real host may finalize a compaction or drop a disconnected player.
    """
    current = engine.current_player
    if current is None:
        return

    choice = rng.choice(("kill", "interrogate", "shift", "shift"))
    if choice != "shift":
        action = ActionType.KILL if choice == "kill" else ActionType.INTERROGATE
        engine.select_action(current.id, action)
        host_tick()
        if engine.state.phase != GamePhase.PLAYING:
            return
        targets = engine.state.selectable_positions
        if targets:
            target = rng.choice(targets)
            if action == ActionType.KILL:
                engine.kill(current.id, target)
            else:
                engine.interrogate(current.id, target)
            return
        # Nothing to hit; disarm and fall back to a shift.
        engine.select_action(current.id, action)

    # Shifts are blocked while a compaction is pending.
    engine.finalize_compaction()
    board = engine.state.board
    if not board or not board[0]:
        return
    axis = rng.choice((ShiftAxis.ROW, ShiftAxis.COL))
    size = len(board) if axis == ShiftAxis.ROW else len(board[0])
    engine.shift(current.id, axis, rng.randrange(size), rng.choice((1, -1)))


def play_match(
    index: int,
    num_players: int,
    seed: int,
    max_commands: int,
    finalize_rate: float = 0.5,
    drop_rate: float = 0.01,
) -> GameRecord:
    rng = random.Random(seed)
    seeds = [PlayerSeed(id=f"p{i + 1}", name=f"Player {i + 1}") for i in range(num_players)]
    engine = GameEngine(seeds, rng=random.Random(rng.getrandbits(64)))

    violations: Dict[str, int] = {}
    compactions = 0
    drops = 0
    length = 0
    _record_violations(engine, violations)

    def host_tick() -> None:
        nonlocal compactions, drops
        if rng.random() < finalize_rate and engine.finalize_compaction():
            compactions += 1
            _record_violations(engine, violations)
        if rng.random() < drop_rate:
            current = engine.current_player
            bystanders = [
                p for p in engine.state.active_players()
                if current is None or p.id != current.id
            ]
            if bystanders:
                engine.drop_player(rng.choice(bystanders).id, "disconnected")
                drops += 1
                _record_violations(engine, violations)

    while engine.state.phase == GamePhase.PLAYING and length < max_commands:
        host_tick()
        if engine.state.phase != GamePhase.PLAYING:
            break
        if engine.state.modal is not None:
            engine.close_modal()
        if not engine.state.board or not engine.state.board[0]:
            if not engine.finalize_compaction():
                break
            compactions += 1
            continue
        _play_random_command(engine, rng, host_tick)
        length += 1
        _record_violations(engine, violations)

    if engine.finalize_compaction():
        compactions += 1
        _record_violations(engine, violations)

    if engine.state.phase == GamePhase.GAME_OVER:
        reason = "game_over"
    elif length >= max_commands:
        reason = "max_commands"
    else:
        reason = "empty_board"

    return GameRecord(
        index=index,
        num_players=num_players,
        seed=seed,
        length=length,
        phase=engine.state.phase.value,
        winner=engine.state.winner_id,
        termination_reason=reason,
        board_rows=len(engine.state.board),
        board_cols=len(engine.state.board[0]) if engine.state.board else 0,
        compactions=compactions,
        drops=drops,
        invariant_violations_by_type=violations,
    )


def run_self_play_soak(args: argparse.Namespace) -> List[GameRecord]:
    master_rng = random.Random(args.seed)
    records: List[GameRecord] = []
    log_file = None
    if args.log_jsonl:
        Path(args.log_jsonl).parent.mkdir(parents=True, exist_ok=True)
        log_file = open(args.log_jsonl, "w", encoding="utf-8")

    try:
        for index in range(args.num_games):
            num_players = args.num_players or master_rng.randint(MIN_PLAYERS, MAX_PLAYERS)
            record = play_match(
                index,
                num_players,
                master_rng.getrandbits(32),
                args.max_commands,
                finalize_rate=args.finalize_rate,
                drop_rate=args.drop_rate,
            )
            records.append(record)
            if log_file is not None:
                log_file.write(json.dumps(asdict(record)) + "\n")
            if record.invariant_violations_by_type:
                logger.warning(
                    "Game %d (seed=%d) violations: %s",
                    index, record.seed, record.invariant_violations_by_type,
                )
    finally:
        if log_file is not None:
            log_file.close()
    return records


def summarize(records: List[GameRecord], elapsed_seconds: float) -> Dict[str, Any]:
    by_reason: Dict[str, int] = {}
    by_check: Dict[str, int] = {}
    for record in records:
        by_reason[record.termination_reason] = by_reason.get(record.termination_reason, 0) + 1
        for name, count in record.invariant_violations_by_type.items():
            by_check[name] = by_check.get(name, 0) + count
    lengths = [record.length for record in records]
    return {
        "total_games": len(records),
        "with_winner": sum(1 for r in records if r.winner is not None),
        "drops": sum(r.drops for r in records),
        "termination_reasons": by_reason,
        "invariant_violations": by_check,
        "avg_length": (sum(lengths) / len(lengths)) if lengths else 0.0,
        "max_length": max(lengths) if lengths else 0,
        "elapsed_seconds": round(elapsed_seconds, 3),
    }


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run self-play soaks of the suspect-grid engine with random legal commands.",
    )
    parser.add_argument(
        "--num-games",
        type=int,
        default=100,
        help="Number of matches to play (default: 100).",
    )
    parser.add_argument(
        "--num-players",
        type=int,
        choices=range(MIN_PLAYERS, MAX_PLAYERS + 1),
        default=None,
        help="Players per match; random per match when omitted.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Base RNG seed for the whole run (default: 0).",
    )
    parser.add_argument(
        "--max-commands",
        type=int,
        default=500,
        help="Command cap per match before it is abandoned (default: 500).",
    )
    parser.add_argument(
        "--finalize-rate",
        type=float,
        default=0.5,
        help="Chance per host tick that a pending compaction is finalized (default: 0.5).",
    )
    parser.add_argument(
        "--drop-rate",
        type=float,
        default=0.01,
        help="Chance per host tick that a bystander disconnects (default: 0.01).",
    )
    parser.add_argument(
        "--log-jsonl",
        default=None,
        help="Optional path for per-match JSONL records.",
    )
    parser.add_argument(
        "--summary-json",
        default=None,
        help="Optional path for the aggregate JSON summary.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    start = time.time()
    records = run_self_play_soak(args)
    summary = summarize(records, time.time() - start)

    if args.summary_json:
        Path(args.summary_json).parent.mkdir(parents=True, exist_ok=True)
        with open(args.summary_json, "w", encoding="utf-8") as f:
            json.dump(summary, f, indent=2, sort_keys=True)

    print(json.dumps(summary, indent=2, sort_keys=True))
    return 1 if summary["invariant_violations"] else 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
