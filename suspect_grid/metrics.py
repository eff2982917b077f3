"""Prometheus metrics for the suspect-grid host service.

This module centralises counters and histograms so that the session
endpoints can record lightweight telemetry without each handler having to
manage its own metric instances. The engine never touches these; the host
records them around each command.
"""

from __future__ import annotations

from typing import Final

from prometheus_client import Counter, Gauge, Histogram


COMMANDS_TOTAL: Final[Counter] = Counter(
    "suspect_grid_commands_total",
    "Total engine commands handled, labeled by command and outcome.",
    labelnames=("command", "outcome"),
)

COMMAND_LATENCY: Final[Histogram] = Histogram(
    "suspect_grid_command_latency_seconds",
    "Latency of engine commands in seconds, labeled by command.",
    labelnames=("command",),
    # Commands are pure in-memory transforms; buckets stay in the
    # sub-millisecond to tens-of-milliseconds range.
    buckets=(
        0.0005,
        0.001,
        0.0025,
        0.005,
        0.01,
        0.025,
        0.05,
    ),
)

ACTIVE_SESSIONS: Final[Gauge] = Gauge(
    "suspect_grid_active_sessions",
    "Current number of sessions registered in this process.",
)

GAMES_STARTED: Final[Counter] = Counter(
    "suspect_grid_games_started_total",
    "Total matches started, labeled by player count.",
    labelnames=("num_players",),
)

GAMES_COMPLETED: Final[Counter] = Counter(
    "suspect_grid_games_completed_total",
    "Total matches that reached GameOver, labeled by player count and outcome.",
    labelnames=("num_players", "outcome"),
)

COMPACTIONS_FINALIZED: Final[Counter] = Counter(
    "suspect_grid_compactions_finalized_total",
    "Total pending board compactions swapped in by the host.",
)

INVARIANT_VIOLATIONS: Final[Counter] = Counter(
    "suspect_grid_invariant_violations_total",
    "Total invariant violations observed by the self-play soak harness.",
    labelnames=("check",),
)


def observe_command(command: str, outcome: str, duration_seconds: float) -> None:
    """Record one command's outcome ("success" / "rejected" / "error")."""
    COMMANDS_TOTAL.labels(command, outcome).inc()
    COMMAND_LATENCY.labels(command).observe(duration_seconds)
