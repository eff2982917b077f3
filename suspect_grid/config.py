"""Environment-driven settings for the suspect-grid host service.

Environment Variables:
    SUSPECT_GRID_COMPACTION_DELAY_MS: Delay before a pending compaction is
        finalized and re-broadcast (default: 800)
    SUSPECT_GRID_LOG_LEVEL: Root log level for the service (default: INFO)
    SUSPECT_GRID_METRICS_ENABLED: Expose /metrics (default: true)
    CORS_ORIGINS: Comma-separated allowed origins (default: *)
    SUSPECT_GRID_PORT: Port used when the service is run directly (default: 3001)

The engine itself reads none of these; they only shape the host adapter.
"""

from __future__ import annotations

import logging
import os

from .errors import ConfigurationError

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in _TRUTHY


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"{name} must be an integer", context={"value": raw}
        ) from exc
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative", context={"value": raw})
    return value


def _env_log_level(name: str, default: str) -> int:
    raw = os.getenv(name, default).upper()
    level = logging.getLevelName(raw)
    if not isinstance(level, int):
        raise ConfigurationError(f"{name} is not a log level", context={"value": raw})
    return level


COMPACTION_DELAY_MS = _env_int("SUSPECT_GRID_COMPACTION_DELAY_MS", 800)
LOG_LEVEL = _env_log_level("SUSPECT_GRID_LOG_LEVEL", "INFO")
METRICS_ENABLED = _env_flag("SUSPECT_GRID_METRICS_ENABLED", "true")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
PORT = _env_int("SUSPECT_GRID_PORT", 3001)
