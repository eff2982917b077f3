"""
suspect-grid Error Hierarchy

Unified exception hierarchy for the match engine and its host adapter.
All custom exceptions inherit from SuspectGridError for easy catching and
filtering.

Usage:
    from suspect_grid.errors import RulesViolationError, NotYourTurnError

    try:
        engine.kill(player_id, target)
    except RulesViolationError as e:
        logger.warning(f"Rejected kill: {e.message}, rule: {e.rule_ref}")
"""

from typing import Any

__all__ = [
    "ConfigurationError",
    "GameNotStartedError",
    "GameOverError",
    "InvalidMoveError",
    "InvalidStateError",
    "NotHostError",
    "NotYourTurnError",
    "PlayerNotFoundError",
    "RulesViolationError",
    "SeedError",
    "SessionError",
    "SessionFullError",
    "SessionNotFoundError",
    "SuspectGridError",
    "ValidationError",
]


class SuspectGridError(Exception):
    """Base exception for all suspect-grid errors.

    Attributes:
        code: Machine-readable error code for categorization
        message: Human-readable error description
        context: Additional context for debugging
    """
    code: str = "SUSPECT_GRID_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"[{self.code}] {self.message} ({ctx})"
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


# =============================================================================
# Game Rules Errors
# =============================================================================


class RulesViolationError(SuspectGridError):
    """Command rejected by the game rules.

    Raised for unarmed actions, illegal targets, shifts while an action is
    armed or a compaction is pending, and out-of-range shift arguments.

    Attributes:
        rule_ref: Short name of the rule that was violated (e.g. "kill-target")
    """
    code: str = "RULES_VIOLATION"

    def __init__(
        self,
        message: str,
        rule_ref: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context=context)
        self.rule_ref = rule_ref
        if rule_ref:
            self.context["rule_ref"] = rule_ref


class InvalidStateError(SuspectGridError):
    """Corrupted or unexpected game state.

    Raised when the game state is in a configuration that should not be
    reachable through the public commands.
    """
    code: str = "INVALID_STATE"


class InvalidMoveError(SuspectGridError):
    """Command that cannot be applied to the current state.

    Raised when a command is well formed but issued at the wrong time
    (wrong player, finished match).
    """
    code: str = "INVALID_MOVE"


class NotYourTurnError(InvalidMoveError):
    """Command issued by a player who does not hold the turn."""
    code: str = "NOT_YOUR_TURN"

    def __init__(
        self,
        message: str,
        player_id: str | None = None,
        current_player_id: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context=context)
        if player_id:
            self.context["player_id"] = player_id
        if current_player_id:
            self.context["current_player_id"] = current_player_id


class GameOverError(InvalidMoveError):
    """Command issued after the match has ended."""
    code: str = "GAME_OVER"


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(SuspectGridError):
    """Base class for validation errors."""
    code: str = "VALIDATION_ERROR"


class ConfigurationError(ValidationError):
    """Invalid configuration."""
    code: str = "CONFIGURATION_ERROR"


class SeedError(ValidationError):
    """Player seed list cannot start a match.

    Raised for too few or too many players and for duplicate player ids.
    """
    code: str = "SEED_ERROR"

    def __init__(
        self,
        message: str,
        player_count: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context=context)
        if player_count is not None:
            self.context["player_count"] = player_count


# =============================================================================
# Session Errors
# =============================================================================


class SessionError(SuspectGridError):
    """Base class for session/lobby errors raised by the host adapter."""
    code: str = "SESSION_ERROR"

    def __init__(
        self,
        message: str,
        session_code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context=context)
        if session_code:
            self.context["session_code"] = session_code


class SessionNotFoundError(SessionError):
    """No session is registered under the given code."""
    code: str = "SESSION_NOT_FOUND"


class SessionFullError(SessionError):
    """Session already holds the maximum number of players."""
    code: str = "SESSION_FULL"


class NotHostError(SessionError):
    """Host-only operation attempted by another participant."""
    code: str = "NOT_HOST"


class GameNotStartedError(SessionError):
    """Match command sent to a session that is still in the lobby."""
    code: str = "GAME_NOT_STARTED"


class PlayerNotFoundError(SessionError):
    """Player id is not part of the session."""
    code: str = "PLAYER_NOT_FOUND"
