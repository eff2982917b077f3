"""Bounded action history and modal helpers."""

from __future__ import annotations

import time
import uuid

from ..models import ActionLogEntry, ActionLogType, GameState, ModalMessage
from .core import ACTION_HISTORY_LIMIT


def record_action(state: GameState, kind: ActionLogType, message: str) -> ActionLogEntry:
    """Prepend an entry to the history, dropping the oldest past the limit."""
    entry = ActionLogEntry(
        id=str(uuid.uuid4()),
        type=kind,
        message=message,
        timestamp=int(time.time() * 1000),
    )
    state.action_history = [entry, *state.action_history][:ACTION_HISTORY_LIMIT]
    return entry


def create_modal(title: str, body: str) -> ModalMessage:
    return ModalMessage(id=str(uuid.uuid4()), title=title, body=body)
