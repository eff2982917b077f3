"""
suspect-grid Host Service - FastAPI Application
Session lobby plus one endpoint per engine command; every command returns
the full match snapshot.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Optional

from fastapi import BackgroundTasks, FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from . import config
from .errors import (
    GameNotStartedError,
    GameOverError,
    InvalidStateError,
    NotHostError,
    NotYourTurnError,
    PlayerNotFoundError,
    SessionFullError,
    SessionNotFoundError,
    SuspectGridError,
)
from .game_engine import GameEngine
from .metrics import COMPACTIONS_FINALIZED, GAMES_COMPLETED, observe_command
from .models import ActionType, GamePhase, ShiftAxis
from .sessions import Session, SessionRegistry

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="suspect-grid Host Service",
    description="Session lobby and match commands for the suspect-grid game",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

registry = SessionRegistry()


class CreateSessionRequest(BaseModel):
    """Request model for opening a lobby"""
    name: str


class JoinSessionRequest(BaseModel):
    """Request model for joining a lobby by code"""
    name: str


class PlayerRequest(BaseModel):
    """Request carrying only the acting player"""
    player_id: str = Field(alias="playerId")

    class Config:
        populate_by_name = True


class SelectActionRequest(PlayerRequest):
    action: Optional[ActionType] = None


class TargetRequest(PlayerRequest):
    row: int
    col: int


class ShiftRequest(PlayerRequest):
    axis: ShiftAxis
    index: int
    direction: int


class ToggleIdentityRequest(PlayerRequest):
    target_id: str = Field(alias="targetId")


class LeaveRequest(BaseModel):
    reason: str = "player disconnected"


_STATUS_BY_ERROR = (
    (SessionNotFoundError, 404),
    (PlayerNotFoundError, 404),
    (NotYourTurnError, 403),
    (NotHostError, 403),
    (GameOverError, 409),
    (GameNotStartedError, 409),
    (SessionFullError, 409),
    (InvalidStateError, 409),
)


def _status_for(exc: SuspectGridError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 400


@app.exception_handler(SuspectGridError)
async def suspect_grid_error_handler(request, exc: SuspectGridError):
    """Relay rejected commands to the caller as structured JSON."""
    status = _status_for(exc)
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content={"error": exc.to_dict()})


async def _finalize_after_delay(session: Session) -> None:
    """Second half of the compaction handshake, after the presentation delay."""
    await asyncio.sleep(config.COMPACTION_DELAY_MS / 1000.0)
    with session.lock:
        if session.game is not None and session.game.finalize_compaction():
            COMPACTIONS_FINALIZED.inc()
            logger.debug("Session %s compaction finalized", session.code)


def _run_command(
    code: str,
    command: str,
    apply: Callable[[GameEngine], None],
    background_tasks: BackgroundTasks,
) -> Dict[str, Any]:
    """Apply one engine command under the session lock and return the snapshot."""
    start_time = time.perf_counter()
    session = registry.get(code)
    with session.lock:
        game = session.require_game()
        was_over = game.state.phase == GamePhase.GAME_OVER
        try:
            apply(game)
        except SuspectGridError:
            observe_command(command, "rejected", time.perf_counter() - start_time)
            raise
        snapshot = game.snapshot()
        pending = game.has_pending_compaction()
        finished = not was_over and game.state.phase == GamePhase.GAME_OVER

    observe_command(command, "success", time.perf_counter() - start_time)
    if finished:
        outcome = "winner" if game.state.winner_id else "no_winner"
        GAMES_COMPLETED.labels(str(len(game.state.players)), outcome).inc()
        logger.info(
            "Session %s finished: winner=%s", session.code, game.state.winner_id
        )
    if pending:
        background_tasks.add_task(_finalize_after_delay, session)
    return snapshot


@app.get("/")
async def root():
    """Health check endpoint"""
    return {
        "service": "suspect-grid Host Service",
        "status": "running",
        "version": "1.0.0"
    }


@app.get("/health")
async def health_check():
    """Health check for container orchestration"""
    return {"status": "healthy", "sessions": len(registry)}


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    if not config.METRICS_ENABLED:
        return Response(status_code=404)
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)


# ---------------------------------------------------------------------------
# Lobby
# ---------------------------------------------------------------------------


@app.post("/api/sessions")
async def create_session(request: CreateSessionRequest):
    session, player_id = registry.create_session(request.name)
    return {
        "code": session.code,
        "playerId": player_id,
        "lobby": session.lobby_summary(player_id),
    }


@app.post("/api/sessions/{code}/join")
async def join_session(code: str, request: JoinSessionRequest):
    session, player_id = registry.join_session(code, request.name)
    return {
        "code": session.code,
        "playerId": player_id,
        "lobby": session.lobby_summary(player_id),
    }


@app.get("/api/sessions/{code}/lobby")
async def get_lobby(code: str, player_id: Optional[str] = None):
    return registry.get(code).lobby_summary(player_id)


@app.post("/api/sessions/{code}/start")
async def start_game(code: str, request: PlayerRequest):
    game = registry.start_game(code, request.player_id)
    return game.snapshot()


@app.delete("/api/sessions/{code}/players/{player_id}")
async def leave_session(
    code: str,
    player_id: str,
    background_tasks: BackgroundTasks,
    request: Optional[LeaveRequest] = None,
):
    reason = request.reason if request is not None else LeaveRequest().reason
    session = registry.remove_player(code, player_id, reason)
    if session is None:
        return {"closed": True}
    response: Dict[str, Any] = {"closed": False, "lobby": session.lobby_summary()}
    if session.game is not None:
        response["state"] = session.game.snapshot()
        if session.game.has_pending_compaction():
            background_tasks.add_task(_finalize_after_delay, session)
    return response


# ---------------------------------------------------------------------------
# Match commands
# ---------------------------------------------------------------------------


@app.get("/api/sessions/{code}/state")
async def get_state(code: str):
    return registry.get(code).require_game().snapshot()


@app.post("/api/sessions/{code}/select-action")
async def select_action(
    code: str, request: SelectActionRequest, background_tasks: BackgroundTasks
):
    return _run_command(
        code,
        "select_action",
        lambda game: game.select_action(request.player_id, request.action),
        background_tasks,
    )


@app.post("/api/sessions/{code}/kill")
async def kill(code: str, request: TargetRequest, background_tasks: BackgroundTasks):
    return _run_command(
        code,
        "kill",
        lambda game: game.kill(request.player_id, (request.row, request.col)),
        background_tasks,
    )


@app.post("/api/sessions/{code}/interrogate")
async def interrogate(
    code: str, request: TargetRequest, background_tasks: BackgroundTasks
):
    return _run_command(
        code,
        "interrogate",
        lambda game: game.interrogate(request.player_id, (request.row, request.col)),
        background_tasks,
    )


@app.post("/api/sessions/{code}/shift")
async def shift(code: str, request: ShiftRequest, background_tasks: BackgroundTasks):
    return _run_command(
        code,
        "shift",
        lambda game: game.shift(
            request.player_id, request.axis, request.index, request.direction
        ),
        background_tasks,
    )


@app.post("/api/sessions/{code}/toggle-identity")
async def toggle_identity(
    code: str, request: ToggleIdentityRequest, background_tasks: BackgroundTasks
):
    return _run_command(
        code,
        "toggle_identity",
        lambda game: game.toggle_identity(request.player_id, request.target_id),
        background_tasks,
    )


@app.post("/api/sessions/{code}/close-modal")
async def close_modal(code: str, background_tasks: BackgroundTasks):
    return _run_command(
        code, "close_modal", lambda game: game.close_modal(), background_tasks
    )


@app.post("/api/sessions/{code}/advance-turn")
async def advance_turn(
    code: str, request: PlayerRequest, background_tasks: BackgroundTasks
):
    return _run_command(
        code,
        "advance_turn",
        lambda game: game.advance_turn(request.player_id),
        background_tasks,
    )


if __name__ == "__main__":
    import uvicorn

    # When run directly (e.g. via `python -m suspect_grid.main`), bind to
    # 0.0.0.0 on SUSPECT_GRID_PORT.
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
