"""
Pydantic Models for the suspect-grid match state
Mirrors the snapshot shape the game clients consume (camelCase on the wire)
"""

from pydantic import BaseModel, Field, PrivateAttr
from typing import Optional, List
from enum import Enum


class GamePhase(str, Enum):
    """Game phase enumeration"""
    PLAYING = "Playing"
    GAME_OVER = "GameOver"


class ActionType(str, Enum):
    """Actions a player can arm before choosing a target"""
    INTERROGATE = "interrogate"
    KILL = "kill"


class ShiftAxis(str, Enum):
    """Axis of a cyclic row/column shift"""
    ROW = "row"
    COL = "col"


class ActionLogType(str, Enum):
    """Tags used for action history entries"""
    TURN = "turn"
    KILL = "kill"
    CIVILIAN = "civilian"
    INTERROGATE = "interrogate"
    SHIFT = "shift"
    ELIMINATION = "elimination"


class Suspect(BaseModel):
    """Named identity slot occupying exactly one board cell"""
    id: int
    name: str

    class Config:
        frozen = True


class Position(BaseModel):
    """Board position (row-major)"""
    row: int
    col: int

    class Config:
        frozen = True

    def to_key(self) -> str:
        """Convert position to string key"""
        return f"{self.row},{self.col}"


class BoardCard(BaseModel):
    """Runtime state of a single board cell.

    Cards are frozen: the engine never mutates a card in place, it replaces
    it with an updated copy so previously issued snapshots stay intact.
    """
    suspect: Suspect
    is_alive: bool = Field(True, alias="isAlive")
    is_revealed: bool = Field(False, alias="isRevealed")
    was_interrogated: bool = Field(False, alias="wasInterrogated")

    class Config:
        populate_by_name = True
        frozen = True


Board = List[List[BoardCard]]


class Player(BaseModel):
    """Player state"""
    id: str
    name: str
    secret_identity: Suspect = Field(alias="secretIdentity")
    trophies: List[Suspect] = Field(default_factory=list)
    bombs: int = Field(0, ge=0)
    is_eliminated: bool = Field(False, alias="isEliminated")
    is_identity_visible: bool = Field(False, alias="isIdentityVisible")

    class Config:
        populate_by_name = True


class PlayerSeed(BaseModel):
    """Player entry used to create a match"""
    id: str
    name: str


class ModalMessage(BaseModel):
    """Blocking notification shown to every participant"""
    id: str
    title: str
    body: str
    auto_close: Optional[bool] = Field(None, alias="autoClose")

    class Config:
        populate_by_name = True


class ActionLogEntry(BaseModel):
    """Human-readable record of a state-changing action"""
    id: str
    type: ActionLogType
    message: str
    timestamp: int


class GameState(BaseModel):
    """Complete match state.

    The pending compacted board is kept as a private attribute: it belongs to
    the engine's two-phase compaction handshake and is never part of the
    broadcast snapshot.
    """
    phase: GamePhase = GamePhase.PLAYING
    board: Board
    players: List[Player]
    current_player_index: int = Field(0, alias="currentPlayerIndex")
    winner_id: Optional[str] = Field(None, alias="winnerId")
    active_action: Optional[ActionType] = Field(None, alias="activeAction")
    selectable_positions: List[Position] = Field(
        default_factory=list, alias="selectablePositions"
    )
    is_compacting: bool = Field(False, alias="isCompacting")
    modal: Optional[ModalMessage] = None
    action_history: List[ActionLogEntry] = Field(
        default_factory=list, alias="actionHistory"
    )

    _pending_board: Optional[Board] = PrivateAttr(default=None)

    class Config:
        populate_by_name = True

    @property
    def current_player(self) -> Optional[Player]:
        if 0 <= self.current_player_index < len(self.players):
            return self.players[self.current_player_index]
        return None

    def get_player(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def active_players(self) -> List[Player]:
        return [p for p in self.players if not p.is_eliminated]
