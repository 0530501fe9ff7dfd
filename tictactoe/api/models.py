"""Requests, Responses and realtime message models"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from tictactoe.core.exceptions import InvalidRequestError
from tictactoe.core.shared_types import MessageType, Mode

PlayerName = str


class ApiModel(BaseModel):
    """JSON uses camelCase, Python uses snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- REQUEST MODELS ---
class CreateGameRequest(ApiModel):
    player1: PlayerName

    @field_validator("player1")
    @classmethod
    def validate_player1(cls, value: str) -> str:
        if not value:
            raise InvalidRequestError("player1 required")
        return value


class JoinGameRequest(ApiModel):
    game_id: str = ""
    player2: PlayerName = ""


class GameResultRequest(ApiModel):
    """A game played locally in the browser, reported after it ended. JSON nulls read as empty values."""

    player1: PlayerName = ""
    player2: PlayerName = ""
    winner: PlayerName = ""
    pattern: str = ""
    is_tie: bool = False
    mode: str = Mode.LOCAL

    @field_validator("player1", "player2", "winner", "pattern", mode="before")
    @classmethod
    def null_as_empty(cls, value: Optional[str]) -> str:
        return "" if value is None else value

    @field_validator("is_tie", mode="before")
    @classmethod
    def null_as_false(cls, value: Optional[bool]) -> bool:
        return False if value is None else value

    @field_validator("mode", mode="before")
    @classmethod
    def default_mode(cls, value: Optional[str]) -> str:
        return value or Mode.LOCAL


# --- RESPONSE MODELS ---
class CreateGameResponse(ApiModel):
    game_id: str
    first_player: str


class GameSnapshot(ApiModel):
    id: str
    board: list[str]
    turn: str
    first_player: str
    player1: PlayerName
    player2: PlayerName
    status: str
    winner: PlayerName = ""
    pattern: str = ""


class RecordedResponse(ApiModel):
    status: str = "recorded"


class PlayerStats(ApiModel):
    player: PlayerName
    wins: int = 0
    losses: int = 0
    ties: int = 0
    total_games: int = 0
    win_rate: float = 0.0
    win_streak: int = 0
    best_pattern: str = ""


class LeaderboardResponse(ApiModel):
    players: list[PlayerStats]
    updated_at: str


class StatsResponse(ApiModel):
    total_games: int = 0
    total_wins: int = 0
    total_ties: int = 0
    top_patterns: dict[str, int]
    updated_at: str
    avg_moves_per_game: float = 0.0
    x_win_rate: float = 0.0
    o_win_rate: float = 0.0
    tie_rate: float = 0.0
    most_active_hour: int = 0
    longest_streak: int = 0
    streak_holder: PlayerName = ""


class RecentGame(ApiModel):
    game_id: str
    player1: PlayerName
    player2: PlayerName
    winner: PlayerName = ""
    pattern: str = ""
    is_tie: bool
    mode: str
    timestamp: str


class MoveEntry(ApiModel):
    index: int
    player: str
    time: int


class GameReplay(ApiModel):
    game_id: str
    player1: PlayerName
    player2: PlayerName
    winner: PlayerName = ""
    pattern: str = ""
    is_tie: bool
    timestamp: str
    duration: int
    moves: list[MoveEntry]


# --- REALTIME MESSAGES ---
class Envelope(BaseModel):
    """
    Every realtime frame is `{type, payload}`.
    ----
    Decoding happens in two steps: first the envelope, then the payload with the model registered for its type.
    """

    type: str
    payload: Any = None


class MovePayload(BaseModel):
    index: int
    player: PlayerName


INBOUND_PAYLOADS: dict[str, type[BaseModel]] = {
    MessageType.MOVE: MovePayload,
}


class ServerMessage(BaseModel):
    type: MessageType
    payload: GameSnapshot

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def decode_payload(envelope: Envelope) -> Optional[BaseModel]:
    """Typed payload for a known inbound message type. None for unknown types."""
    payload_model = INBOUND_PAYLOADS.get(envelope.type)
    if payload_model is None:
        return None
    return payload_model.model_validate(envelope.payload)
