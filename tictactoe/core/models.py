"""
Boundary layer data model(s).

These objects are passed across layers: the game layer produces them, the services hand them to the
persistence and metrics collaborators, and the API layer turns them into responses.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

PlayerName = str


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class MoveRecord:
    """One entry of an online game's move history."""

    index: int
    player: str  # the mark ("X"/"O") that was placed
    time: int  # milliseconds since the game started


@dataclass
class GameModel:
    """Transport-safe representation of an online game used between the Game and Service layers."""

    id: str
    board: list[str]
    turn: str
    first_player: str
    player1: PlayerName
    player2: PlayerName
    status: str
    winner: PlayerName
    pattern: str


@dataclass(frozen=True)
class ResultRecord:
    """Normalized summary of one completed game. An empty winner means the game was a tie."""

    player1: PlayerName
    player2: PlayerName
    winner: PlayerName
    pattern: str
    is_tie: bool
    mode: str
    game_id: Optional[str] = None
    first_player: Optional[str] = None
    moves: tuple[MoveRecord, ...] = ()
    duration: int = 0
    timestamp: datetime = field(default_factory=utc_now)

    @property
    def loser(self) -> Optional[PlayerName]:
        if self.is_tie:
            return None
        return self.player2 if self.winner == self.player1 else self.player1
