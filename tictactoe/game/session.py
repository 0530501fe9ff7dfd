"""
The GameSession is the entrypoint into the domain layer for the service layer.
It holds the state of one online match and enforces its rules: who may join, whose turn it is, which cells are free.

Every mutation must happen while holding `session.lock`. The session itself never acquires it:
the service layer does, so that the state change and the broadcast that follows happen as one step.
"""

import asyncio
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Self

from tictactoe.core.exceptions import (
    GameStateError,
    IllegalMoveError,
    NotYourTurnError,
)
from tictactoe.core.models import GameModel, MoveRecord, ResultRecord, utc_now
from tictactoe.core.shared_types import Mark, Mode, Status
from tictactoe.game.board import Board, MoveResult, apply_move


@dataclass(eq=False)
class GameSession:
    id: str
    player1: str
    first_player: Mark
    turn: Mark
    board: Board = field(default_factory=Board)
    player2: str = ""
    status: Status = Status.WAITING
    winner: str = ""
    pattern: str = ""
    created_at: datetime = field(default_factory=utc_now)
    started_at: Optional[datetime] = None
    moves: list[MoveRecord] = field(default_factory=list)
    # live realtime connections; not part of the game's identity
    connections: set[Any] = field(default_factory=set, repr=False)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @classmethod
    def new_game(
        cls, session_id: str, player1: str, rng: Optional[random.Random] = None
    ) -> Self:
        """Create a game waiting for its second player. A coin flip decides which mark moves first."""
        first_player = (rng or random).choice([Mark.X, Mark.O])
        return cls(
            id=session_id, player1=player1, first_player=first_player, turn=first_player
        )

    @property
    def is_tie(self) -> bool:
        return self.status == Status.FINISHED and not self.winner

    @property
    def duration(self) -> int:
        """Milliseconds between the start of the game and its last move."""
        return self.moves[-1].time if self.moves else 0

    def player_for(self, mark: Mark) -> str:
        """player1 always plays X, player2 always plays O. Who starts is decided by first_player."""
        return self.player1 if mark == Mark.X else self.player2

    def register_player(self, player: str, now: Optional[datetime] = None) -> None:
        """Registering the 2nd player to an open game"""
        if self.status != Status.WAITING:
            raise GameStateError(
                f"Cannot join this game. Game already started. status: {self.status}"
            )
        self.player2 = player
        self.started_at = now or utc_now()
        self._change_status(Status.PLAYING)

    def make_move(
        self, index: int, player: str, now: Optional[datetime] = None
    ) -> MoveResult:
        """
        Attempt to make a move
        -----

        1. game must be in progress
        2. it must be the player's turn
        3. the cell must exist and be empty
        4. record the move, update the board
        5. finish the game, or hand the turn to the opponent
        """
        if self.status != Status.PLAYING:
            raise GameStateError(f"Game is not in progress. status: {self.status}")

        self._assert_your_turn(player)
        self._assert_legal_cell(index)

        self._update_moves(index, now or utc_now())
        result = apply_move(self.board, index, self.turn)
        self.board = result.board

        if result.winner is not None:
            self.winner = self.player_for(result.winner)
            self.pattern = str(result.pattern)
            self._change_status(Status.FINISHED)
        elif result.is_tie:
            self._change_status(Status.FINISHED)
        else:
            self.turn = self.turn.opponent
        return result

    def to_model(self) -> GameModel:
        return GameModel(
            id=self.id,
            board=self.board.to_list(),
            turn=str(self.turn),
            first_player=str(self.first_player),
            player1=self.player1,
            player2=self.player2,
            status=str(self.status),
            winner=self.winner,
            pattern=self.pattern,
        )

    def to_result(self) -> ResultRecord:
        """Summary handed to reporting once the game is finished."""
        if self.status != Status.FINISHED:
            raise GameStateError(f"Game has not finished yet. status: {self.status}")
        return ResultRecord(
            player1=self.player1,
            player2=self.player2,
            winner=self.winner,
            pattern=self.pattern,
            is_tie=self.is_tie,
            mode=str(Mode.ONLINE),
            game_id=self.id,
            first_player=str(self.first_player),
            moves=tuple(self.moves),
            duration=self.duration,
        )

    # -- PRIVATE HELPERS ---
    def _assert_your_turn(self, player: str) -> None:
        player_to_move = self.player_for(self.turn)
        if player != player_to_move:
            raise NotYourTurnError(
                f"It is not your turn. Waiting for player {player_to_move} to make a move first."
            )

    def _assert_legal_cell(self, index: int) -> None:
        if not Board.is_within_bounds(index):
            raise IllegalMoveError(f"Cell {index} is not on the board.")
        if not self.board.is_empty(index):
            raise IllegalMoveError(f"Cell {index} is already taken.")

    def _update_moves(self, index: int, now: datetime) -> None:
        elapsed = 0
        if self.started_at is not None:
            elapsed = int((now - self.started_at).total_seconds() * 1000)
        self.moves.append(MoveRecord(index=index, player=str(self.turn), time=elapsed))

    def _change_status(self, new_status: Status) -> None:
        self.status = new_status
