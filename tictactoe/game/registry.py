"""In-memory table of online game sessions."""

import asyncio
import random
from typing import Optional
from uuid import uuid4

from tictactoe.game.session import GameSession

SESSION_ID_LENGTH = 8


def new_session_id() -> str:
    return uuid4().hex[:SESSION_ID_LENGTH]


class SessionRegistry:
    """
    Maps session IDs to GameSessions.
    ----

    The registry lock only protects the table itself (insert / lookup).
    It is always released before a session's own lock is taken, and is never taken while holding one.
    Finished sessions stay in the table so their final state can still be queried.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._sessions: dict[str, GameSession] = {}
        self._lock = asyncio.Lock()
        self._rng = rng

    async def create(self, player1: str) -> GameSession:
        async with self._lock:
            session_id = new_session_id()
            while session_id in self._sessions:
                session_id = new_session_id()
            session = GameSession.new_game(session_id, player1, rng=self._rng)
            self._sessions[session_id] = session
        return session

    async def get(self, session_id: str) -> Optional[GameSession]:
        async with self._lock:
            return self._sessions.get(session_id)

    async def list_sessions(self) -> list[GameSession]:
        """Copy of the table, taken under the registry lock. Session fields still need the session lock."""
        async with self._lock:
            return list(self._sessions.values())

    def __len__(self) -> int:
        """Sessions held, finished ones included. Does not take the registry lock."""
        return len(self._sessions)
