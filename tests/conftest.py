"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/variables required for testing multiple layers.
"""

from typing import Any, Generator, Optional

import pytest
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from tictactoe.core.models import ResultRecord
from tictactoe.db.schema import Base

# Setup an in-memory SQLite database for testing
DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autoflush=False, bind=engine, expire_on_commit=False)


@pytest.fixture
def session_factory() -> Generator[sessionmaker[Session], None, None]:
    """Factory bound to a test database. Tables are removed at teardown to make tests independent of each other."""
    Base.metadata.create_all(bind=engine)
    try:
        yield TestingSessionLocal
    finally:
        Base.metadata.drop_all(bind=engine)


class MockRepository:
    """Mock the GameResultRepository using a list of records."""

    def __init__(self) -> None:
        self.records: list[ResultRecord] = []

    def save_result(self, record: ResultRecord) -> None:
        self.records.append(record)

    def list_results(self, mode: Optional[str] = None) -> list[ResultRecord]:
        return sorted(
            (r for r in self.records if mode is None or r.mode == mode),
            key=lambda r: r.timestamp,
        )

    def recent_results(self, limit: int, mode: Optional[str] = None) -> list[ResultRecord]:
        return list(reversed(self.list_results(mode)))[:limit]

    def results_for_player(
        self, player: str, mode: Optional[str] = None
    ) -> list[ResultRecord]:
        return [
            r
            for r in reversed(self.list_results(mode))
            if player in (r.player1, r.player2)
        ]

    def get_result(self, game_id: str) -> Optional[ResultRecord]:
        return next((r for r in self.records if r.game_id == game_id), None)


class FakeConnection:
    """Stands in for a WebSocket: records everything sent to it."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: list[dict[str, Any]] = []
        self.fail = fail

    async def send_json(self, data: Any) -> None:
        if self.fail:
            raise ConnectionError("connection is gone")
        self.sent.append(data)

    @property
    def last(self) -> dict[str, Any]:
        return self.sent[-1]


@pytest.fixture
def mock_repository() -> MockRepository:
    return MockRepository()
