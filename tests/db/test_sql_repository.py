"""Unit tests for tictactoe/db/sql_repository.py"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session, sessionmaker

from tictactoe.core.models import MoveRecord, ResultRecord
from tictactoe.db.sql_repository import SQLGameResultRepository

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_record(
    game_id: str,
    minutes: int = 0,
    mode: str = "online",
    player1: str = "Alice",
    player2: str = "Bob",
    winner: str = "Alice",
) -> ResultRecord:
    return ResultRecord(
        player1=player1,
        player2=player2,
        winner=winner,
        pattern="row1" if winner else "",
        is_tie=not winner,
        mode=mode,
        game_id=game_id,
        first_player="X",
        moves=(
            MoveRecord(index=0, player="X", time=0),
            MoveRecord(index=4, player="O", time=1500),
            MoveRecord(index=1, player="X", time=2750),
        ),
        duration=2750,
        timestamp=T0 + timedelta(minutes=minutes),
    )


def same_result(found: ResultRecord, expected: ResultRecord) -> bool:
    """SQLite gives timestamps back without a zone, so compare those as UTC wall time."""
    return replace(found, timestamp=T0) == replace(expected, timestamp=T0) and (
        found.timestamp.replace(tzinfo=None)
        == expected.timestamp.astimezone(timezone.utc).replace(tzinfo=None)
    )


def test_save_and_get_result(session_factory: sessionmaker[Session]) -> None:
    """A stored result comes back with its move history intact."""
    repo = SQLGameResultRepository(session_factory)
    record = make_record("abc12345")
    repo.save_result(record)

    found = repo.get_result("abc12345")
    assert found is not None
    assert same_result(found, record)
    assert found.moves[1] == MoveRecord(index=4, player="O", time=1500)


def test_tie_is_stored_without_winner(session_factory: sessionmaker[Session]) -> None:
    repo = SQLGameResultRepository(session_factory)
    repo.save_result(make_record("tie00001", winner=""))

    found = repo.get_result("tie00001")
    assert found is not None
    assert found.is_tie
    assert found.winner == ""
    assert found.pattern == ""
    assert found.loser is None


def test_get_unknown_result(session_factory: sessionmaker[Session]) -> None:
    """
    Should return None if the game ID does not match anything in the database.

    NOTE with an empty database, any id is a valid test case.
    """
    repo = SQLGameResultRepository(session_factory)
    assert repo.get_result("missing") is None

    repo.save_result(make_record("abc12345"))
    assert repo.get_result("missing") is None


def test_list_results_oldest_first(session_factory: sessionmaker[Session]) -> None:
    repo = SQLGameResultRepository(session_factory)
    repo.save_result(make_record("second", minutes=2))
    repo.save_result(make_record("first", minutes=1))
    repo.save_result(make_record("local", minutes=3, mode="local"))

    assert [r.game_id for r in repo.list_results()] == ["first", "second", "local"]
    assert [r.game_id for r in repo.list_results(mode="online")] == ["first", "second"]
    assert [r.game_id for r in repo.list_results(mode="local")] == ["local"]


def test_recent_results_newest_first(session_factory: sessionmaker[Session]) -> None:
    repo = SQLGameResultRepository(session_factory)
    for minute in range(5):
        repo.save_result(make_record(f"game{minute}", minutes=minute))
    repo.save_result(make_record("local", minutes=10, mode="local"))

    recent = repo.recent_results(limit=3, mode="online")
    assert [r.game_id for r in recent] == ["game4", "game3", "game2"]
    assert repo.recent_results(limit=1)[0].game_id == "local"


def test_results_for_player(session_factory: sessionmaker[Session]) -> None:
    """A player's games, whichever side they played on."""
    repo = SQLGameResultRepository(session_factory)
    repo.save_result(make_record("g1", minutes=1))
    repo.save_result(make_record("g2", minutes=2, player1="Carol", player2="Alice", winner="Carol"))
    repo.save_result(make_record("g3", minutes=3, player1="Carol", player2="Bob", winner="Bob"))
    repo.save_result(make_record("g4", minutes=4, mode="local"))

    assert [r.game_id for r in repo.results_for_player("Alice")] == ["g4", "g2", "g1"]
    assert [r.game_id for r in repo.results_for_player("Alice", mode="online")] == ["g2", "g1"]
    assert repo.results_for_player("Nobody") == []
