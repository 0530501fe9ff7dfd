"""Unit tests for tictactoe/services/stats_service.py"""

from datetime import datetime, timedelta, timezone

import pytest
from conftest import MockRepository

from tictactoe.core.exceptions import PersistenceUnavailableError, SessionNotFoundError
from tictactoe.core.models import MoveRecord, ResultRecord
from tictactoe.services.stats_service import StatsService, format_timestamp

T0 = datetime(2026, 3, 1, 20, 0, 0, tzinfo=timezone.utc)


def online(
    player1: str,
    player2: str,
    winner: str = "",
    pattern: str = "",
    minutes: int = 0,
    moves: int = 5,
    game_id: str = "",
) -> ResultRecord:
    return ResultRecord(
        player1=player1,
        player2=player2,
        winner=winner,
        pattern=pattern,
        is_tie=not winner,
        mode="online",
        game_id=game_id or f"g{minutes}",
        moves=tuple(MoveRecord(index=i, player="X", time=i * 1000) for i in range(moves)),
        duration=(moves - 1) * 1000,
        timestamp=T0 + timedelta(minutes=minutes),
    )


@pytest.fixture
def history(mock_repository: MockRepository) -> MockRepository:
    """Alice wins twice, Bob wins once, one tie, plus noise that should be filtered out."""
    mock_repository.records.extend(
        [
            online("Alice", "Bob", winner="Alice", pattern="row1", minutes=0),
            online("Alice", "Bob", winner="Alice", pattern="diag1", minutes=1, moves=7),
            online("Carol", "Alice", winner="Alice", pattern="row1", minutes=2, moves=6),
            online("Alice", "Bob", minutes=3, moves=9),
            online("Bob", "Carol", winner="Bob", pattern="col2", minutes=4, moves=5),
            online("SyntheticTest", "SyntheticBot", winner="SyntheticTest", pattern="row1", minutes=5),
            ResultRecord(
                player1="Alice", player2="Dave", winner="Dave", pattern="col3",
                is_tie=False, mode="local", game_id="local-1", timestamp=T0,
            ),
        ]
    )
    return mock_repository


def build_stats(repository: MockRepository | None, streaks: dict[str, int] | None = None) -> StatsService:
    streaks = streaks or {}
    return StatsService(repository, current_streak=lambda player: streaks.get(player, 0))


def test_leaderboard(history: MockRepository) -> None:
    response = build_stats(history, {"Bob": 1}).leaderboard()
    players = {stats.player: stats for stats in response.players}

    assert [stats.player for stats in response.players][0] == "Alice"
    assert "SyntheticTest" not in players
    assert "Dave" not in players  # local games do not count

    alice = players["Alice"]
    assert (alice.wins, alice.losses, alice.ties, alice.total_games) == (3, 0, 1, 4)
    assert alice.win_rate == pytest.approx(75.0)
    assert alice.best_pattern == "row1"

    bob = players["Bob"]
    assert (bob.wins, bob.losses, bob.ties, bob.total_games) == (1, 2, 1, 4)
    assert bob.win_streak == 1
    assert response.updated_at.endswith("Z")


def test_leaderboard_is_limited_to_top_20(mock_repository: MockRepository) -> None:
    for i in range(30):
        mock_repository.records.append(online(f"p{i}", "q", winner=f"p{i}", pattern="row1", minutes=i))
    assert len(build_stats(mock_repository).leaderboard().players) == 20


def test_stats(history: MockRepository) -> None:
    response = build_stats(history).stats()

    assert response.total_games == 5
    assert response.total_wins == 4
    assert response.total_ties == 1
    assert response.top_patterns == {"row1": 2, "diag1": 1, "col2": 1}
    assert response.avg_moves_per_game == pytest.approx((5 + 7 + 6 + 9 + 5) / 5)
    # player1 wins are X wins: Alice twice as player1, Bob once as player1. Carol-Alice was an O win.
    assert response.x_win_rate == pytest.approx(60.0)
    assert response.o_win_rate == pytest.approx(20.0)
    assert response.tie_rate == pytest.approx(20.0)
    assert response.most_active_hour == 20
    assert (response.longest_streak, response.streak_holder) == (3, "Alice")


def test_stats_on_empty_store(mock_repository: MockRepository) -> None:
    response = build_stats(mock_repository).stats()
    assert response.total_games == 0
    assert response.x_win_rate == 0.0
    assert response.avg_moves_per_game == 0.0


def test_recent_games(history: MockRepository) -> None:
    games = build_stats(history).recent_games()
    assert [game.game_id for game in games] == ["g4", "g3", "g2", "g1", "g0"]
    assert games[1].is_tie
    assert games[0].timestamp == "2026-03-01T20:04:00Z"


def test_player_stats_cover_all_modes(history: MockRepository) -> None:
    stats = build_stats(history).player_stats("Alice")
    assert (stats.wins, stats.losses, stats.ties, stats.total_games) == (3, 1, 1, 5)
    assert stats.win_rate == pytest.approx(60.0)


def test_player_games_are_online_only(history: MockRepository) -> None:
    games = build_stats(history).player_games("Alice")
    assert [game.game_id for game in games] == ["g3", "g2", "g1", "g0"]


def test_replay(history: MockRepository) -> None:
    replay = build_stats(history).replay("g1")
    assert replay.winner == "Alice"
    assert replay.pattern == "diag1"
    assert len(replay.moves) == 7
    assert replay.duration == 6000


def test_replay_unknown_game(history: MockRepository) -> None:
    with pytest.raises(SessionNotFoundError):
        build_stats(history).replay("nope")


def test_persistence_disabled() -> None:
    stats = build_stats(None)
    with pytest.raises(PersistenceUnavailableError):
        stats.leaderboard()
    with pytest.raises(PersistenceUnavailableError):
        stats.player_stats("Alice")


def test_naive_timestamps_are_utc() -> None:
    assert format_timestamp(datetime(2026, 3, 1, 8, 30)) == "2026-03-01T08:30:00Z"
