"""Leaderboard and statistics computed from the stored game results."""

from collections import Counter, defaultdict
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from tictactoe.api.models import (
    GameReplay,
    LeaderboardResponse,
    MoveEntry,
    PlayerStats,
    RecentGame,
    StatsResponse,
)
from tictactoe.core.exceptions import PersistenceUnavailableError, SessionNotFoundError
from tictactoe.core.models import ResultRecord
from tictactoe.core.shared_types import Mode
from tictactoe.db.repository import GameResultRepository

# The synthetic monitor plays games under names with this prefix. They should not show up in rankings.
SYNTHETIC_PREFIX = "Synthetic"
LEADERBOARD_SIZE = 20
RECENT_GAMES = 20

StreakLookup = Callable[[str], int]


def format_timestamp(timestamp: datetime) -> str:
    """RFC 3339 in UTC. Naive datetimes (SQLite drops the zone) are taken to be UTC already."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def percentage(part: int, total: int) -> float:
    return part / total * 100 if total > 0 else 0.0


def is_synthetic(record: ResultRecord) -> bool:
    return record.player1.startswith(SYNTHETIC_PREFIX)


class StatsService:
    def __init__(
        self,
        repository: Optional[GameResultRepository],
        current_streak: StreakLookup,
    ) -> None:
        self.repo = repository
        self.current_streak = current_streak

    def leaderboard(self) -> LeaderboardResponse:
        """Online games only. Ranked by number of wins."""
        records = self._online_results()

        stats: dict[str, PlayerStats] = {}
        patterns: dict[str, Counter[str]] = defaultdict(Counter)
        for record in records:
            for player in (record.player1, record.player2):
                stats.setdefault(player, PlayerStats(player=player))
                stats[player].total_games += 1

            if record.is_tie:
                stats[record.player1].ties += 1
                stats[record.player2].ties += 1
            elif record.winner:
                stats.setdefault(record.winner, PlayerStats(player=record.winner))
                stats[record.winner].wins += 1
                if record.pattern:
                    patterns[record.winner][record.pattern] += 1
                if record.loser is not None:
                    stats[record.loser].losses += 1

        players = list(stats.values())
        for player_stats in players:
            player_stats.win_rate = percentage(player_stats.wins, player_stats.total_games)
            player_stats.win_streak = self.current_streak(player_stats.player)
            if patterns[player_stats.player]:
                player_stats.best_pattern = patterns[player_stats.player].most_common(1)[0][0]

        players.sort(key=lambda p: p.wins, reverse=True)
        return LeaderboardResponse(
            players=players[:LEADERBOARD_SIZE], updated_at=self._now()
        )

    def stats(self) -> StatsResponse:
        """
        Aggregates over all online games.
        ----
        player1 always plays X, so a win by player1 is an X win.
        Streaks are runs of consecutive wins per player, in the order the games were played.
        """
        records = self._online_results()
        total = len(records)
        wins = [record for record in records if not record.is_tie]
        x_wins = sum(1 for record in wins if record.winner == record.player1)
        patterns = Counter(record.pattern for record in wins if record.pattern)
        hours = Counter(self._utc_hour(record.timestamp) for record in records)

        longest_streak, streak_holder = self._longest_streak(records)
        return StatsResponse(
            total_games=total,
            total_wins=len(wins),
            total_ties=total - len(wins),
            top_patterns=dict(patterns),
            avg_moves_per_game=(
                sum(len(record.moves) for record in records) / total if total else 0.0
            ),
            x_win_rate=percentage(x_wins, total),
            o_win_rate=percentage(len(wins) - x_wins, total),
            tie_rate=percentage(total - len(wins), total),
            most_active_hour=hours.most_common(1)[0][0] if hours else 0,
            longest_streak=longest_streak,
            streak_holder=streak_holder,
            updated_at=self._now(),
        )

    def recent_games(self) -> list[RecentGame]:
        repo = self._require_repository()
        # over-fetch a little so filtering synthetic games still leaves a full page
        records = repo.recent_results(limit=RECENT_GAMES * 5, mode=Mode.ONLINE)
        return [
            self._to_recent_game(record)
            for record in records
            if not is_synthetic(record)
        ][:RECENT_GAMES]

    def player_stats(self, player: str) -> PlayerStats:
        """Totals for one player, over all modes."""
        records = self._require_repository().results_for_player(player)
        stats = PlayerStats(player=player, total_games=len(records))
        for record in records:
            if record.is_tie:
                stats.ties += 1
            elif record.winner == player:
                stats.wins += 1
            else:
                stats.losses += 1
        stats.win_rate = percentage(stats.wins, stats.total_games)
        return stats

    def player_games(self, player: str) -> list[RecentGame]:
        records = self._require_repository().results_for_player(player, mode=Mode.ONLINE)
        return [self._to_recent_game(record) for record in records]

    def replay(self, game_id: str) -> GameReplay:
        record = self._require_repository().get_result(game_id)
        if record is None:
            raise SessionNotFoundError(f"Game with {game_id=} not found.")
        return GameReplay(
            game_id=record.game_id or game_id,
            player1=record.player1,
            player2=record.player2,
            winner=record.winner,
            pattern=record.pattern,
            is_tie=record.is_tie,
            timestamp=format_timestamp(record.timestamp),
            duration=record.duration,
            moves=[
                MoveEntry(index=move.index, player=move.player, time=move.time)
                for move in record.moves
            ],
        )

    # -- Internal helpers --
    def _require_repository(self) -> GameResultRepository:
        if self.repo is None:
            raise PersistenceUnavailableError("Database not available")
        return self.repo

    def _online_results(self) -> list[ResultRecord]:
        records = self._require_repository().list_results(mode=Mode.ONLINE)
        return [record for record in records if not is_synthetic(record)]

    @staticmethod
    def _longest_streak(records: Iterable[ResultRecord]) -> tuple[int, str]:
        running: dict[str, int] = defaultdict(int)
        longest, holder = 0, ""
        for record in records:
            if record.is_tie:
                running[record.player1] = 0
                running[record.player2] = 0
                continue
            running[record.winner] += 1
            if record.loser is not None:
                running[record.loser] = 0
            if running[record.winner] > longest:
                longest, holder = running[record.winner], record.winner
        return longest, holder

    @staticmethod
    def _utc_hour(timestamp: datetime) -> int:
        if timestamp.tzinfo is None:
            return timestamp.hour
        return timestamp.astimezone(timezone.utc).hour

    @staticmethod
    def _to_recent_game(record: ResultRecord) -> RecentGame:
        return RecentGame(
            game_id=record.game_id or "",
            player1=record.player1,
            player2=record.player2,
            winner=record.winner,
            pattern=record.pattern,
            is_tie=record.is_tie,
            mode=record.mode,
            timestamp=format_timestamp(record.timestamp),
        )

    @staticmethod
    def _now() -> str:
        return format_timestamp(datetime.now(timezone.utc))
