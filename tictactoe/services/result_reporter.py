"""
Hand-off of finished games to the outside world: the result store and the metrics.

Persistence is best-effort. Records are queued and written by a background worker, so a slow or
unavailable database never holds up a request or a realtime connection.
"""

import asyncio
import threading
from typing import Optional

import structlog

from tictactoe.core.models import ResultRecord
from tictactoe.db.repository import GameResultRepository
from tictactoe.services.metrics import GameMetrics

logger = structlog.get_logger()

DRAIN_TIMEOUT_SECONDS = 5.0
MAX_PENDING_RESULTS = 1000


class ResultReporter:
    def __init__(
        self,
        metrics: GameMetrics,
        repository: Optional[GameResultRepository] = None,
        max_pending: int = MAX_PENDING_RESULTS,
    ) -> None:
        self.metrics = metrics
        self.repository = repository
        self._queue: asyncio.Queue[ResultRecord] = asyncio.Queue(maxsize=max_pending)
        self._worker: Optional[asyncio.Task[None]] = None
        # keyed by display name: two players using the same name share a streak
        self._win_streaks: dict[str, int] = {}
        self._streak_lock = threading.Lock()

    # --- persistence ---
    def report(self, record: ResultRecord) -> None:
        """
        Fire-and-forget. Never raises, never waits for the database.
        ----
        Records are only queued while the worker runs (between `start` and `stop`).
        Otherwise, or when the queue is full, the record is logged and dropped.
        """
        if self.repository is None:
            logger.debug("persistence disabled, result not stored", game_id=record.game_id)
            return
        if self._worker is None:
            logger.warning("result writer not running, result dropped", game_id=record.game_id)
            self._count_dropped()
            return
        try:
            self._queue.put_nowait(record)
        except asyncio.QueueFull:
            logger.warning(
                "too many unsaved results, result dropped",
                game_id=record.game_id,
                pending=self._queue.qsize(),
            )
            self._count_dropped()

    async def start(self) -> None:
        if self.repository is not None and self._worker is None:
            self._worker = asyncio.create_task(self._persist_results())

    async def stop(self) -> None:
        """Give queued records a bounded amount of time to be written, then stop the worker."""
        if self._worker is None:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=DRAIN_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            logger.warning("dropping unsaved results", pending=self._queue.qsize())
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None

    def _count_dropped(self) -> None:
        self.metrics.db_operations.labels(operation="save_result", status="dropped").inc()

    async def _persist_results(self) -> None:
        assert self.repository is not None
        while True:
            record = await self._queue.get()
            try:
                await asyncio.to_thread(self.repository.save_result, record)
            except Exception:
                logger.exception(
                    "failed to save game result",
                    game_id=record.game_id,
                    mode=record.mode,
                )
                self.metrics.db_operations.labels(operation="save_result", status="error").inc()
            else:
                self.metrics.db_operations.labels(operation="save_result", status="success").inc()
            finally:
                self._queue.task_done()

    # --- metrics ---
    def record_metrics(self, record: ResultRecord) -> None:
        """
        Update the game counters and the win streaks.
        ----
        A win extends the winner's streak and resets the loser's. A tie resets both players.
        """
        mode = record.mode
        self.metrics.player_games_total.labels(player=record.player1, mode=mode).inc()
        self.metrics.player_games_total.labels(player=record.player2, mode=mode).inc()

        if record.is_tie:
            self.metrics.games_total.labels(result="tie", mode=mode).inc()
            self.metrics.ties_total.labels(mode=mode).inc()
            self._reset_streak(record.player1)
            self._reset_streak(record.player2)
            return

        self.metrics.games_total.labels(result="win", mode=mode).inc()
        self.metrics.wins_total.labels(
            player=record.winner, pattern=record.pattern, mode=mode
        ).inc()
        with self._streak_lock:
            streak = self._win_streaks.get(record.winner, 0) + 1
            self._win_streaks[record.winner] = streak
        self.metrics.win_streak.labels(player=record.winner).set(streak)
        if record.loser is not None:
            self._reset_streak(record.loser)

    def win_streak(self, player: str) -> int:
        with self._streak_lock:
            return self._win_streaks.get(player, 0)

    def _reset_streak(self, player: str) -> None:
        with self._streak_lock:
            self._win_streaks[player] = 0
        self.metrics.win_streak.labels(player=player).set(0)
