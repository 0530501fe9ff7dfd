"""Implementation of (GameResult)Repository using SQLAlchemy"""

from typing import Optional

from sqlalchemy import Select, or_, select
from sqlalchemy.orm import Session, sessionmaker

from tictactoe.core.models import MoveRecord, ResultRecord
from tictactoe.db.schema import DBGameResult


class SQLGameResultRepository:
    """
    Data stored using SQL / methods implemented using SQLAlchemy.

    Called from a worker thread, so every method opens its own short-lived session.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    def save_result(self, record: ResultRecord) -> None:
        result_db = DBGameResult(
            game_id=record.game_id,
            timestamp=record.timestamp,
            player1=record.player1,
            player2=record.player2,
            winner=None if record.is_tie else record.winner,
            pattern=None if record.is_tie else record.pattern,
            is_tie=record.is_tie,
            mode=record.mode,
            first_player=record.first_player,
            moves=[
                {"index": move.index, "player": move.player, "time": move.time}
                for move in record.moves
            ],
            duration=record.duration,
        )
        with self.session_factory() as db:
            db.add(result_db)
            db.commit()

    def list_results(self, mode: Optional[str] = None) -> list[ResultRecord]:
        query = self._filter_mode(select(DBGameResult), mode).order_by(
            DBGameResult.timestamp
        )
        return self._fetch_all(query)

    def recent_results(self, limit: int, mode: Optional[str] = None) -> list[ResultRecord]:
        query = (
            self._filter_mode(select(DBGameResult), mode)
            .order_by(DBGameResult.timestamp.desc())
            .limit(limit)
        )
        return self._fetch_all(query)

    def results_for_player(
        self, player: str, mode: Optional[str] = None
    ) -> list[ResultRecord]:
        query = (
            self._filter_mode(select(DBGameResult), mode)
            .where(or_(DBGameResult.player1 == player, DBGameResult.player2 == player))
            .order_by(DBGameResult.timestamp.desc())
        )
        return self._fetch_all(query)

    def get_result(self, game_id: str) -> Optional[ResultRecord]:
        query = select(DBGameResult).where(DBGameResult.game_id == game_id).limit(1)
        with self.session_factory() as db:
            result_db = db.scalar(query)
            return self._to_record(result_db) if result_db else None

    def _fetch_all(self, query: Select[tuple[DBGameResult]]) -> list[ResultRecord]:
        with self.session_factory() as db:
            return [self._to_record(result_db) for result_db in db.scalars(query)]

    @staticmethod
    def _filter_mode(
        query: Select[tuple[DBGameResult]], mode: Optional[str]
    ) -> Select[tuple[DBGameResult]]:
        return query.where(DBGameResult.mode == mode) if mode else query

    def _to_record(self, result_db: DBGameResult) -> ResultRecord:
        """Convert SQLAlchemy model to data transfer model."""
        return ResultRecord(
            player1=result_db.player1,
            player2=result_db.player2,
            winner=result_db.winner or "",
            pattern=result_db.pattern or "",
            is_tie=result_db.is_tie,
            mode=result_db.mode,
            game_id=result_db.game_id,
            first_player=result_db.first_player,
            moves=tuple(
                MoveRecord(index=move["index"], player=move["player"], time=move["time"])
                for move in result_db.moves
            ),
            duration=result_db.duration,
            timestamp=result_db.timestamp,
        )
