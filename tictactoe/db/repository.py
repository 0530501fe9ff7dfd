"""Protocol repository (implemented with SQLAlchemy, tests use an in-memory mock)"""

from typing import Optional, Protocol

from tictactoe.core.models import ResultRecord


class GameResultRepository(Protocol):
    """Persistence of finished games"""

    def save_result(self, record: ResultRecord) -> None:
        """Store one finished game."""
        ...

    def list_results(self, mode: Optional[str] = None) -> list[ResultRecord]:
        """All stored games, oldest first. Optionally only those of one mode."""
        ...

    def recent_results(self, limit: int, mode: Optional[str] = None) -> list[ResultRecord]:
        """The `limit` most recent games, newest first."""
        ...

    def results_for_player(
        self, player: str, mode: Optional[str] = None
    ) -> list[ResultRecord]:
        """Games in which the player took part, newest first."""
        ...

    def get_result(self, game_id: str) -> Optional[ResultRecord]:
        """Get a game by its game ID, if a record exists."""
        ...
