"""Database tables / schema"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from tictactoe.core.models import utc_now


class Base(DeclarativeBase):
    pass


class DBGameResult(Base):
    __tablename__ = "game_results"
    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    game_id: Mapped[str] = mapped_column(index=True)
    timestamp: Mapped[datetime] = mapped_column(default=utc_now, index=True)
    player1: Mapped[str]
    player2: Mapped[str]
    winner: Mapped[Optional[str]]  # NULL for ties
    pattern: Mapped[Optional[str]]
    is_tie: Mapped[bool]
    mode: Mapped[str] = mapped_column(index=True)
    first_player: Mapped[Optional[str]]
    moves: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    duration: Mapped[int] = mapped_column(default=0)
