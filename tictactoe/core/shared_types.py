"""
Type definitions used across layers
"""

from enum import StrEnum


class Status(StrEnum):
    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


class Mark(StrEnum):
    X = "X"
    O = "O"  # noqa: E741

    @property
    def opponent(self) -> "Mark":
        return Mark.O if self == Mark.X else Mark.X


class Pattern(StrEnum):
    """Labels of the 8 winning lines. Order matters: lines are checked in this order."""

    ROW1 = "row1"
    ROW2 = "row2"
    ROW3 = "row3"
    COL1 = "col1"
    COL2 = "col2"
    COL3 = "col3"
    DIAG1 = "diag1"
    DIAG2 = "diag2"


class Mode(StrEnum):
    LOCAL = "local"
    ONLINE = "online"


class MessageType(StrEnum):
    GAME_STATE = "game_state"
    GAME_START = "game_start"
    MOVE = "move"
