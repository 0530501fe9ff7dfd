"""The Game board: 9 cells, and the rules to detect a win or a tie."""

from dataclasses import dataclass, field
from typing import Optional, Self

from tictactoe.core.shared_types import Mark, Pattern

BOARD_SIZE = 9
EMPTY = ""

# Checked in this order. Only one line can be completed by a single move, so the order only fixes the naming.
WINNING_LINES: tuple[tuple[tuple[int, int, int], Pattern], ...] = (
    ((0, 1, 2), Pattern.ROW1),
    ((3, 4, 5), Pattern.ROW2),
    ((6, 7, 8), Pattern.ROW3),
    ((0, 3, 6), Pattern.COL1),
    ((1, 4, 7), Pattern.COL2),
    ((2, 5, 8), Pattern.COL3),
    ((0, 4, 8), Pattern.DIAG1),
    ((2, 4, 6), Pattern.DIAG2),
)


@dataclass(frozen=True)
class Board:
    cells: tuple[str, ...] = field(default=(EMPTY,) * BOARD_SIZE)

    @classmethod
    def from_cells(cls, cells: list[str]) -> Self:
        """Convenience method for tests and for rebuilding a board from a snapshot."""
        if len(cells) != BOARD_SIZE:
            raise ValueError(f"A board has {BOARD_SIZE} cells, got {len(cells)}.")
        return cls(tuple(cells))

    @staticmethod
    def is_within_bounds(index: int) -> bool:
        return 0 <= index < BOARD_SIZE

    def is_empty(self, index: int) -> bool:
        return self.cells[index] == EMPTY

    def is_full(self) -> bool:
        return all(cell != EMPTY for cell in self.cells)

    def place(self, index: int, mark: Mark) -> "Board":
        cells = list(self.cells)
        cells[index] = str(mark)
        return Board(tuple(cells))

    def winning_line(self) -> Optional[tuple[Mark, Pattern]]:
        """First line (in canonical order) holding three identical marks."""
        for (a, b, c), pattern in WINNING_LINES:
            if self.cells[a] != EMPTY and self.cells[a] == self.cells[b] == self.cells[c]:
                return Mark(self.cells[a]), pattern
        return None

    def to_list(self) -> list[str]:
        return list(self.cells)


@dataclass(frozen=True)
class MoveResult:
    board: Board
    winner: Optional[Mark] = None
    pattern: Optional[Pattern] = None
    is_tie: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.winner is not None or self.is_tie


def apply_move(board: Board, index: int, mark: Mark) -> MoveResult:
    """
    Place a mark and evaluate the outcome.
    ----

    The caller guarantees that the index is on the board and the cell is empty.
    A full board only counts as a tie if no line was completed.
    """
    new_board = board.place(index, mark)
    line = new_board.winning_line()
    if line is not None:
        winner, pattern = line
        return MoveResult(new_board, winner=winner, pattern=pattern)
    return MoveResult(new_board, is_tie=new_board.is_full())
