"""Unit tests for tictactoe/game/board.py"""

import pytest

from tictactoe.game.board import (
    EMPTY,
    WINNING_LINES,
    Board,
    Mark,
    Pattern,
    apply_move,
)

X, O, _ = "X", "O", EMPTY


# --- WIN DETECTION ---
@pytest.mark.parametrize(
    ("line", "expected_pattern"),
    [
        ((0, 1, 2), Pattern.ROW1),
        ((3, 4, 5), Pattern.ROW2),
        ((6, 7, 8), Pattern.ROW3),
        ((0, 3, 6), Pattern.COL1),
        ((1, 4, 7), Pattern.COL2),
        ((2, 5, 8), Pattern.COL3),
        ((0, 4, 8), Pattern.DIAG1),
        ((2, 4, 6), Pattern.DIAG2),
    ],
)
@pytest.mark.parametrize("mark", [Mark.X, Mark.O])
def test_completing_a_line_wins(
    line: tuple[int, int, int], expected_pattern: Pattern, mark: Mark
) -> None:
    """Place two marks of a line, then complete it with a move on the third cell."""
    first, second, last = line
    board = Board().place(first, mark).place(second, mark)

    result = apply_move(board, last, mark)

    assert result.winner == mark
    assert result.pattern == expected_pattern
    assert not result.is_tie
    assert result.is_terminal


def test_canonical_line_order() -> None:
    """Pattern labels follow the canonical enumeration: rows, columns, diagonals."""
    assert [pattern for _, pattern in WINNING_LINES] == list(Pattern)


def test_mixed_line_does_not_win() -> None:
    board = Board.from_cells([X, O, _, _, _, _, _, _, _])
    result = apply_move(board, 2, Mark.X)
    assert result.winner is None
    assert result.pattern is None
    assert not result.is_terminal


def test_empty_line_does_not_win() -> None:
    """Three empty cells are 'identical' but do not count as a line."""
    result = apply_move(Board(), 4, Mark.O)
    assert result.winner is None
    assert not result.is_tie


# --- TIE DETECTION ---
def test_full_board_without_line_is_tie() -> None:
    # X O X
    # X O O
    # O X _   <- X plays the last cell, no line completed
    board = Board.from_cells([X, O, X, X, O, O, O, X, _])
    result = apply_move(board, 8, Mark.X)
    assert result.is_tie
    assert result.winner is None
    assert result.board.is_full()


def test_win_on_last_cell_is_not_tie() -> None:
    # X O X
    # O O X
    # O X _   <- X completes col3 on the last empty cell
    board = Board.from_cells([X, O, X, O, O, X, O, X, _])
    result = apply_move(board, 8, Mark.X)
    assert result.winner == Mark.X
    assert result.pattern == Pattern.COL3
    assert not result.is_tie


# --- BOARD ---
def test_apply_move_leaves_input_board_untouched() -> None:
    board = Board()
    result = apply_move(board, 0, Mark.X)
    assert board.is_empty(0)
    assert result.board.cells[0] == "X"


@pytest.mark.parametrize(("index", "expected"), [(-1, False), (0, True), (8, True), (9, False)])
def test_is_within_bounds(index: int, expected: bool) -> None:
    assert Board.is_within_bounds(index) is expected


def test_from_cells_rejects_wrong_size() -> None:
    with pytest.raises(ValueError):
        Board.from_cells([_] * 8)
