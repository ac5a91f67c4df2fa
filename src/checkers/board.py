"""The board: an 8x8 grid where every cell holds at most one piece. Boards are never modified, every change returns a new Board."""

from dataclasses import dataclass
from typing import Any, Iterator, Optional, Self

from src.checkers.pieces import Piece
from src.checkers.square import BOARD_SIZE, Position
from src.core.exceptions import InvalidBoardError
from src.core.shared_types import Color

Cell = Optional[Piece]
Grid = tuple[tuple[Cell, ...], ...]

EMPTY_CHAR = "."
ROW_SEPARATOR = "/"

# rows each side fills in the starting layout
BLACK_START_ROWS = range(0, 3)
WHITE_START_ROWS = range(BOARD_SIZE - 3, BOARD_SIZE)


@dataclass(frozen=True)
class Board:
    cells: Grid

    @classmethod
    def empty(cls) -> Self:
        return cls(tuple((None,) * BOARD_SIZE for _ in range(BOARD_SIZE)))

    @classmethod
    def initial(cls) -> Self:
        """Black fills the dark squares of rows 0-2, White those of rows 5-7."""
        rows: list[tuple[Cell, ...]] = []
        for row in range(BOARD_SIZE):
            cells: list[Cell] = []
            for col in range(BOARD_SIZE):
                position = Position(row, col)
                if not position.is_dark():
                    cells.append(None)
                elif row in BLACK_START_ROWS:
                    cells.append(Piece(Color.BLACK))
                elif row in WHITE_START_ROWS:
                    cells.append(Piece(Color.WHITE))
                else:
                    cells.append(None)
            rows.append(tuple(cells))
        return cls(tuple(rows))

    @classmethod
    def from_text(cls, text: str) -> Self:
        """
        Construct a board from its compact text notation.

        8 rows separated by slashes, starting with row 0 (Black's back rank).
        Each row has 8 characters: '.' for an empty cell, 'b'/'w' for normal pieces and 'B'/'W' for kings.
        ex. starting position:
        .b.b.b.b/b.b.b.b./.b.b.b.b/......../......../w.w.w.w./.w.w.w.w/w.w.w.w.
        """
        text_rows = text.strip().split(ROW_SEPARATOR)
        if len(text_rows) != BOARD_SIZE:
            raise InvalidBoardError(
                f"Board notation needs {BOARD_SIZE} rows, got {len(text_rows)}."
            )

        rows: list[tuple[Cell, ...]] = []
        for text_row in text_rows:
            if len(text_row) != BOARD_SIZE:
                raise InvalidBoardError(
                    f"Every row needs {BOARD_SIZE} cells, got {text_row!r}."
                )
            rows.append(
                tuple(
                    None if character == EMPTY_CHAR else Piece.from_char(character)
                    for character in text_row
                )
            )
        return cls(tuple(rows))

    def to_text(self) -> str:
        return ROW_SEPARATOR.join(
            "".join(EMPTY_CHAR if cell is None else cell.to_char() for cell in row)
            for row in self.cells
        )

    @classmethod
    def from_rows(cls, rows: list[list[Optional[dict[str, Any]]]]) -> Self:
        """JSON layout: a list of 8 rows, each a list of 8 cells that are null or {"color": ..., "rank": ...}"""
        if len(rows) != BOARD_SIZE or any(len(row) != BOARD_SIZE for row in rows):
            raise InvalidBoardError(f"Board must be {BOARD_SIZE}x{BOARD_SIZE}.")
        return cls(
            tuple(
                tuple(None if cell is None else Piece.from_dict(cell) for cell in row)
                for row in rows
            )
        )

    def to_rows(self) -> list[list[Optional[dict[str, str]]]]:
        return [
            [None if cell is None else cell.to_dict() for cell in row]
            for row in self.cells
        ]

    def piece(self, position: Position) -> Cell:
        return self.cells[position.row][position.col]

    def is_empty(self, position: Position) -> bool:
        return self.piece(position) is None

    def with_piece(self, position: Position, piece: Cell) -> Self:
        """Copy of the board where a single cell has been replaced."""
        row = list(self.cells[position.row])
        row[position.col] = piece
        rows = list(self.cells)
        rows[position.row] = tuple(row)
        return type(self)(tuple(rows))

    def occupied(self) -> Iterator[tuple[Position, Piece]]:
        for row_idx, row in enumerate(self.cells):
            for col_idx, cell in enumerate(row):
                if cell is not None:
                    yield Position(row_idx, col_idx), cell

    def locate_color(self, color: Color) -> list[Position]:
        return [position for position, piece in self.occupied() if piece.color == color]

    def count(self, color: Color) -> int:
        return len(self.locate_color(color))
