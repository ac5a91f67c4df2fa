"""
A square on the board

(placed in its own module as multiple other modules need to import it)
"""

from __future__ import annotations

from dataclasses import dataclass

# Standard checkers: always 8x8
BOARD_SIZE = 8


@dataclass(frozen=True)
class Position:
    """Row and column, both 0-indexed. Row 0 is Black's back rank."""

    row: int
    col: int

    def is_within_bounds(self) -> bool:
        return 0 <= self.row < BOARD_SIZE and 0 <= self.col < BOARD_SIZE

    def is_dark(self) -> bool:
        """Pieces only ever stand on the dark squares."""
        return (self.row + self.col) % 2 == 1

    def offset(self, d_row: int, d_col: int) -> Position:
        return Position(self.row + d_row, self.col + d_col)

    def to_dict(self) -> dict[str, int]:
        return {"row": self.row, "col": self.col}
