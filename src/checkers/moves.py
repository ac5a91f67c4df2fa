"""
Movement and capturing rules

Short-hop checkers: every step (slide or jump) covers exactly one diagonal, a jump removes exactly one opposing piece.
Kings use all four diagonals, normal pieces only move "forward".

None of these functions check whose turn it is; that is left to the game state (src/checkers/game.py).
`legal_destinations` and `selectable_pieces` are what a board UI needs to highlight squares; the server only uses the former.
"""

from dataclasses import dataclass, field

from src.checkers.board import Board
from src.checkers.pieces import Piece
from src.checkers.square import BOARD_SIZE, Position
from src.core.exceptions import IllegalMoveError
from src.core.shared_types import Color

Vector = tuple[int, int]

ALL_DIAGONALS: list[Vector] = [(-1, -1), (-1, 1), (1, -1), (1, 1)]

# Black starts on row 0 and moves down the board, White starts on row 7 and moves up
FORWARD_DIAGONALS: dict[Color, list[Vector]] = {
    Color.BLACK: [(1, -1), (1, 1)],
    Color.WHITE: [(-1, -1), (-1, 1)],
}

PROMOTION_ROW: dict[Color, int] = {
    Color.BLACK: BOARD_SIZE - 1,
    Color.WHITE: 0,
}


@dataclass(frozen=True)
class Capture:
    """A single jump: over `captured` from `from_square` to `to_square`"""

    from_square: Position
    to_square: Position
    captured: Position

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {
            "from": self.from_square.to_dict(),
            "to": self.to_square.to_dict(),
            "captured": self.captured.to_dict(),
        }


@dataclass
class MoveSet:
    """Slides (plain destinations) and captures available to one piece."""

    moves: list[Position] = field(default_factory=list)
    captures: list[Capture] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.moves and not self.captures


@dataclass(frozen=True)
class MoveResult:
    board: Board
    captured: list[Position]
    promoted: bool


def directions(piece: Piece) -> list[Vector]:
    return ALL_DIAGONALS if piece.is_king else FORWARD_DIAGONALS[piece.color]


def generate_moves(board: Board, position: Position, color: Color) -> MoveSet:
    """
    Slides and captures for the piece on `position`, seen from the player with `color`.
    ----

    * empty cell or a piece of the other color: nothing (not an error)
    * capture: the neighbouring diagonal cell holds an opposing piece, the cell behind it is on the board and empty
    * capture priority: as soon as one capture exists, the slides are dropped
    """
    piece = board.piece(position)
    if piece is None or piece.color != color:
        return MoveSet()

    captures: list[Capture] = []
    for d_row, d_col in directions(piece):
        mid = position.offset(d_row, d_col)
        landing = position.offset(2 * d_row, 2 * d_col)
        if not landing.is_within_bounds():
            continue

        jumped = board.piece(mid)
        if jumped is not None and jumped.color != color and board.is_empty(landing):
            captures.append(Capture(position, landing, mid))

    if captures:
        return MoveSet(captures=captures)

    moves: list[Position] = []
    for d_row, d_col in directions(piece):
        target = position.offset(d_row, d_col)
        if target.is_within_bounds() and board.is_empty(target):
            moves.append(target)
    return MoveSet(moves=moves)


def get_all_captures(board: Board, color: Color) -> list[Capture]:
    """Every capture available to `color`. Non-empty means the whole turn is under forced capture."""
    captures: list[Capture] = []
    for position in board.locate_color(color):
        captures.extend(generate_moves(board, position, color).captures)
    return captures


def has_more_captures(board: Board, position: Position, color: Color) -> bool:
    """Can the piece that just landed on `position` keep on jumping?"""
    return len(generate_moves(board, position, color).captures) > 0


def legal_destinations(board: Board, position: Position, color: Color) -> list[Position]:
    """Destinations for the piece on `position` once the board-wide forced capture rule is applied."""
    move_set = generate_moves(board, position, color)
    if get_all_captures(board, color):
        return [capture.to_square for capture in move_set.captures]
    return move_set.moves


def selectable_pieces(board: Board, color: Color) -> list[Position]:
    """Pieces of `color` that have at least one legal destination this turn."""
    return [
        position
        for position in board.locate_color(color)
        if legal_destinations(board, position, color)
    ]


def apply_move(board: Board, from_square: Position, to_square: Position) -> MoveResult:
    """
    Relocate a piece
    ----

    The move itself is not validated: callers get `to_square` from `generate_moves` / `get_all_captures`.
    * a row distance of 2 is a jump: the square in between is cleared and reported as captured
    * landing on the far row promotes the piece to a King (for slides as well as jumps)
    """
    piece = board.piece(from_square)
    if piece is None:
        raise IllegalMoveError(f"No piece to move on {from_square}.")

    new_board = board.with_piece(from_square, None)

    captured: list[Position] = []
    if abs(to_square.row - from_square.row) == 2:
        mid = Position(
            (from_square.row + to_square.row) // 2,
            (from_square.col + to_square.col) // 2,
        )
        new_board = new_board.with_piece(mid, None)
        captured.append(mid)

    promoted = not piece.is_king and to_square.row == PROMOTION_ROW[piece.color]
    new_board = new_board.with_piece(
        to_square, piece.promoted() if promoted else piece
    )
    return MoveResult(new_board, captured, promoted)


def has_legal_move(board: Board, color: Color) -> bool:
    return any(
        not generate_moves(board, position, color).is_empty
        for position in board.locate_color(color)
    )


def is_defeated(board: Board, color: Color) -> bool:
    """No pieces left, or every remaining piece is blocked."""
    return board.count(color) == 0 or not has_legal_move(board, color)


def check_winner(board: Board, side_to_move: Color) -> Color | None:
    """
    Terminal state detection. There is no draw.
    ----

    The side about to move is judged first: if it cannot move, it loses right away.
    Only then is the other side checked for the same conditions.
    """
    if is_defeated(board, side_to_move):
        return side_to_move.opponent
    if is_defeated(board, side_to_move.opponent):
        return side_to_move
    return None
