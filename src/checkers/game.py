"""
GameState is the entrypoint into the rules engine for the room layer.

A GameState is never patched: every accepted selection or move produces a new one.
It is responsible for applying the turn rules (whose turn it is, forced capture, capture chains, end of game)
on top of the movement rules in src/checkers/moves.py.

`play_move` is what the room manager runs for every move. `select_piece` is the selection step of a board UI
(highlighted piece plus its destinations); the server itself never calls it.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Optional, Self

from src.checkers.board import Board
from src.checkers.moves import (
    apply_move,
    check_winner,
    generate_moves,
    get_all_captures,
    has_more_captures,
    legal_destinations,
)
from src.checkers.square import Position
from src.core.exceptions import (
    GameStateError,
    IllegalMoveError,
    InvalidRequestError,
    NotYourTurnError,
)
from src.core.shared_types import Color


@dataclass(frozen=True)
class MoveRecord:
    """What happened during a single step of a turn. Sent along with the new state to the opponent."""

    from_square: Position
    to_square: Position
    color: Color
    captured: list[Position] = field(default_factory=list)
    promoted: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_square.to_dict(),
            "to": self.to_square.to_dict(),
            "color": self.color.value,
            "captured": [position.to_dict() for position in self.captured],
            "promoted": self.promoted,
        }


@dataclass(frozen=True)
class GameState:
    board: Board
    current_turn: Color
    selected_piece: Optional[Position] = None
    valid_moves: list[Position] = field(default_factory=list)
    game_over: bool = False
    winner: Optional[Color] = None
    must_capture: bool = False
    # landing squares of the capture chain in progress (empty when no chain is pending)
    capture_sequence: list[Position] = field(default_factory=list)

    @classmethod
    def new(cls) -> Self:
        """Starting layout, Black moves first."""
        return cls(board=Board.initial(), current_turn=Color.BLACK)

    @property
    def chain_pending(self) -> bool:
        return len(self.capture_sequence) > 0

    # --- SERIALIZATION ---
    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Rebuild a GameState from its JSON form (see `to_dict`)."""
        try:
            selected = data.get("selected_piece")
            winner = data.get("winner")
            return cls(
                board=Board.from_rows(data["board"]),
                current_turn=Color(data["current_turn"]),
                selected_piece=Position(**selected) if selected else None,
                valid_moves=[Position(**pos) for pos in data.get("valid_moves", [])],
                game_over=bool(data.get("game_over", False)),
                winner=Color(winner) if winner else None,
                must_capture=bool(data.get("must_capture", False)),
                capture_sequence=[
                    Position(**pos) for pos in data.get("capture_sequence", [])
                ],
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidRequestError(f"Cannot interpret game state: {exc}") from exc

    def to_dict(self) -> dict[str, Any]:
        return {
            "board": self.board.to_rows(),
            "current_turn": self.current_turn.value,
            "selected_piece": self.selected_piece.to_dict()
            if self.selected_piece
            else None,
            "valid_moves": [position.to_dict() for position in self.valid_moves],
            "game_over": self.game_over,
            "winner": self.winner.value if self.winner else None,
            "must_capture": self.must_capture,
            "capture_sequence": [
                position.to_dict() for position in self.capture_sequence
            ],
        }


def select_piece(state: GameState, position: Position) -> GameState:
    """
    Player with the move clicked a square (without a move being made).
    ----

    * own piece: select it, the valid moves obey the board-wide forced capture rule
    * anything else: clear the selection
    * during a capture chain the selection is pinned to the jumping piece
    """
    if state.game_over or state.chain_pending:
        return state

    color = state.current_turn
    piece = state.board.piece(position)
    if piece is None or piece.color != color:
        return replace(state, selected_piece=None, valid_moves=[])

    return replace(
        state,
        selected_piece=position,
        valid_moves=legal_destinations(state.board, position, color),
        must_capture=len(get_all_captures(state.board, color)) > 0,
    )


def play_move(
    state: GameState, from_square: Position, to_square: Position, color: Color
) -> tuple[GameState, MoveRecord]:
    """
    Attempt a single step (slide or jump) for the player with `color`.
    ----

    1. the game must still be running and it must be `color`'s turn
    2. `to_square` must be in the engine's own set of destinations for `from_square`
    3. apply the step
    4. a jump that can be followed by another jump keeps the turn: the piece stays selected
    5. otherwise the turn passes, and the winner is judged for the side to move next
    """
    if state.game_over:
        raise GameStateError(f"Game is over. Winner: {state.winner}")

    if color != state.current_turn:
        raise NotYourTurnError(
            f"It is not your turn. Waiting for {state.current_turn} to move first."
        )

    allowed = _allowed_destinations(state, from_square, color)
    if to_square not in allowed:
        raise IllegalMoveError(
            f"Move not allowed: {from_square} -> {to_square} for {color}."
        )

    result = apply_move(state.board, from_square, to_square)
    record = MoveRecord(
        from_square=from_square,
        to_square=to_square,
        color=color,
        captured=result.captured,
        promoted=result.promoted,
    )

    if result.captured and has_more_captures(result.board, to_square, color):
        continuation = generate_moves(result.board, to_square, color).captures
        new_state = GameState(
            board=result.board,
            current_turn=color,
            selected_piece=to_square,
            valid_moves=[capture.to_square for capture in continuation],
            must_capture=True,
            capture_sequence=[*state.capture_sequence, to_square],
        )
        return _with_winner(new_state), record

    next_turn = color.opponent
    new_state = GameState(
        board=result.board,
        current_turn=next_turn,
        must_capture=len(get_all_captures(result.board, next_turn)) > 0,
    )
    return _with_winner(new_state), record


# -- PRIVATE HELPERS ---
def _allowed_destinations(
    state: GameState, from_square: Position, color: Color
) -> list[Position]:
    if state.chain_pending:
        # only the jumping piece may move, and only by jumping again
        if from_square != state.selected_piece:
            return []
        return [
            capture.to_square
            for capture in generate_moves(state.board, from_square, color).captures
        ]
    return legal_destinations(state.board, from_square, color)


def _with_winner(state: GameState) -> GameState:
    winner = check_winner(state.board, state.current_turn)
    if winner is None:
        return state
    return replace(
        state,
        winner=winner,
        game_over=True,
        selected_piece=None,
        valid_moves=[],
        capture_sequence=[],
    )
