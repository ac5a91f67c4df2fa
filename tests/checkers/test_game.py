"""Unit tests for src/checkers/game.py"""

from dataclasses import replace

import pytest

from src.checkers.board import Board
from src.checkers.game import GameState, play_move, select_piece
from src.checkers.square import Position
from src.core.exceptions import (
    GameStateError,
    IllegalMoveError,
    InvalidRequestError,
    NotYourTurnError,
)
from src.core.shared_types import Color, Rank

# Black at (2, 1) can jump (3, 2) and then (5, 4); Black at (2, 5) could only slide.
DOUBLE_JUMP = {(2, 1): "b", (3, 2): "w", (5, 4): "w", (2, 5): "b"}


@pytest.fixture
def double_jump_state(make_board) -> GameState:
    return GameState(board=make_board(DOUBLE_JUMP), current_turn=Color.BLACK)


def test_new_game() -> None:
    state = GameState.new()
    assert state.board == Board.initial()
    assert state.current_turn == Color.BLACK
    assert state.selected_piece is None
    assert state.valid_moves == []
    assert not state.game_over
    assert state.winner is None
    assert not state.must_capture


# --- SELECTION ---
def test_select_own_piece() -> None:
    state = select_piece(GameState.new(), Position(2, 3))
    assert state.selected_piece == Position(2, 3)
    assert state.valid_moves == [Position(3, 2), Position(3, 4)]
    assert not state.must_capture


@pytest.mark.parametrize(
    "square",
    [
        Position(5, 0),  # opponent piece
        Position(4, 3),  # empty
    ],
)
def test_select_anything_else_clears_selection(square: Position) -> None:
    selected = select_piece(GameState.new(), Position(2, 3))
    state = select_piece(selected, square)
    assert state.selected_piece is None
    assert state.valid_moves == []


def test_select_under_forced_capture(double_jump_state: GameState) -> None:
    """The piece that can only slide is selectable, but has no valid moves this turn."""
    state = select_piece(double_jump_state, Position(2, 5))
    assert state.must_capture
    assert state.valid_moves == []

    state = select_piece(double_jump_state, Position(2, 1))
    assert state.valid_moves == [Position(4, 3)]


# --- PLAY MOVE ---
def test_slide_passes_the_turn() -> None:
    state, record = play_move(
        GameState.new(), Position(2, 1), Position(3, 2), Color.BLACK
    )
    assert state.current_turn == Color.WHITE
    assert state.selected_piece is None
    assert state.valid_moves == []
    assert record.captured == []
    assert record.color == Color.BLACK


def test_not_your_turn() -> None:
    with pytest.raises(NotYourTurnError):
        _ = play_move(GameState.new(), Position(5, 0), Position(4, 1), Color.WHITE)


@pytest.mark.parametrize(
    ("from_square", "to_square"),
    [
        (Position(2, 1), Position(4, 3)),  # two steps without a piece to jump
        (Position(1, 0), Position(2, 1)),  # occupied
        (Position(3, 0), Position(4, 1)),  # no piece there
        (Position(2, 1), Position(1, 0)),  # backwards
    ],
)
def test_illegal_moves(from_square: Position, to_square: Position) -> None:
    with pytest.raises(IllegalMoveError):
        _ = play_move(GameState.new(), from_square, to_square, Color.BLACK)


def test_slide_not_allowed_when_capture_available(double_jump_state: GameState) -> None:
    with pytest.raises(IllegalMoveError):
        _ = play_move(double_jump_state, Position(2, 5), Position(3, 4), Color.BLACK)


def test_capture_chain_keeps_the_turn(double_jump_state: GameState) -> None:
    state, record = play_move(
        double_jump_state, Position(2, 1), Position(4, 3), Color.BLACK
    )
    assert record.captured == [Position(3, 2)]

    # turn does not pass, the jumping piece stays selected
    assert state.current_turn == Color.BLACK
    assert state.selected_piece == Position(4, 3)
    assert state.valid_moves == [Position(6, 5)]
    assert state.must_capture
    assert state.capture_sequence == [Position(4, 3)]
    assert not state.game_over

    # no other piece may move during the chain, and the selection cannot be changed
    with pytest.raises(IllegalMoveError):
        _ = play_move(state, Position(2, 5), Position(3, 4), Color.BLACK)
    assert select_piece(state, Position(2, 5)) == state

    state, record = play_move(state, Position(4, 3), Position(6, 5), Color.BLACK)
    assert record.captured == [Position(5, 4)]
    assert state.capture_sequence == []
    assert state.selected_piece is None

    # all white pieces gone
    assert state.game_over
    assert state.winner == Color.BLACK


def test_chain_continues_only_by_jumping(double_jump_state: GameState) -> None:
    state, _ = play_move(double_jump_state, Position(2, 1), Position(4, 3), Color.BLACK)
    with pytest.raises(IllegalMoveError):
        _ = play_move(state, Position(4, 3), Position(5, 2), Color.BLACK)


def test_promotion_through_play(make_board) -> None:
    state = GameState(
        board=make_board({(6, 1): "b", (0, 7): "w", (2, 1): "w"}),
        current_turn=Color.BLACK,
    )
    state, record = play_move(state, Position(6, 1), Position(7, 0), Color.BLACK)
    assert record.promoted
    piece = state.board.piece(Position(7, 0))
    assert piece is not None and piece.rank == Rank.KING
    assert state.current_turn == Color.WHITE


def test_turn_passes_with_forced_capture_flag(make_board) -> None:
    """After Black's slide, White is under forced capture."""
    state = GameState(
        board=make_board({(2, 1): "b", (4, 3): "w"}), current_turn=Color.BLACK
    )
    state, _ = play_move(state, Position(2, 1), Position(3, 2), Color.BLACK)
    assert state.current_turn == Color.WHITE
    assert state.must_capture


def test_win_by_blocking(make_board) -> None:
    """White's only piece is boxed in after Black's move: White, to move next, loses."""
    state = GameState(
        board=make_board({(1, 0): "w", (1, 2): "b", (3, 4): "b"}),
        current_turn=Color.BLACK,
    )
    state, _ = play_move(state, Position(1, 2), Position(2, 3), Color.BLACK)
    assert not state.game_over

    state = GameState(
        board=make_board({(1, 0): "w", (1, 2): "B", (3, 4): "b"}),
        current_turn=Color.BLACK,
    )
    state, _ = play_move(state, Position(1, 2), Position(0, 1), Color.BLACK)
    assert state.game_over
    assert state.winner == Color.BLACK


def test_no_moves_after_game_over(make_board) -> None:
    state = GameState(
        board=make_board({(4, 3): "b"}),
        current_turn=Color.WHITE,
        game_over=True,
        winner=Color.BLACK,
    )
    with pytest.raises(GameStateError):
        _ = play_move(state, Position(4, 3), Position(5, 4), Color.WHITE)


# --- SERIALIZATION ---
def test_dict_round_trip_mid_chain(double_jump_state: GameState) -> None:
    state, _ = play_move(double_jump_state, Position(2, 1), Position(4, 3), Color.BLACK)
    data = state.to_dict()

    assert data["current_turn"] == "black"
    assert data["selected_piece"] == {"row": 4, "col": 3}
    assert data["valid_moves"] == [{"row": 6, "col": 5}]
    assert GameState.from_dict(data) == state


def test_from_dict_defaults() -> None:
    data = {"board": Board.initial().to_rows(), "current_turn": "white"}
    state = GameState.from_dict(data)
    assert state == replace(GameState.new(), current_turn=Color.WHITE)


@pytest.mark.parametrize(
    "data",
    [
        {},
        {"board": Board.initial().to_rows(), "current_turn": "red"},
        {"board": [[None] * 8] * 3, "current_turn": "black"},
        {
            "board": Board.initial().to_rows(),
            "current_turn": "black",
            "selected_piece": {"x": 1},
        },
    ],
)
def test_from_dict_invalid(data: dict) -> None:
    with pytest.raises(InvalidRequestError):
        _ = GameState.from_dict(data)
