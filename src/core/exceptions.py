"""
Exceptions raised by the domain layers.

Every exception carries a short `code` that the service layer forwards to the client in a `room-error` event.
None of them is fatal: they are reported to the connection that caused them and the room is left untouched.
"""


class GameError(Exception):
    """Top-level exception for anything the service should report back to the caller."""

    code = "game_error"


# --- Request / input errors ---
class InvalidRequestError(GameError):
    """Malformed or missing payload. Never reaches room state."""

    code = "invalid_request"


class InvalidCodeError(InvalidRequestError):
    code = "invalid_code"


class InvalidBoardError(InvalidRequestError):
    """Board notation or board payload that cannot be interpreted."""

    code = "invalid_board"


# --- Room errors ---
class RoomNotFoundError(GameError):
    code = "room_not_found"


class RoomFullError(GameError):
    code = "room_full"


class CodeSpaceExhaustedError(GameError):
    """Could not find a free room code within the allowed number of attempts."""

    code = "code_space_exhausted"


class ServiceUnavailableError(GameError):
    """The room manager is not open (not started yet, or shutting down)."""

    code = "service_unavailable"


# --- Game errors ---
class GameStateError(GameError):
    code = "game_state"


class NotYourTurnError(GameStateError):
    code = "not_your_turn"


class NotSeatedError(GameStateError):
    """The connection does not occupy a seat in the room it addressed."""

    code = "not_seated"


class IllegalMoveError(GameError):
    code = "illegal_move"


# --- Persistence ---
class RepositoryError(GameError):
    code = "repository"
