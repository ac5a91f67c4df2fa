"""Inbound event payloads and outbound event / response models"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.checkers.square import BOARD_SIZE
from src.core.exceptions import InvalidRequestError
from src.core.shared_types import Color, RoomPhase

GameStatePayload = dict[str, Any]


class PositionModel(BaseModel):
    row: int
    col: int

    @field_validator("row", "col")
    @classmethod
    def validate_on_board(cls, value: int) -> int:
        if not 0 <= value < BOARD_SIZE:
            raise InvalidRequestError(
                f"Square index {value} is off the board (0-{BOARD_SIZE - 1})."
            )
        return value


class MoveModel(BaseModel):
    """{"from": {"row": .., "col": ..}, "to": {...}}"""

    model_config = ConfigDict(populate_by_name=True)

    from_square: PositionModel = Field(alias="from")
    to_square: PositionModel = Field(alias="to")


# --- ENVELOPES ---
class InboundMessage(BaseModel):
    """Every message on the channel: {"event": "join-room", "data": {...}}"""

    event: str
    data: dict[str, Any] = Field(default_factory=dict)


class OutboundMessage(BaseModel):
    event: str
    data: dict[str, Any] = Field(default_factory=dict)


# --- REQUEST MODELS ---
class CreateRoomRequest(BaseModel):
    display_name: Optional[str] = None


class ClaimHostRequest(BaseModel):
    code: str
    display_name: Optional[str] = None


class JoinRoomRequest(BaseModel):
    code: str
    display_name: Optional[str] = None


class MakeMoveRequest(BaseModel):
    code: str
    move: MoveModel
    # only used when the server trusts the client's computed state
    game_state: Optional[GameStatePayload] = None


class ChatMessageRequest(BaseModel):
    code: str
    text: str

    @field_validator("text")
    @classmethod
    def validate_text(cls, value: str) -> str:
        if not value.strip():
            raise InvalidRequestError("Chat message is empty.")
        return value


class GameEndRequest(BaseModel):
    code: str
    winner: Color


class PlayAgainRequest(BaseModel):
    code: str


# --- RESPONSE MODELS ---
class SeatResponse(BaseModel):
    code: str
    color: Color
    is_host: bool
    invite_link: Optional[str] = None


class MoveAcceptedResponse(BaseModel):
    code: str
    game_state: GameStatePayload


class GameResetResponse(BaseModel):
    code: str
    game_state: GameStatePayload


class ErrorResponse(BaseModel):
    code: str
    message: str


class RoomStatusResponse(BaseModel):
    exists: bool
    code: str
    host_color: Optional[Color] = None
    created_at: Optional[float] = None
    has_host: bool = False
    has_guest: bool = False
    phase: Optional[RoomPhase] = None


class HealthResponse(BaseModel):
    status: str
    rooms: int
    connections: int
