"""
In-memory records owned by the RoomManager.

`host_id` / `guest_id` are connection identities: they change on every reconnect while the room itself persists.
"""

from dataclasses import dataclass
from typing import Any, Optional

from src.checkers.game import GameState
from src.checkers.square import Position
from src.core.shared_types import Color, Role, RoomPhase

DEFAULT_DISPLAY_NAME = "Player"


@dataclass
class PlayerSession:
    """One per live connection. Created when the connection registers, destroyed on disconnect."""

    connection_id: str
    display_name: str = DEFAULT_DISPLAY_NAME
    room_code: Optional[str] = None


@dataclass
class Room:
    code: str
    host_color: Color
    created_at: float
    last_seen: float
    host_id: Optional[str] = None
    guest_id: Optional[str] = None
    game_state: Optional[GameState] = None
    # set once a guest has joined; separates "awaiting guest" from "guest left"
    started: bool = False

    @property
    def guest_color(self) -> Color:
        return self.host_color.opponent

    @property
    def phase(self) -> RoomPhase:
        if self.host_id is None and self.guest_id is None:
            return RoomPhase.VACANT
        if self.host_id and self.guest_id:
            return RoomPhase.ACTIVE
        if not self.started and self.guest_id is None:
            return RoomPhase.AWAITING_GUEST
        return RoomPhase.PARTIALLY_CONNECTED

    @property
    def is_empty(self) -> bool:
        return self.host_id is None and self.guest_id is None

    def occupants(self) -> list[str]:
        return [seat for seat in (self.host_id, self.guest_id) if seat is not None]

    def role_of(self, connection_id: str) -> Optional[Role]:
        if connection_id == self.host_id:
            return Role.HOST
        if connection_id == self.guest_id:
            return Role.GUEST
        return None

    def color_of(self, role: Role) -> Color:
        return self.host_color if role == Role.HOST else self.guest_color

    def other_occupant(self, connection_id: str) -> Optional[str]:
        if connection_id == self.host_id:
            return self.guest_id
        if connection_id == self.guest_id:
            return self.host_id
        return None

    def vacate(self, role: Role) -> None:
        if role == Role.HOST:
            self.host_id = None
        else:
            self.guest_id = None


@dataclass(frozen=True)
class MoveIntent:
    from_square: Position
    to_square: Position

    def to_dict(self) -> dict[str, Any]:
        return {"from": self.from_square.to_dict(), "to": self.to_square.to_dict()}


@dataclass(frozen=True)
class SeatAssignment:
    """Returned to the connection that created, claimed or joined a room."""

    code: str
    color: Color
    is_host: bool
    invite_link: Optional[str] = None


@dataclass(frozen=True)
class ChatMessage:
    id: str
    sender: str
    text: str
    timestamp: int  # milliseconds since epoch
    color: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "sender": self.sender,
            "text": self.text,
            "timestamp": self.timestamp,
            "color": self.color,
        }


@dataclass(frozen=True)
class RoomStatus:
    """Read-only view used to decide whether to attempt a join."""

    exists: bool
    code: str
    host_color: Optional[Color] = None
    created_at: Optional[float] = None
    has_host: bool = False
    has_guest: bool = False
    phase: Optional[RoomPhase] = None
