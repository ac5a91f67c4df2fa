"""
Type definitions used across layers
"""

from enum import StrEnum


class Color(StrEnum):
    BLACK = "black"
    WHITE = "white"

    @property
    def opponent(self) -> "Color":
        return Color.WHITE if self == Color.BLACK else Color.BLACK


class Rank(StrEnum):
    NORMAL = "normal"
    KING = "king"


class Role(StrEnum):
    """Seat a connection occupies in a room."""

    HOST = "host"
    GUEST = "guest"


class RoomPhase(StrEnum):
    AWAITING_GUEST = "awaiting guest"
    ACTIVE = "active"
    PARTIALLY_CONNECTED = "partially connected"
    # restored from a snapshot, nobody seated yet
    VACANT = "vacant"
