"""
Boundary layer data model(s).

These objects are used to communicate between the room manager and the persistence layer.
(Decouples the data model specific to the DB layer from the in-memory room records)
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

# Type aliases to make RoomModel easier to read
ColorName = str
GameStatePayload = dict[str, Any]


@dataclass
class RoomModel:
    """Transport-safe snapshot of a room. Connection identities are never persisted: they do not survive a restart."""

    code: str
    host_color: ColorName
    game_state: Optional[GameStatePayload]
    created_at: datetime
    updated_at: datetime
