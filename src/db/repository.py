"""Protocol repository for room snapshots (implemented with SQLAlchemy, see sql_repository.py)"""

from typing import Protocol

from src.core.models import RoomModel


class RoomRepository(Protocol):
    """Persistence layer orchestration"""

    def get_room(self, code: str) -> RoomModel | None:
        """Get room by code, if record exists."""
        ...

    def save_room(self, room: RoomModel) -> RoomModel:
        """Insert or update the record for this room code."""
        ...

    def delete_room(self, code: str) -> RoomModel | None:
        """Remove a room's record."""
        ...

    def list_rooms(self) -> list[RoomModel]:
        """All stored rooms (used to restore rooms at startup)."""
        ...


class SnapshotSink(Protocol):
    """What the RoomManager hands its snapshots to. Must not block: the in-memory room stays the source of truth."""

    def save(self, room: RoomModel) -> None: ...

    def delete(self, code: str) -> None: ...
