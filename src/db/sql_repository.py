"""Implementation of (Room)Repository using SQLAlchemy"""

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.core.exceptions import RepositoryError
from src.core.models import RoomModel
from src.db.schema import DBRoom


class SQLRoomRepository:
    """Data stored using SQL / methods implemented using SQLAlchemy"""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def get_room(self, code: str) -> RoomModel | None:
        """Get room by code, if record exists."""
        room_db = self._fetch_room(code)
        if room_db:
            return self._to_model(room_db)
        return None

    def save_room(self, room: RoomModel) -> RoomModel:
        """Insert or update the record for this room code."""
        try:
            room_db = self._fetch_room(room.code)
            if room_db is None:
                room_db = DBRoom(code=room.code, created_at=room.created_at)
                self.db.add(room_db)
            room_db.host_color = room.host_color
            room_db.game_state = room.game_state
            room_db.updated_at = room.updated_at
            self.db.commit()
            self.db.refresh(room_db)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise RepositoryError(f"Could not save room {room.code}: {exc}") from exc
        return self._to_model(room_db)

    def delete_room(self, code: str) -> RoomModel | None:
        """Remove a room's record."""
        try:
            room_db = self._fetch_room(code)
            if not room_db:
                return None
            room_model = self._to_model(room_db)
            self.db.delete(room_db)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise RepositoryError(f"Could not delete room {code}: {exc}") from exc
        return room_model

    def list_rooms(self) -> list[RoomModel]:
        try:
            rooms_db = self.db.scalars(select(DBRoom)).all()
        except SQLAlchemyError as exc:
            raise RepositoryError(f"Could not list rooms: {exc}") from exc
        return [self._to_model(room_db) for room_db in rooms_db]

    def _fetch_room(self, code: str) -> DBRoom | None:
        query = select(DBRoom).where(DBRoom.code == code)
        return self.db.scalar(query)

    def _to_model(self, room_db: DBRoom) -> RoomModel:
        """Convert SQLAlchemy model to data transfer model."""
        return RoomModel(
            code=room_db.code,
            host_color=room_db.host_color,
            game_state=room_db.game_state,
            created_at=room_db.created_at,
            updated_at=room_db.updated_at,
        )
