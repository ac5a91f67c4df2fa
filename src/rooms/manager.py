"""
RoomManager: the single authority over rooms and connected players.

Room life cycle:
    create ─> AWAITING_GUEST ─join─> ACTIVE ⇄ (one side disconnects / reclaims or rejoins) PARTIALLY_CONNECTED
    both seats empty ─> destroyed immediately
    older than the hard TTL, or vacant for longer than the idle window ─> destroyed by `sweep`

Every public operation runs under one lock, so operations on the same room never interleave.
Outbound events go through the Notifier, which only queues them.
The manager does not interpret moves itself; it asks the rules engine (src/checkers/game.py),
unless `Settings.trust_client_state` is set, in which case the sender's state is stored as it is.
"""

import logging
import random
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from src.checkers.game import GameState, play_move
from src.core.config import Settings
from src.core.exceptions import (
    GameError,
    GameStateError,
    InvalidRequestError,
    NotSeatedError,
    RoomFullError,
    RoomNotFoundError,
    ServiceUnavailableError,
)
from src.core.models import RoomModel
from src.core.shared_types import Color, Role
from src.db.repository import SnapshotSink
from src.rooms.codes import generate_room_code, invite_link, normalize_room_code
from src.rooms.notifier import Notifier
from src.rooms.room import (
    DEFAULT_DISPLAY_NAME,
    ChatMessage,
    MoveIntent,
    PlayerSession,
    Room,
    RoomStatus,
    SeatAssignment,
)

logger = logging.getLogger(__name__)

# purely cosmetic, picked at random per chat message
CHAT_COLORS = ["#3b82f6", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6", "#ec4899"]

MAX_DISPLAY_NAME_LENGTH = 40
MAX_CHAT_LENGTH = 500


class RoomManager:
    """Owns the rooms and player sessions."""

    def __init__(
        self,
        notifier: Notifier,
        settings: Optional[Settings] = None,
        snapshots: Optional[SnapshotSink] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.notifier = notifier
        self.settings = settings or Settings()
        self.snapshots = snapshots
        self._rng = rng or random.Random()
        self._clock = clock
        self._lock = threading.RLock()
        self._rooms: dict[str, Room] = {}
        self._sessions: dict[str, PlayerSession] = {}
        self._open = False

    # --- LIFECYCLE ---
    def open(self, restored: Iterable[RoomModel] = ()) -> None:
        """Start accepting operations. Restored rooms come back vacant: their previous connections are gone."""
        with self._lock:
            now = self._clock()
            for model in restored:
                try:
                    self._rooms[model.code] = self._from_model(model, now)
                except GameError as exc:
                    logger.warning("Skipping stored room %s: %s", model.code, exc)
            self._open = True
        logger.info("Room manager open with %d restored room(s)", len(self._rooms))

    def close(self) -> None:
        with self._lock:
            self._open = False
            self._rooms.clear()
            self._sessions.clear()
        logger.info("Room manager closed")

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    # --- CONNECTIONS ---
    def register(
        self, connection_id: str, display_name: Optional[str] = None
    ) -> PlayerSession:
        """A new connection arrived (or introduced itself under a new name)."""
        with self._lock:
            self._assert_open()
            return self._session(connection_id, display_name)

    def disconnect(self, connection_id: str) -> None:
        """
        Transport reported the connection as gone.
        ----

        Not an error: the seat is cleared, the room is kept for a reclaim/rejoin,
        unless nobody is left in it.
        """
        with self._lock:
            session = self._sessions.pop(connection_id, None)
            if session is None:
                return
            self._leave_room(session)
        logger.debug("Connection %s disconnected", connection_id)

    # --- ROOM OPERATIONS ---
    def create_room(
        self, connection_id: str, display_name: Optional[str] = None
    ) -> SeatAssignment:
        """Open a new room with the calling connection as host. The host color is a coin flip."""
        with self._lock:
            self._assert_open()
            code = generate_room_code(
                lambda candidate: candidate in self._rooms,
                rng=self._rng,
                max_attempts=self.settings.code_attempts,
            )
            session = self._session(connection_id, display_name)
            self._leave_room(session)

            now = self._clock()
            host_color = self._rng.choice([Color.BLACK, Color.WHITE])
            room = Room(
                code=code,
                host_color=host_color,
                created_at=now,
                last_seen=now,
                host_id=connection_id,
            )
            self._rooms[code] = room
            session.room_code = code
            self._snapshot(room)

        logger.info("Room %s created by %s (host plays %s)", code, connection_id, host_color)
        return SeatAssignment(
            code=code,
            color=host_color,
            is_host=True,
            invite_link=invite_link(self.settings.client_url, code),
        )

    def claim_host(
        self, connection_id: str, code: str, display_name: Optional[str] = None
    ) -> SeatAssignment:
        """
        Take over the host seat of an existing room.
        ----

        This is the reconnection path: it succeeds whether or not the previous host is still connected.
        The host color never changes.
        """
        code = self.normalize_code(code)
        with self._lock:
            self._assert_open()
            room = self._get_room(code)
            session = self._session(connection_id, display_name)
            if session.room_code != code:
                self._leave_room(session)
            elif room.role_of(connection_id) == Role.GUEST:
                room.vacate(Role.GUEST)

            previous_host = room.host_id
            room.host_id = connection_id
            room.last_seen = self._clock()
            session.room_code = code

            recipients = room.occupants()
            if previous_host is not None and previous_host != connection_id:
                displaced = self._sessions.get(previous_host)
                if displaced is not None and displaced.room_code == code:
                    displaced.room_code = None
                recipients.append(previous_host)

            for recipient in recipients:
                self.notifier.send(
                    recipient,
                    "host-reclaimed",
                    {"host_id": connection_id, "host_name": session.display_name},
                )
            self._snapshot(room)

        logger.info("Host seat of room %s claimed by %s", code, connection_id)
        return SeatAssignment(code=code, color=room.host_color, is_host=True)

    def join_room(
        self, connection_id: str, code: str, display_name: Optional[str] = None
    ) -> SeatAssignment:
        """
        Take the guest seat.
        ----

        The guest seat is gated by occupancy: RoomFullError as long as a connection holds it.
        The host may be absent. Both seats receive `game-start`.
        """
        code = self.normalize_code(code)
        with self._lock:
            self._assert_open()
            room = self._get_room(code)
            if room.host_id == connection_id:
                raise InvalidRequestError(f"You are already the host of room {code}.")
            if room.guest_id is not None and room.guest_id != connection_id:
                raise RoomFullError(f"Room {code} is full.")

            session = self._session(connection_id, display_name)
            if session.room_code != code:
                self._leave_room(session)

            room.guest_id = connection_id
            room.started = True
            room.last_seen = self._clock()
            session.room_code = code
            if room.game_state is None:
                room.game_state = GameState.new()

            host_session = self._sessions.get(room.host_id) if room.host_id else None
            payload = {
                "code": code,
                "host_name": host_session.display_name
                if host_session
                else DEFAULT_DISPLAY_NAME,
                "guest_name": session.display_name,
                "host_color": room.host_color.value,
                "game_state": room.game_state.to_dict(),
            }
            for occupant in room.occupants():
                self.notifier.send(occupant, "game-start", payload)
            self._snapshot(room)

        logger.info("Connection %s joined room %s", connection_id, code)
        return SeatAssignment(code=code, color=room.guest_color, is_host=False)

    def relay_move(
        self,
        connection_id: str,
        code: str,
        move: MoveIntent,
        game_state: Optional[GameState] = None,
    ) -> GameState:
        """
        Accept a move and forward it to the other seat (never echoed back to the sender).
        ----

        By default the move is replayed with the rules engine against the stored state:
        an illegal or out-of-turn move raises and leaves the room untouched.
        With `trust_client_state`, the sender's `game_state` replaces the stored state as it is.
        """
        with self._lock:
            self._assert_open()
            room, role = self._seated_room(connection_id, code)
            color = room.color_of(role)

            move_payload: dict[str, Any]
            if self.settings.trust_client_state:
                if game_state is None:
                    raise InvalidRequestError("A game_state is required with the move.")
                new_state = game_state
                move_payload = {**move.to_dict(), "color": color.value}
            else:
                if room.game_state is None:
                    raise GameStateError("The game has not started yet.")
                new_state, record = play_move(
                    room.game_state, move.from_square, move.to_square, color
                )
                move_payload = record.to_dict()

            room.game_state = new_state
            room.last_seen = self._clock()

            opponent = room.other_occupant(connection_id)
            if opponent is not None:
                self.notifier.send(
                    opponent,
                    "game-update",
                    {"game_state": new_state.to_dict(), "move": move_payload},
                )
            self._snapshot(room)

        if new_state.game_over:
            logger.info("Game in room %s won by %s", room.code, new_state.winner)
        return new_state

    def relay_chat(self, connection_id: str, code: str, text: str) -> ChatMessage:
        """Send a chat line to everybody in the room, sender included."""
        text = text.strip()
        if not text:
            raise InvalidRequestError("Chat message is empty.")

        with self._lock:
            self._assert_open()
            room, _ = self._seated_room(connection_id, code)
            session = self._sessions[connection_id]
            timestamp = int(self._clock() * 1000)
            message = ChatMessage(
                id=f"{timestamp}-{connection_id}",
                sender=session.display_name,
                text=text[:MAX_CHAT_LENGTH],
                timestamp=timestamp,
                color=self._rng.choice(CHAT_COLORS),
            )
            for occupant in room.occupants():
                self.notifier.send(occupant, "chat-message", message.to_dict())
        return message

    def relay_game_end(self, connection_id: str, code: str, winner: Color) -> None:
        """
        Forward the end of the game to the other seat.
        ----

        Unless the client state is trusted, the stored game must be over and `winner` must be its winner.
        """
        with self._lock:
            self._assert_open()
            room, _ = self._seated_room(connection_id, code)
            if not self.settings.trust_client_state:
                state = room.game_state
                if state is None or not state.game_over:
                    raise GameStateError("The game is not over yet.")
                if state.winner != winner:
                    raise GameStateError(
                        f"Winner {winner} does not match the game: {state.winner} won."
                    )

            opponent = room.other_occupant(connection_id)
            if opponent is not None:
                self.notifier.send(opponent, "game-end", {"winner": winner.value})

    def reset_game(self, connection_id: str, code: str) -> GameState:
        """
        Play again: the old game state is thrown away and a fresh one replaces it.

        Only a finished game can be replaced, unless the client state is trusted.
        """
        with self._lock:
            self._assert_open()
            room, _ = self._seated_room(connection_id, code)
            if not self.settings.trust_client_state and (
                room.game_state is None or not room.game_state.game_over
            ):
                raise GameStateError("The game is still running.")
            room.game_state = GameState.new()
            room.last_seen = self._clock()

            opponent = room.other_occupant(connection_id)
            if opponent is not None:
                self.notifier.send(
                    opponent, "game-reset", {"game_state": room.game_state.to_dict()}
                )
            self._snapshot(room)
            new_state = room.game_state

        logger.info("Game in room %s restarted by %s", room.code, connection_id)
        return new_state

    def room_status(self, code: str) -> RoomStatus:
        code = self.normalize_code(code)
        with self._lock:
            self._assert_open()
            room = self._rooms.get(code)
            if room is None:
                return RoomStatus(exists=False, code=code)
            return RoomStatus(
                exists=True,
                code=code,
                host_color=room.host_color,
                created_at=room.created_at,
                has_host=room.host_id is not None,
                has_guest=room.guest_id is not None,
                phase=room.phase,
            )

    def sweep(self, now: Optional[float] = None) -> list[str]:
        """
        Periodic expiry.
        ----

        * any room older than the hard TTL, whatever is happening in it
        * any room without occupants that has been idle for longer than the idle window
        Returns the codes of the removed rooms.
        """
        removed: list[str] = []
        with self._lock:
            now = self._clock() if now is None else now
            for code, room in list(self._rooms.items()):
                if now - room.created_at > self.settings.room_ttl_seconds:
                    self._destroy(code, reason="expired")
                elif (
                    room.is_empty
                    and now - room.last_seen > self.settings.idle_room_seconds
                ):
                    self._destroy(code, reason="idle")
                else:
                    continue
                removed.append(code)
        return removed

    def normalize_code(self, code: str) -> str:
        """Canonical room code, as used for storage (see `normalize_room_code`)."""
        return normalize_room_code(code, strict=self.settings.strict_codes)

    # -- PRIVATE HELPERS ---
    def _assert_open(self) -> None:
        if not self._open:
            raise ServiceUnavailableError("Room manager is not accepting requests.")

    def _get_room(self, code: str) -> Room:
        room = self._rooms.get(code)
        if room is None:
            raise RoomNotFoundError(f"Room {code} not found.")
        return room

    def _seated_room(self, connection_id: str, code: str) -> tuple[Room, Role]:
        """The room addressed by `code`, as long as the caller holds one of its seats."""
        room = self._get_room(self.normalize_code(code))
        role = room.role_of(connection_id)
        if role is None:
            raise NotSeatedError(f"You do not have a seat in room {room.code}.")
        return room, role

    def _session(
        self, connection_id: str, display_name: Optional[str]
    ) -> PlayerSession:
        """Fetch the session of this connection, creating it on first contact."""
        session = self._sessions.get(connection_id)
        if session is None:
            session = PlayerSession(connection_id=connection_id)
            self._sessions[connection_id] = session
        if display_name is not None:
            session.display_name = (
                display_name.strip()[:MAX_DISPLAY_NAME_LENGTH] or DEFAULT_DISPLAY_NAME
            )
        return session

    def _leave_room(self, session: PlayerSession) -> None:
        """Free the seat this session holds (if any) and tell whoever is left."""
        code, session.room_code = session.room_code, None
        room = self._rooms.get(code) if code else None
        if room is None:
            return

        role = room.role_of(session.connection_id)
        if role is None:
            return

        room.vacate(role)
        room.last_seen = self._clock()
        for occupant in room.occupants():
            self.notifier.send(occupant, "player-disconnected", {"role": role.value})
        logger.info("%s %s left room %s", role.value.capitalize(), session.connection_id, room.code)

        if room.is_empty:
            self._destroy(room.code, reason="both players left")
        else:
            self._snapshot(room)

    def _destroy(self, code: str, reason: str) -> None:
        room = self._rooms.pop(code)
        for occupant in room.occupants():
            session = self._sessions.get(occupant)
            if session is not None and session.room_code == code:
                session.room_code = None
            self.notifier.send(occupant, "room-closed", {"code": code, "reason": reason})
        if self.snapshots is not None:
            self.snapshots.delete(code)
        logger.info("Room %s removed (%s)", code, reason)

    def _snapshot(self, room: Room) -> None:
        if self.snapshots is not None:
            self.snapshots.save(self._to_model(room))

    def _to_model(self, room: Room) -> RoomModel:
        return RoomModel(
            code=room.code,
            host_color=room.host_color.value,
            game_state=room.game_state.to_dict() if room.game_state else None,
            created_at=datetime.fromtimestamp(room.created_at, tz=timezone.utc),
            updated_at=datetime.fromtimestamp(room.last_seen, tz=timezone.utc),
        )

    def _from_model(self, model: RoomModel, now: float) -> Room:
        created_at = model.created_at
        if created_at.tzinfo is None:
            # SQLite hands datetimes back without timezone; they were stored as UTC
            created_at = created_at.replace(tzinfo=timezone.utc)

        try:
            host_color = Color(model.host_color)
        except ValueError as exc:
            raise InvalidRequestError(f"Unknown host color {model.host_color!r}") from exc

        game_state = GameState.from_dict(model.game_state) if model.game_state else None
        return Room(
            code=model.code,
            host_color=host_color,
            created_at=created_at.timestamp(),
            last_seen=now,
            game_state=game_state,
            started=game_state is not None,
        )
