"""Orchestration of communication from the transport to the room manager (and the reverse direction)."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from pydantic import BaseModel, ValidationError

from src.api.models import (
    ChatMessageRequest,
    ClaimHostRequest,
    CreateRoomRequest,
    ErrorResponse,
    GameEndRequest,
    GameResetResponse,
    InboundMessage,
    JoinRoomRequest,
    MakeMoveRequest,
    MoveAcceptedResponse,
    OutboundMessage,
    PlayAgainRequest,
    RoomStatusResponse,
    SeatResponse,
)
from src.checkers.game import GameState
from src.checkers.square import Position
from src.core.exceptions import GameError, InvalidRequestError
from src.rooms.manager import RoomManager
from src.rooms.room import MoveIntent, SeatAssignment

logger = logging.getLogger(__name__)

ERROR_EVENT = "room-error"

Handler = Callable[[str, Any], Optional[BaseModel]]


@dataclass(frozen=True)
class Route:
    """Inbound event -> payload model, handler, and the event name of the reply to the sender (if any)."""

    request_model: type[BaseModel]
    handler: Handler
    reply_event: Optional[str]


class RoomService:
    """Orchestration of layers for the checkers rooms."""

    def __init__(self, manager: RoomManager) -> None:
        self.manager = manager
        self._routes: dict[str, Route] = {
            "create-room": Route(CreateRoomRequest, self.create_room, "room-created"),
            "claim-host": Route(ClaimHostRequest, self.claim_host, "host-claimed"),
            "join-room": Route(JoinRoomRequest, self.join_room, "room-joined"),
            "make-move": Route(MakeMoveRequest, self.make_move, "move-accepted"),
            "chat-message": Route(ChatMessageRequest, self.chat, None),
            "game-end": Route(GameEndRequest, self.game_end, None),
            "play-again": Route(PlayAgainRequest, self.play_again, "game-reset"),
        }

    # -- Connection lifecycle --
    def connect(self, connection_id: str) -> None:
        self.manager.register(connection_id)

    def disconnect(self, connection_id: str) -> None:
        self.manager.disconnect(connection_id)

    # -- Event dispatch --
    def handle(self, connection_id: str, raw: str) -> Optional[OutboundMessage]:
        """
        Process one inbound message.
        ----

        Returns the reply for the sender (if the event has one). Failures never propagate:
        they are turned into a `room-error` reply for the sender only.
        """
        try:
            message = InboundMessage.model_validate(json.loads(raw))
            route = self._routes.get(message.event)
            if route is None:
                raise InvalidRequestError(f"Unknown event: {message.event!r}")

            request = route.request_model.model_validate(message.data)
            response = route.handler(connection_id, request)
        except json.JSONDecodeError:
            return self._error(connection_id, InvalidRequestError("Invalid JSON"))
        except ValidationError as exc:
            return self._error(
                connection_id,
                InvalidRequestError(f"Invalid payload: {exc.error_count()} error(s)"),
            )
        except GameError as exc:
            return self._error(connection_id, exc)

        if route.reply_event is None or response is None:
            return None
        return OutboundMessage(
            event=route.reply_event, data=response.model_dump(mode="json")
        )

    # -- Event handlers --
    def create_room(
        self, connection_id: str, request: CreateRoomRequest
    ) -> SeatResponse:
        seat = self.manager.create_room(connection_id, request.display_name)
        return self._seat_response(seat)

    def claim_host(self, connection_id: str, request: ClaimHostRequest) -> SeatResponse:
        seat = self.manager.claim_host(
            connection_id, request.code, request.display_name
        )
        return self._seat_response(seat)

    def join_room(self, connection_id: str, request: JoinRoomRequest) -> SeatResponse:
        seat = self.manager.join_room(connection_id, request.code, request.display_name)
        return self._seat_response(seat)

    def make_move(
        self, connection_id: str, request: MakeMoveRequest
    ) -> MoveAcceptedResponse:
        move = MoveIntent(
            from_square=Position(
                request.move.from_square.row, request.move.from_square.col
            ),
            to_square=Position(request.move.to_square.row, request.move.to_square.col),
        )
        code = self.manager.normalize_code(request.code)
        # the sent state is only read when the server stores client states as they are
        sent_state = None
        if self.manager.settings.trust_client_state and request.game_state:
            sent_state = GameState.from_dict(request.game_state)
        new_state = self.manager.relay_move(connection_id, code, move, sent_state)
        return MoveAcceptedResponse(code=code, game_state=new_state.to_dict())

    def chat(self, connection_id: str, request: ChatMessageRequest) -> None:
        self.manager.relay_chat(connection_id, request.code, request.text)

    def game_end(self, connection_id: str, request: GameEndRequest) -> None:
        self.manager.relay_game_end(connection_id, request.code, request.winner)

    def play_again(
        self, connection_id: str, request: PlayAgainRequest
    ) -> GameResetResponse:
        code = self.manager.normalize_code(request.code)
        new_state = self.manager.reset_game(connection_id, code)
        return GameResetResponse(code=code, game_state=new_state.to_dict())

    # -- Queries --
    def room_status(self, code: str) -> RoomStatusResponse:
        status = self.manager.room_status(code)
        return RoomStatusResponse(
            exists=status.exists,
            code=status.code,
            host_color=status.host_color,
            created_at=status.created_at,
            has_host=status.has_host,
            has_guest=status.has_guest,
            phase=status.phase,
        )

    # -- Internal helpers --
    def _seat_response(self, seat: SeatAssignment) -> SeatResponse:
        return SeatResponse(
            code=seat.code,
            color=seat.color,
            is_host=seat.is_host,
            invite_link=seat.invite_link,
        )

    def _error(self, connection_id: str, exc: GameError) -> OutboundMessage:
        logger.info("Rejected request from %s: %s", connection_id, exc)
        return OutboundMessage(
            event=ERROR_EVENT,
            data=ErrorResponse(code=exc.code, message=str(exc)).model_dump(),
        )
