"""
FastAPI application - real-time transport for the checkers rooms.

Endpoints:
    WS     /ws              Duplex event channel, one per connected player
    GET    /rooms/{code}    Room status (check a room before trying to join it)
    GET    /health          Liveness + number of live rooms

Messages on the channel are JSON: {"event": "<name>", "data": {...}}.
Replies and broadcasts use the same envelope; failures come back as "room-error" to the sender only.
"""

import asyncio
import contextlib
import logging
import random
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from uuid import uuid4

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.hub import ConnectionHub, Message
from src.api.models import ErrorResponse, HealthResponse, RoomStatusResponse
from src.core.config import Settings
from src.core.exceptions import InvalidCodeError, RepositoryError
from src.core.models import RoomModel
from src.db.database import create_db_engine, session_factory
from src.db.snapshot_writer import SnapshotWriter
from src.db.sql_repository import SQLRoomRepository
from src.rooms.manager import RoomManager
from src.services.room_service import RoomService

logger = logging.getLogger(__name__)


async def sweep_forever(manager: RoomManager, interval: float) -> None:
    """Background expiry of rooms, once every `interval` seconds."""
    while True:
        await asyncio.sleep(interval)
        removed = manager.sweep()
        if removed:
            logger.info("Sweep removed %d room(s)", len(removed))


async def forward_outbox(
    websocket: WebSocket,
    hub: ConnectionHub,
    connection_id: str,
    outbox: asyncio.Queue[Message],
) -> None:
    """
    Drain one connection's queue onto its socket.

    Once the socket refuses a message the outbox is detached, so nothing queues up for it
    until the receive loop notices the disconnect and does the rest of the cleanup.
    """
    while True:
        message = await outbox.get()
        try:
            await websocket.send_json(message)
        except (WebSocketDisconnect, RuntimeError):
            logger.debug("Socket of %s closed, detaching its outbox", connection_id)
            hub.detach(connection_id)
            return


def create_app(
    settings: Optional[Settings] = None, rng: Optional[random.Random] = None
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: configuration (read from the environment if not provided)
        rng: random source for room codes / colors (tests pass a seeded one)
    """
    settings = settings or Settings.from_env()
    hub = ConnectionHub()
    manager = RoomManager(hub, settings=settings, rng=rng)
    service = RoomService(manager)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        restored: list[RoomModel] = []
        writer: Optional[SnapshotWriter] = None
        engine = None
        if settings.database_url:
            engine = create_db_engine(settings.database_url)
            factory = session_factory(engine)
            with factory() as db:
                try:
                    restored = SQLRoomRepository(db).list_rooms()
                except RepositoryError as exc:
                    logger.warning("Could not restore rooms: %s", exc)
            writer = SnapshotWriter(SQLRoomRepository(factory()))
            writer.start()
            manager.snapshots = writer

        manager.open(restored)
        sweeper = asyncio.create_task(
            sweep_forever(manager, settings.sweep_interval_seconds)
        )
        try:
            yield
        finally:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
            manager.close()
            if writer is not None:
                writer.stop()
                writer.repository.db.close()
            if engine is not None:
                engine.dispose()

    app = FastAPI(
        title="Checkers Rooms",
        description="Two-player checkers over WebSockets: rooms, reconnection, move relay.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.hub = hub
    app.state.manager = manager
    app.state.service = service

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(
            status="ok" if manager.is_open else "closed",
            rooms=manager.room_count,
            connections=hub.connection_count,
        )

    @app.get(
        "/rooms/{code}",
        response_model=RoomStatusResponse,
        responses={404: {"model": RoomStatusResponse}, 400: {"model": ErrorResponse}},
    )
    async def room_status(code: str) -> RoomStatusResponse | JSONResponse:
        try:
            status = service.room_status(code)
        except InvalidCodeError as exc:
            return JSONResponse(
                status_code=400,
                content=ErrorResponse(code=exc.code, message=str(exc)).model_dump(),
            )
        if not status.exists:
            return JSONResponse(status_code=404, content=status.model_dump(mode="json"))
        return status

    @app.websocket("/ws")
    async def room_channel(websocket: WebSocket) -> None:
        await websocket.accept()
        connection_id = uuid4().hex
        outbox = hub.attach(connection_id)
        writer = asyncio.create_task(
            forward_outbox(websocket, hub, connection_id, outbox)
        )
        try:
            service.connect(connection_id)
            hub.send(connection_id, "connected", {"connection_id": connection_id})
            while True:
                raw = await websocket.receive_text()
                reply = service.handle(connection_id, raw)
                if reply is not None:
                    hub.send(connection_id, reply.event, reply.data)
        except WebSocketDisconnect:
            pass
        finally:
            service.disconnect(connection_id)
            hub.detach(connection_id)
            writer.cancel()

    return app
