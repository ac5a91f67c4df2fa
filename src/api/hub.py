"""Outbound side of the WebSocket transport: one queue per live connection."""

import asyncio
import logging
from typing import Any

logger = logging.getLogger(__name__)

Message = dict[str, Any]


class ConnectionHub:
    """
    Implements the Notifier protocol.

    `send` only enqueues; each connection's endpoint drains its own queue onto the socket.
    Must be used from the event loop thread.
    """

    def __init__(self) -> None:
        self._outboxes: dict[str, asyncio.Queue[Message]] = {}

    def attach(self, connection_id: str) -> asyncio.Queue[Message]:
        outbox: asyncio.Queue[Message] = asyncio.Queue()
        self._outboxes[connection_id] = outbox
        return outbox

    def detach(self, connection_id: str) -> None:
        self._outboxes.pop(connection_id, None)

    def send(self, connection_id: str, event: str, payload: dict[str, Any]) -> None:
        outbox = self._outboxes.get(connection_id)
        if outbox is None:
            logger.debug("Dropping %s for unknown connection %s", event, connection_id)
            return
        outbox.put_nowait({"event": event, "data": payload})

    @property
    def connection_count(self) -> int:
        return len(self._outboxes)
