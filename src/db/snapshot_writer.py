"""
Best-effort persistence of room snapshots.

The RoomManager hands snapshots over while holding its lock, so handing over must never block:
snapshots are queued and written by a background thread. When the queue is full the snapshot is dropped.
"""

import logging
import queue
import threading
from typing import Optional

from src.core.exceptions import RepositoryError
from src.core.models import RoomModel
from src.db.repository import RoomRepository

logger = logging.getLogger(__name__)

_STOP = object()


class SnapshotWriter:
    """Implements SnapshotSink on top of a RoomRepository. Only the writer thread touches the repository."""

    def __init__(self, repository: RoomRepository, max_pending: int = 1000) -> None:
        self.repository = repository
        self._queue: queue.Queue[object] = queue.Queue(maxsize=max_pending)
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run, name="room-snapshots", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Write what is still queued, then stop the thread."""
        if self._thread is None:
            return
        self._queue.put(_STOP, timeout=timeout)
        self._thread.join(timeout=timeout)
        self._thread = None

    def save(self, room: RoomModel) -> None:
        self._offer(("save", room))

    def delete(self, code: str) -> None:
        self._offer(("delete", code))

    def _offer(self, item: tuple[str, object]) -> None:
        try:
            self._queue.put_nowait(item)
        except queue.Full:
            logger.warning("Snapshot queue full, dropping %s", item[0])

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                break
            operation, argument = item  # type: ignore[misc]
            try:
                if operation == "save":
                    self.repository.save_room(argument)
                else:
                    self.repository.delete_room(argument)
            except RepositoryError as exc:
                logger.warning("Snapshot %s failed: %s", operation, exc)
