"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/variables required for testing multiple layers.
"""

import random
from typing import Any, Callable, Generator

import pytest
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.checkers.board import Board
from src.checkers.pieces import Piece
from src.checkers.square import Position
from src.core.config import Settings
from src.core.models import RoomModel
from src.db.schema import Base
from src.rooms.manager import RoomManager

# Setup an in-memory SQLite database for testing
DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)

START_TIME = 1_700_000_000.0


@pytest.fixture
def db_session_repo() -> Generator[Session, None, None]:
    """Connection to a test database. Tables are removed at teardown to make unit tests of repository independent of each other."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        Base.metadata.drop_all(bind=engine)
        db.close()


# --- BOARD HELPERS ---
BoardFactory = Callable[[dict[tuple[int, int], str]], Board]


@pytest.fixture
def make_board() -> BoardFactory:
    """Call the inner function with {(row, col): "b" | "w" | "B" | "W"} to get an otherwise empty board"""

    def _create_board(pieces: dict[tuple[int, int], str]) -> Board:
        board = Board.empty()
        for (row, col), character in pieces.items():
            board = board.with_piece(Position(row, col), Piece.from_char(character))
        return board

    return _create_board


# --- MOCK DEPENDENCIES ---
class MockNotifier:
    """Records every event instead of sending it."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, dict[str, Any]]] = []

    def send(self, connection_id: str, event: str, payload: dict[str, Any]) -> None:
        self.sent.append((connection_id, event, payload))

    def events_for(self, connection_id: str) -> list[str]:
        return [event for target, event, _ in self.sent if target == connection_id]

    def last_payload(self, connection_id: str, event: str) -> dict[str, Any]:
        return next(
            payload
            for target, name, payload in reversed(self.sent)
            if target == connection_id and name == event
        )

    def clear(self) -> None:
        self.sent.clear()


class MockSnapshotSink:
    def __init__(self) -> None:
        self.saved: list[RoomModel] = []
        self.deleted: list[str] = []

    def save(self, room: RoomModel) -> None:
        self.saved.append(room)

    def delete(self, code: str) -> None:
        self.deleted.append(code)


class FakeClock:
    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FirstChoiceRandom(random.Random):
    """Always picks the first option: room code 'AAAAAA', host plays Black."""

    def choice(self, seq):  # type: ignore[override]
        return seq[0]


@pytest.fixture
def notifier() -> MockNotifier:
    return MockNotifier()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def manager(notifier: MockNotifier, clock: FakeClock) -> Generator[RoomManager, None, None]:
    """An open manager with default settings and a seeded random source."""
    room_manager = RoomManager(
        notifier, settings=Settings(), rng=random.Random(1234), clock=clock
    )
    room_manager.open()
    try:
        yield room_manager
    finally:
        room_manager.close()


@pytest.fixture
def snapshots() -> MockSnapshotSink:
    return MockSnapshotSink()


@pytest.fixture
def manager_factory(
    notifier: MockNotifier, clock: FakeClock
) -> Callable[..., RoomManager]:
    """Call the inner function with custom settings to get a predictable manager that is not opened yet."""

    def _create_manager(settings: Settings | None = None) -> RoomManager:
        return RoomManager(
            notifier, settings=settings or Settings(), rng=FirstChoiceRandom(), clock=clock
        )

    return _create_manager


@pytest.fixture
def fixed_manager(
    notifier: MockNotifier, clock: FakeClock, snapshots: MockSnapshotSink
) -> Generator[RoomManager, None, None]:
    """Predictable manager: every room gets code 'AAAAAA' and the host always plays Black. Snapshots are recorded."""
    room_manager = RoomManager(
        notifier,
        settings=Settings(code_attempts=3),
        snapshots=snapshots,
        rng=FirstChoiceRandom(),
        clock=clock,
    )
    room_manager.open()
    try:
        yield room_manager
    finally:
        room_manager.close()
