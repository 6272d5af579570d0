"""
Pytest configuration and shared fixtures.
"""
import random
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, List, Optional

import pytest

from minerace import board as engine
from minerace.registry import RoomRegistry
from minerace.session import SessionManager, Transport
from minerace.types import Board, Cell, GamePhase, Room


# ============================================================================
# Board helpers
# ============================================================================

def board_from_layout(layout: List[str]) -> Board:
    """Build a board from rows of '*' (mine) and '.' (safe)."""
    rows, cols = len(layout), len(layout[0])
    cells = [[Cell(is_mine=ch == '*') for ch in line] for line in layout]
    for r in range(rows):
        for c in range(cols):
            if not cells[r][c].is_mine:
                cells[r][c].adjacent_mines = engine.count_neighbor_mines(cells, r, c, rows, cols)
    mine_count = sum(line.count('*') for line in layout)
    return Board(cells=cells, rows=rows, cols=cols, mine_count=mine_count)


def revealed_set(board: Board) -> set:
    return {
        (r, c)
        for r in range(board.rows)
        for c in range(board.cols)
        if board.cells[r][c].is_revealed
    }


def mine_set(board: Board) -> set:
    return {
        (r, c)
        for r in range(board.rows)
        for c in range(board.cols)
        if board.cells[r][c].is_mine
    }


@pytest.fixture
def corner_mine_board() -> Board:
    """3x3 board with one mine in the top-left corner."""
    return board_from_layout([
        "*..",
        "...",
        "...",
    ])


@pytest.fixture
def split_board() -> Board:
    """5x5 board whose mine column walls off the right edge."""
    return board_from_layout([
        "...*.",
        "...*.",
        "...*.",
        "...*.",
        "...*.",
    ])


# ============================================================================
# Session fixtures
# ============================================================================

@dataclass
class Sent:
    event: str
    data: Any
    to: Optional[str]
    skip_sid: Optional[str]


class FakeTransport(Transport):
    """Records outbound events; background tasks run when asked."""

    def __init__(self):
        self.sent: List[Sent] = []
        self.rooms = defaultdict(set)
        self.tasks = []
        self.sleeps: List[float] = []

    def emit(self, event, data=None, to=None, skip_sid=None):
        self.sent.append(Sent(event, data, to, skip_sid))

    def enter_room(self, player_id, room_id):
        self.rooms[room_id].add(player_id)

    def leave_room(self, player_id, room_id):
        self.rooms[room_id].discard(player_id)

    def start_background_task(self, target, *args):
        self.tasks.append((target, args))

    def sleep(self, seconds):
        self.sleeps.append(seconds)

    def run_tasks(self):
        while self.tasks:
            target, args = self.tasks.pop(0)
            target(*args)

    def events(self, name: str) -> List[Sent]:
        return [s for s in self.sent if s.event == name]

    def names(self) -> List[str]:
        return [s.event for s in self.sent]

    def clear(self):
        self.sent.clear()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def registry() -> RoomRegistry:
    return RoomRegistry(rng=random.Random(1234))


@pytest.fixture
def session(registry: RoomRegistry, transport: FakeTransport) -> SessionManager:
    return SessionManager(registry, transport)


@pytest.fixture
def ready_room(session: SessionManager, transport: FakeTransport) -> Room:
    """Easy room with players 'a' (admin) and 'b', both ready."""
    room = session.create_room('a', 'easy', 'Alice')
    session.join_room('b', room.id, 'Bob')
    session.player_ready('a', room.id)
    session.player_ready('b', room.id)
    assert room.phase == GamePhase.READY
    transport.clear()
    return room


@pytest.fixture
def playing_room(session: SessionManager, transport: FakeTransport, ready_room: Room) -> Room:
    session.start_game('a', ready_room.id)
    transport.run_tasks()
    assert ready_room.phase == GamePhase.PLAYING
    transport.clear()
    return ready_room
