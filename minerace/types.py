"""Type definitions for Minerace."""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from datetime import datetime
from enum import Enum


class Difficulty(str, Enum):
    """Fixed board presets shared by the server and the browser client."""
    EASY = 'easy'
    MEDIUM = 'medium'
    HARD = 'hard'

    @classmethod
    def parse(cls, value) -> 'Difficulty':
        """Unknown difficulty names fall back to medium."""
        try:
            return cls(value)
        except ValueError:
            return cls.MEDIUM


@dataclass(frozen=True)
class DifficultySettings:
    rows: int
    cols: int
    mines: int


DIFFICULTY_SETTINGS: Dict[Difficulty, DifficultySettings] = {
    Difficulty.EASY: DifficultySettings(rows=8, cols=8, mines=10),
    Difficulty.MEDIUM: DifficultySettings(rows=16, cols=16, mines=40),
    Difficulty.HARD: DifficultySettings(rows=20, cols=20, mines=100),
}


def get_difficulty_settings(difficulty) -> DifficultySettings:
    return DIFFICULTY_SETTINGS[Difficulty.parse(difficulty)]


@dataclass
class Cell:
    """Represents a single cell on the minesweeper board."""
    is_mine: bool = False
    is_revealed: bool = False
    is_flagged: bool = False
    adjacent_mines: int = 0


@dataclass
class Board:
    """A rectangular grid of cells with a fixed mine count."""
    cells: List[List[Cell]]
    rows: int
    cols: int
    mine_count: int

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def cell(self, row: int, col: int) -> Cell:
        return self.cells[row][col]


class GamePhase(str, Enum):
    """Lifecycle of a multiplayer room."""
    WAITING = 'waiting'
    READY = 'ready'
    COUNTDOWN = 'countdown'
    PLAYING = 'playing'
    FINISHED = 'finished'


@dataclass
class Player:
    """A connected participant; `id` is the realtime session id."""
    id: str
    name: str
    ready: bool = False
    is_admin: bool = False
    wants_to_play_again: bool = False


@dataclass
class Room:
    """A two-player race and everything it owns besides the board copies."""
    id: str
    difficulty: Difficulty
    seed: int
    players: List[Player] = field(default_factory=list)
    phase: GamePhase = GamePhase.WAITING
    game_start_time: Optional[int] = None
    winner: Optional[str] = None
    # Handle of the running countdown, if any.
    countdown: Optional['Countdown'] = field(default=None, repr=False, compare=False)

    @property
    def settings(self) -> DifficultySettings:
        return DIFFICULTY_SETTINGS[self.difficulty]

    def get_player(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def opponent_of(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id != player_id:
                return player
        return None

    @property
    def is_full(self) -> bool:
        return len(self.players) >= 2


class Countdown:
    """Pre-game timer owned by a room; cancelled at most once."""

    def __init__(self, room_id: str, seconds: int, board: Board, first_click: Tuple[int, int]):
        self.room_id = room_id
        self.remaining = seconds
        self.board = board
        self.first_click = first_click
        self.cancelled = False

    def cancel(self) -> bool:
        """Stop the timer. Returns False if it was already stopped."""
        if self.cancelled:
            return False
        self.cancelled = True
        return True


class GameStatus(str, Enum):
    """Possible states of a single-player game."""
    NOT_STARTED = 'NOT_STARTED'
    IN_PROGRESS = 'IN_PROGRESS'
    WON = 'WON'
    LOST = 'LOST'
    CLOSED = 'CLOSED'


@dataclass
class GameState:
    """Current state of a single-player game."""
    id: str
    board: Board
    status: GameStatus
    difficulty: str
    seed: int
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    flags_used: int = 0
    cells_revealed: int = 0


@dataclass
class MoveRequest:
    """Request to make a single-player move."""
    row: int
    col: int
    action: str  # 'reveal', 'flag'


@dataclass
class GameConfig:
    """Configuration for creating a new single-player game."""
    difficulty: str = Difficulty.MEDIUM.value
