"""In-memory room registry."""
import logging
import random
import string
from typing import Callable, Dict, List, Optional

from minerace.errors import RoomFull, RoomNotFound
from minerace.types import Board, Difficulty, GamePhase, Player, Room

logger = logging.getLogger(__name__)

ROOM_ID_ALPHABET = string.ascii_lowercase + string.digits
ROOM_ID_LENGTH = 4
MAX_SEED = 1_000_000


class RoomRegistry:
    """Owns every live room and the per-player board copies of each room.

    One instance is built at startup and handed to the session layer; it
    holds no process-wide state of its own.
    """

    def __init__(self, rng: Optional[random.Random] = None,
                 id_factory: Optional[Callable[[], str]] = None):
        self._rng = rng or random.Random()
        self._id_factory = id_factory or self._random_room_id
        self._rooms: Dict[str, Room] = {}
        self._boards: Dict[str, Dict[str, Board]] = {}

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    def _random_room_id(self) -> str:
        return ''.join(self._rng.choice(ROOM_ID_ALPHABET) for _ in range(ROOM_ID_LENGTH))

    def new_seed(self) -> int:
        return self._rng.randrange(MAX_SEED)

    def _allocate_id(self) -> str:
        room_id = self._id_factory()
        while room_id in self._rooms:
            logger.debug(f"Room id {room_id} already taken, drawing another")
            room_id = self._id_factory()
        return room_id

    def create_room(self, difficulty, creator_name: str, creator_id: str) -> Room:
        """Create a waiting room with the creator as its admin."""
        room = Room(
            id=self._allocate_id(),
            difficulty=Difficulty.parse(difficulty),
            seed=self.new_seed(),
            players=[Player(id=creator_id, name=creator_name, is_admin=True)],
        )
        self._rooms[room.id] = room
        self._boards[room.id] = {}
        logger.info(f"Room created: {room.id} ({room.difficulty.value}) by admin {creator_id}")
        return room

    def join_room(self, room_id: str, name: str, player_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFound()
        if room.is_full:
            raise RoomFull()
        room.players.append(Player(id=player_id, name=name))
        logger.info(f"Player {player_id} joined room {room_id}")
        return room

    def get(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def rooms_of(self, player_id: str) -> List[Room]:
        return [room for room in self._rooms.values() if room.get_player(player_id) is not None]

    def find_room_of(self, player_id: str) -> Optional[Room]:
        rooms = self.rooms_of(player_id)
        return rooms[0] if rooms else None

    def remove_player(self, room_id: str, player_id: str) -> Optional[Room]:
        """Drop a player and their board. Returns None once the room is gone."""
        room = self._rooms.get(room_id)
        if room is None:
            return None
        room.players = [p for p in room.players if p.id != player_id]
        self._boards.get(room_id, {}).pop(player_id, None)
        if not room.players:
            self.delete(room_id)
            return None
        return room

    def delete(self, room_id: str) -> None:
        room = self._rooms.pop(room_id, None)
        self._boards.pop(room_id, None)
        if room is None:
            return
        if room.countdown is not None:
            room.countdown.cancel()
            room.countdown = None
        logger.info(f"Room deleted: {room_id}")

    # Board copies

    def boards(self, room_id: str) -> Dict[str, Board]:
        return self._boards.setdefault(room_id, {})

    def get_board(self, room_id: str, player_id: str) -> Optional[Board]:
        return self._boards.get(room_id, {}).get(player_id)

    def set_board(self, room_id: str, player_id: str, board: Board) -> None:
        self.boards(room_id)[player_id] = board

    def reset_room(self, room: Room) -> None:
        """Back to a fresh waiting room with a new seed and no boards."""
        for player in room.players:
            player.ready = False
            player.wants_to_play_again = False
        self.boards(room.id).clear()
        room.phase = GamePhase.WAITING
        room.winner = None
        room.game_start_time = None
        room.seed = self.new_seed()
