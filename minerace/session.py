"""Room lifecycle and per-move rules for the two-player race.

Every public method handles one inbound player event to completion while
holding the session lock, so events on the same room never interleave.
Outbound messages go through a `Transport`.
"""
import logging
import threading
import time
from typing import Optional

from minerace import board as engine
from minerace.errors import NotAdmin
from minerace.registry import RoomRegistry
from minerace.serialization import serialize_board, serialize_player, serialize_room
from minerace.types import Countdown, GamePhase, Player, Room

logger = logging.getLogger(__name__)

DEFAULT_COUNTDOWN_SECONDS = 5


class Transport:
    """Outbound side of the realtime channel.

    `to` is either a player id (unicast) or a room id (group broadcast).
    """

    def emit(self, event: str, data=None, to: Optional[str] = None, skip_sid: Optional[str] = None) -> None:
        raise NotImplementedError

    def enter_room(self, player_id: str, room_id: str) -> None:
        raise NotImplementedError

    def leave_room(self, player_id: str, room_id: str) -> None:
        raise NotImplementedError

    def start_background_task(self, target, *args) -> None:
        raise NotImplementedError

    def sleep(self, seconds: float) -> None:
        raise NotImplementedError


def now_ms() -> int:
    return int(time.time() * 1000)


class SessionManager:
    """State machine driving every room in a registry."""

    def __init__(self, registry: RoomRegistry, transport: Transport,
                 countdown_seconds: int = DEFAULT_COUNTDOWN_SECONDS,
                 countdown_interval: float = 1.0):
        self.registry = registry
        self.transport = transport
        self.countdown_seconds = countdown_seconds
        self.countdown_interval = countdown_interval
        self._lock = threading.RLock()

    # Lobby

    def create_room(self, player_id: str, difficulty, player_name: str) -> Room:
        with self._lock:
            room = self.registry.create_room(difficulty, player_name, player_id)
            self.transport.enter_room(player_id, room.id)
            self.transport.emit('roomCreated', {'roomId': room.id, 'room': serialize_room(room)}, to=player_id)
            return room

    def join_room(self, player_id: str, room_id: str, player_name: str) -> Room:
        with self._lock:
            room = self.registry.join_room(room_id, player_name, player_id)
            player = room.get_player(player_id)
            self.transport.enter_room(player_id, room.id)
            self.transport.emit('roomJoined', {'room': serialize_room(room)}, to=player_id)
            self.transport.emit('playerJoined', {'player': serialize_player(player)},
                                to=room.id, skip_sid=player_id)
            return room

    def player_ready(self, player_id: str, room_id: str) -> None:
        with self._lock:
            room = self.registry.get(room_id)
            if room is None or room.phase not in (GamePhase.WAITING, GamePhase.READY):
                return
            player = room.get_player(player_id)
            if player is None:
                return

            player.ready = not player.ready
            self.transport.emit('playerReady', {'playerId': player_id, 'ready': player.ready},
                                to=room.id, skip_sid=player_id)

            if len(room.players) == 2 and all(p.ready for p in room.players):
                room.phase = GamePhase.READY
                self.transport.emit('gameReady', to=room.id)
                logger.info(f"Room {room.id} is ready")
            elif room.phase == GamePhase.READY:
                room.phase = GamePhase.WAITING
                self.transport.emit('gameWaiting', to=room.id)

    # Game start

    def start_game(self, player_id: str, room_id: str) -> None:
        with self._lock:
            room = self.registry.get(room_id)
            if room is None or len(room.players) < 2:
                return
            player = room.get_player(player_id)
            if player is None or not player.is_admin:
                raise NotAdmin()
            if room.phase != GamePhase.READY:
                logger.debug(f"Ignoring start for room {room_id} in phase {room.phase.value}")
                return

            settings = room.settings
            first_row, first_col = engine.first_click_cell(room.seed, settings.rows, settings.cols)
            logger.info(f"Pre-generating board for room {room.id}: seed={room.seed}, "
                        f"firstClick=({first_row},{first_col})")

            shared = engine.generate_board(room.seed, settings.rows, settings.cols, settings.mines,
                                           first_row, first_col)
            opening = engine.flood_reveal(shared, first_row, first_col)
            for p in room.players:
                self.registry.set_board(room.id, p.id, engine.copy_board(opening))

            room.phase = GamePhase.COUNTDOWN
            countdown = Countdown(room.id, self.countdown_seconds, opening, (first_row, first_col))
            room.countdown = countdown

            self.transport.emit('countdownStarted', {
                'countdown': countdown.remaining,
                'firstClick': {'row': first_row, 'col': first_col},
            }, to=room.id)
            self.transport.start_background_task(self._run_countdown, countdown)

    def _run_countdown(self, countdown: Countdown) -> None:
        while True:
            self.transport.sleep(self.countdown_interval)
            with self._lock:
                room = self.registry.get(countdown.room_id)
                if countdown.cancelled or room is None or room.countdown is not countdown:
                    return
                countdown.remaining -= 1
                self.transport.emit('countdownUpdate', {'countdown': countdown.remaining}, to=room.id)
                if countdown.remaining <= 0:
                    countdown.cancel()
                    self._begin_play(room, countdown)
                    return

    def _begin_play(self, room: Room, countdown: Countdown) -> None:
        room.countdown = None
        room.phase = GamePhase.PLAYING
        room.game_start_time = now_ms()
        row, col = countdown.first_click
        self.transport.emit('gameStarted', {
            'startTime': room.game_start_time,
            'board': serialize_board(countdown.board),
            'firstClick': {'row': row, 'col': col},
        }, to=room.id)
        self._broadcast_progress(room)
        settings = room.settings
        logger.info(f"Game started for room {room.id} with {settings.rows}x{settings.cols} board "
                    f"and {settings.mines} mines")

    # Moves

    def cell_click(self, player_id: str, room_id: str, row: int, col: int) -> None:
        with self._lock:
            room = self.registry.get(room_id)
            if room is None or room.phase != GamePhase.PLAYING:
                logger.debug(f"Ignoring click for room {room_id}: not playing")
                return
            board = self.registry.get_board(room_id, player_id)
            if board is None or not board.in_bounds(row, col):
                return
            cell = board.cell(row, col)
            if cell.is_flagged:
                return

            player = room.get_player(player_id)
            if cell.is_mine:
                self.registry.set_board(room_id, player_id, engine.reveal_all_mines(board))
                opponent = room.opponent_of(player_id)
                self._finish(room, opponent)
                self.transport.emit('gameOver', {
                    'winner': room.winner,
                    'loser': player.name,
                    'reason': f"{player.name} hit a mine!",
                    'winnerId': opponent.id if opponent else None,
                    'loserId': player_id,
                }, to=room.id)
                return

            board = engine.flood_reveal(board, row, col)
            self.registry.set_board(room_id, player_id, board)

            if engine.check_win(board):
                self._finish(room, player)
                self.transport.emit('gameWon', {
                    'winner': room.winner,
                    'winnerId': player_id,
                    'reason': f"{player.name} completed the board first!",
                }, to=room.id)
                return

            self.transport.emit('boardUpdate', {
                'board': serialize_board(board),
                'lastMove': {'row': row, 'col': col, 'playerId': player_id},
                'progress': engine.get_player_progress(board, room.settings.mines),
            }, to=player_id)
            self._broadcast_progress(room)

    def cell_flag(self, player_id: str, room_id: str, row: int, col: int) -> None:
        with self._lock:
            room = self.registry.get(room_id)
            if room is None or room.phase != GamePhase.PLAYING:
                return
            board = self.registry.get_board(room_id, player_id)
            if board is None or not board.in_bounds(row, col):
                return
            if board.cell(row, col).is_revealed:
                return

            board = engine.toggle_flag(board, row, col)
            self.registry.set_board(room_id, player_id, board)
            # Flags stay private: only the mover hears about them.
            self.transport.emit('boardUpdate', {
                'board': serialize_board(board),
                'lastMove': {'row': row, 'col': col, 'playerId': player_id,
                             'flagged': board.cell(row, col).is_flagged},
                'progress': engine.get_player_progress(board, room.settings.mines),
            }, to=player_id)

    def progress(self, room: Room) -> dict:
        result = {}
        for player in room.players:
            board = self.registry.get_board(room.id, player.id)
            if board is not None:
                result[player.id] = engine.get_player_progress(board, room.settings.mines)
        return result

    def _broadcast_progress(self, room: Room) -> None:
        self.transport.emit('progressUpdate', {'progress': self.progress(room)}, to=room.id)

    def _finish(self, room: Room, winner: Optional[Player]) -> None:
        if room.countdown is not None:
            room.countdown.cancel()
            room.countdown = None
        room.phase = GamePhase.FINISHED
        room.winner = winner.name if winner else 'Unknown'
        logger.info(f"Room {room.id} finished, winner: {room.winner}")

    # After the game

    def play_again(self, player_id: str, room_id: str) -> None:
        with self._lock:
            room = self.registry.get(room_id)
            if room is None or room.phase != GamePhase.FINISHED:
                return
            player = room.get_player(player_id)
            if player is None:
                return

            player.wants_to_play_again = True
            all_want = all(p.wants_to_play_again for p in room.players)
            self.transport.emit('playAgainStatus', {
                'playerId': player_id,
                'wantsToPlayAgain': True,
                'allWantToPlayAgain': all_want,
            }, to=room.id)

            if all_want:
                self.registry.reset_room(room)
                logger.info(f"Room {room.id} reset for a rematch")
                self.transport.emit('gameReset', {'room': serialize_room(room)}, to=room.id)

    def return_to_lobby(self, player_id: str, room_id: str) -> None:
        with self._lock:
            room = self.registry.get(room_id)
            if room is None:
                return
            player = room.get_player(player_id)
            if player is None:
                return

            if player.wants_to_play_again and room.phase == GamePhase.FINISHED:
                self._leave(room, player, reason=f"{player.name} left the room")
                self._move_to_new_room(player, room)
                return

            self._leave(room, player, reason=f"{player.name} left the room")
            self.transport.emit('returnedToLobby', to=player_id)

    def disconnect(self, player_id: str) -> None:
        with self._lock:
            # A socket may have opened or joined several rooms; leave them all.
            for room in self.registry.rooms_of(player_id):
                player = room.get_player(player_id)
                if player is not None:
                    self._leave(room, player, reason='Player disconnected')

    def _leave(self, room: Room, player: Player, reason: str) -> None:
        """Remove a player and settle what their departure means for the room."""
        self.transport.leave_room(player.id, room.id)
        if self.registry.remove_player(room.id, player.id) is None:
            return
        self.transport.emit('playerLeft', {'playerId': player.id}, to=room.id)

        remaining = room.players[0]
        if player.is_admin:
            remaining.is_admin = True

        if room.phase in (GamePhase.COUNTDOWN, GamePhase.PLAYING):
            self._finish(room, remaining)
            self.transport.emit('gameOver', {
                'winner': room.winner,
                'loser': player.name,
                'reason': reason,
                'winnerId': remaining.id,
                'loserId': player.id,
            }, to=room.id)
        elif room.phase == GamePhase.READY:
            room.phase = GamePhase.WAITING
            self.transport.emit('gameWaiting', to=room.id)
        elif room.phase == GamePhase.FINISHED and remaining.wants_to_play_again:
            # The partner walked away from a rematch: start over on a fresh room.
            self.transport.leave_room(remaining.id, room.id)
            self.registry.remove_player(room.id, remaining.id)
            self._move_to_new_room(remaining, room)

    def _move_to_new_room(self, player: Player, old_room: Room) -> None:
        new_room = self.registry.create_room(old_room.difficulty, player.name, player.id)
        self.transport.enter_room(player.id, new_room.id)
        self.transport.emit('movedToNewRoom', {'roomId': new_room.id, 'room': serialize_room(new_room)},
                            to=player.id)
        logger.info(f"Player {player.id} moved from room {old_room.id} to {new_room.id}")
