"""Socket.IO gateway: inbound room events in, room broadcasts out."""
import functools
import logging

from flask import request
from flask_socketio import SocketIO, emit

from minerace.errors import GameError
from minerace.session import SessionManager, Transport

logger = logging.getLogger(__name__)


class SocketIOTransport(Transport):
    """Transport backed by a Flask-SocketIO server; rooms are Socket.IO rooms."""

    def __init__(self, socketio: SocketIO, namespace: str = '/'):
        self.socketio = socketio
        self.namespace = namespace

    def emit(self, event, data=None, to=None, skip_sid=None):
        args = () if data is None else (data,)
        self.socketio.emit(event, *args, to=to, skip_sid=skip_sid, namespace=self.namespace)

    def enter_room(self, player_id, room_id):
        self.socketio.server.enter_room(player_id, room_id, namespace=self.namespace)

    def leave_room(self, player_id, room_id):
        self.socketio.server.leave_room(player_id, room_id, namespace=self.namespace)

    def start_background_task(self, target, *args):
        self.socketio.start_background_task(target, *args)

    def sleep(self, seconds):
        self.socketio.sleep(seconds)


def reports_errors(handler):
    """Send GameErrors back to the requester as an `error` event."""
    @functools.wraps(handler)
    def wrapper(*args, **kwargs):
        try:
            return handler(*args, **kwargs)
        except GameError as error:
            logger.info(f"Rejected {handler.__name__} from {request.sid}: {error.message}")
            emit('error', {'message': error.message})
    return wrapper


def _text(data, key):
    value = data.get(key) if isinstance(data, dict) else None
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()


def _coords(data):
    if not isinstance(data, dict):
        return None
    row, col = data.get('row'), data.get('col')
    # bool is an int subclass; reject it explicitly
    if not isinstance(row, int) or not isinstance(col, int) or isinstance(row, bool) or isinstance(col, bool):
        return None
    return row, col


class Gateway:
    """Maps named client events onto the session state machine."""

    def __init__(self, socketio: SocketIO, session: SessionManager):
        self.socketio = socketio
        self.session = session

    def register(self):
        self.socketio.on_event('connect', self.on_connect)
        self.socketio.on_event('disconnect', self.on_disconnect)
        self.socketio.on_event('createRoom', self.on_create_room)
        self.socketio.on_event('joinRoom', self.on_join_room)
        self.socketio.on_event('playerReady', self.on_player_ready)
        self.socketio.on_event('startGame', self.on_start_game)
        self.socketio.on_event('cellClick', self.on_cell_click)
        self.socketio.on_event('cellFlag', self.on_cell_flag)
        self.socketio.on_event('playAgain', self.on_play_again)
        self.socketio.on_event('returnToLobby', self.on_return_to_lobby)

    def on_connect(self, *args):
        logger.info(f"User connected: {request.sid}")

    def on_disconnect(self, *args):
        logger.info(f"User disconnected: {request.sid}")
        self.session.disconnect(request.sid)

    @reports_errors
    def on_create_room(self, data=None):
        name = _text(data, 'playerName')
        if name is None:
            emit('error', {'message': 'Player name required'})
            return
        self.session.create_room(request.sid, data.get('difficulty'), name)

    @reports_errors
    def on_join_room(self, data=None):
        room_id, name = _text(data, 'roomId'), _text(data, 'playerName')
        if room_id is None or name is None:
            emit('error', {'message': 'Room code and player name required'})
            return
        self.session.join_room(request.sid, room_id.lower(), name)

    @reports_errors
    def on_player_ready(self, data=None):
        room_id = _text(data, 'roomId')
        if room_id:
            self.session.player_ready(request.sid, room_id)

    @reports_errors
    def on_start_game(self, data=None):
        room_id = _text(data, 'roomId')
        if room_id:
            self.session.start_game(request.sid, room_id)

    @reports_errors
    def on_cell_click(self, data=None):
        room_id, coords = _text(data, 'roomId'), _coords(data)
        if room_id is None or coords is None:
            logger.debug(f"Ignoring malformed cellClick from {request.sid}: {data!r}")
            return
        self.session.cell_click(request.sid, room_id, *coords)

    @reports_errors
    def on_cell_flag(self, data=None):
        room_id, coords = _text(data, 'roomId'), _coords(data)
        if room_id is None or coords is None:
            logger.debug(f"Ignoring malformed cellFlag from {request.sid}: {data!r}")
            return
        self.session.cell_flag(request.sid, room_id, *coords)

    @reports_errors
    def on_play_again(self, data=None):
        room_id = _text(data, 'roomId')
        if room_id:
            self.session.play_again(request.sid, room_id)

    @reports_errors
    def on_return_to_lobby(self, data=None):
        room_id = _text(data, 'roomId')
        if room_id:
            self.session.return_to_lobby(request.sid, room_id)
